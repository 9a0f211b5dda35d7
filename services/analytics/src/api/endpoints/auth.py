from fastapi import APIRouter, Depends
from src.api.dependencies import bearer_token, get_token_verifier
from src.api.schemas import TokenResponse
from src.core.logger import get_logger
from src.domain.ports import TokenVerifier

logger = get_logger("analytics.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    token: str = Depends(bearer_token),
    verifier: TokenVerifier = Depends(get_token_verifier),
):
    """Swap a still-valid session token for one with a fresh expiry."""
    refreshed = verifier.refresh_token(token)
    logger.info("session_token_refreshed")
    return TokenResponse(access_token=refreshed, expires_in=verifier.ttl_seconds)
