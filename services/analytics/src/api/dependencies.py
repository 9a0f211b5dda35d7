from typing import Optional

from fastapi import Depends, Header, Request
from src.core.config import settings
from src.domain.errors import AuthenticationError, AuthorizationError
from src.domain.models import Principal
from src.domain.ports import TokenVerifier
from src.domain.resources import ResourceResolver
from src.services.aggregator import MetricsAggregator


def get_aggregator(request: Request) -> MetricsAggregator:
    return request.app.state.aggregator  # type: ignore[return-value]


def get_resolver(request: Request) -> ResourceResolver:
    return request.app.state.resolver  # type: ignore[return-value]


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier  # type: ignore[return-value]


def bearer_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization:
        raise AuthenticationError("authorization header required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("invalid authorization header format")
    return token.strip()


def get_principal(
    token: str = Depends(bearer_token),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> Principal:
    return verifier.verify(token)


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise AuthorizationError("admin access required")
    return principal


def api_principal(principal: Principal = Depends(get_principal)) -> Principal:
    """Principal for /api routes; admin-gated while ``admin_only`` is set."""
    if settings.admin_only:
        return require_admin(principal)
    return principal
