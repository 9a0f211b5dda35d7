from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from src.core.logger import get_logger
from src.domain.errors import (
    AnalyticsError,
    AuthenticationError,
    AuthorizationError,
    MalformedRequestError,
    SourceUnavailableError,
)

logger = get_logger("analytics.api")

STATUS_CODES = {
    MalformedRequestError: status.HTTP_400_BAD_REQUEST,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    SourceUnavailableError: status.HTTP_502_BAD_GATEWAY,
}


async def analytics_error_handler(request: Request, exc: AnalyticsError):
    code = STATUS_CODES.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    headers = {"WWW-Authenticate": "Bearer"} if code == 401 else None
    logger.info(
        "request_rejected",
        extra={"path": request.url.path, "status": code, "error": str(exc)},
    )
    return JSONResponse({"detail": str(exc)}, status_code=code, headers=headers)


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(AnalyticsError, analytics_error_handler)
