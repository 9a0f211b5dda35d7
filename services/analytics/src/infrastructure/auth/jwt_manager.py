"""Session token issuance and verification (HS256, PyJWT)."""

from __future__ import annotations

import secrets
import time
from typing import Any, Dict

import jwt
from src.domain.errors import AuthenticationError
from src.domain.models import Principal

ALGORITHM = "HS256"


class JWTManager:
    def __init__(self, secret_key: str, issuer: str, ttl_seconds: int):
        self._secret_key = secret_key
        self.issuer = issuer
        self.ttl_seconds = ttl_seconds

    def generate_token(self, principal: Principal) -> str:
        now = int(time.time())
        claims = {
            "iss": self.issuer,
            "sub": principal.user_id,
            "iat": now,
            "nbf": now,
            "exp": now + self.ttl_seconds,
            "jti": f"{now}-{secrets.token_urlsafe(12)}",
            "user_id": principal.user_id,
            "email": principal.email,
            "is_admin": principal.is_admin,
        }
        return jwt.encode(claims, self._secret_key, algorithm=ALGORITHM)

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                issuer=self.issuer,
                options={"require": ["exp", "iat", "iss", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("token expired") from e
        except jwt.InvalidIssuerError as e:
            raise AuthenticationError("invalid token issuer") from e
        except jwt.PyJWTError as e:
            raise AuthenticationError(f"invalid token: {e}") from e

    def verify(self, token: str) -> Principal:
        claims = self.decode(token)
        user_id = claims.get("user_id") or claims["sub"]
        return Principal(
            user_id=str(user_id),
            email=str(claims.get("email") or ""),
            is_admin=bool(claims.get("is_admin", False)),
        )

    def refresh_token(self, token: str) -> str:
        """Re-issue a still-valid token with a fresh expiry and id."""
        return self.generate_token(self.verify(token))
