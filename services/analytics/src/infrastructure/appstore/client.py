"""App Store Connect API adapter.

Requests are signed with a short-lived ES256 developer token (PyJWT) that is
cached until shortly before it expires. HTTP calls are synchronous
(requests) and run off the event loop through run_blocking.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Dict, Optional

import jwt
import requests
from src.core.logger import get_logger
from src.domain.errors import SourceUnavailableError
from src.domain.models import AppAnalytics, RatingsData, TimeWindow

from shared.utils import retry, run_blocking

logger = get_logger("analytics.appstore")

BASE_URL = "https://api.appstoreconnect.apple.com/v1"
TOKEN_TTL_SECONDS = 20 * 60  # Apple rejects tokens living longer than 20 minutes
TOKEN_REFRESH_MARGIN_SECONDS = 60
AUDIENCE = "appstoreconnect-v1"


class AppStoreConnectClient:
    def __init__(
        self,
        key_id: str,
        issuer_id: str,
        private_key: str,
        timeout: float = 30.0,
        retries: int = 3,
        session: Optional[requests.Session] = None,
    ):
        self.key_id = key_id
        self.issuer_id = issuer_id
        self._private_key = private_key
        self.timeout = timeout
        self.retries = retries
        self._session = session or requests.Session()
        self._token: Optional[str] = None
        self._token_exp = 0.0
        self._lock = threading.Lock()

    def _bearer_token(self) -> str:
        now = time.time()
        with self._lock:
            if self._token and self._token_exp - TOKEN_REFRESH_MARGIN_SECONDS > now:
                return self._token
            claims = {
                "iss": self.issuer_id,
                "iat": int(now),
                "exp": int(now + TOKEN_TTL_SECONDS),
                "aud": AUDIENCE,
            }
            try:
                token = jwt.encode(
                    claims,
                    self._private_key,
                    algorithm="ES256",
                    headers={"kid": self.key_id},
                )
            except (jwt.PyJWTError, ValueError, TypeError) as e:
                raise SourceUnavailableError(
                    "appStore", "", f"cannot sign developer token: {e}"
                ) from e
            self._token = token
            self._token_exp = now + TOKEN_TTL_SECONDS
            return token

    def _get(self, path: str, resource: str, params: Optional[Dict[str, Any]] = None):
        url = BASE_URL + path

        def _send():
            return self._session.get(
                url,
                params=params,
                headers={
                    "Authorization": f"Bearer {self._bearer_token()}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )

        def _on_retry(attempt: int, exc: BaseException, sleep_for: float):
            logger.warning(
                "appstore_request_retry",
                extra={
                    "path": path,
                    "attempt": attempt,
                    "error": str(exc),
                    "sleep_for": round(sleep_for, 2),
                },
            )

        try:
            resp = retry(
                _send,
                retries=self.retries,
                retry_on=(requests.ConnectionError, requests.Timeout),
                on_retry=_on_retry,
            )
        except requests.RequestException as e:
            raise SourceUnavailableError("appStore", resource, str(e)) from e

        if resp.status_code >= 400:
            raise SourceUnavailableError(
                "appStore",
                resource,
                f"API error (status {resp.status_code}): {resp.text[:200]}",
            )
        try:
            return resp.json()
        except ValueError as e:
            raise SourceUnavailableError(
                "appStore", resource, "malformed JSON response"
            ) from e

    async def get_app_analytics(
        self, app_store_id: str, window: TimeWindow
    ) -> AppAnalytics:
        return await run_blocking(self._app_analytics, app_store_id, window)

    def _app_analytics(self, app_store_id: str, window: TimeWindow) -> AppAnalytics:
        info = self._get(f"/apps/{app_store_id}", app_store_id)
        name = ((info.get("data") or {}).get("attributes") or {}).get("name", "")

        try:
            ratings = self._ratings(app_store_id)
        except SourceUnavailableError as e:
            # App info succeeded; ratings are optional enrichment
            logger.warning(
                "appstore_ratings_unavailable",
                extra={"app_store_id": app_store_id, "error": e.reason},
            )
            ratings = RatingsData()

        return AppAnalytics(
            app_id=app_store_id,
            app_name=name,
            ratings=ratings,
            period=(
                f"{window.start.date().isoformat()} to {window.end.date().isoformat()}"
            ),
        )

    def _ratings(self, app_store_id: str) -> RatingsData:
        body = self._get(f"/apps/{app_store_id}/customerReviews", app_store_id)
        reviews = body.get("data") or []
        distribution: Dict[int, int] = {}
        score = 0
        for review in reviews:
            rating = int((review.get("attributes") or {}).get("rating", 0))
            distribution[rating] = distribution.get(rating, 0) + 1
            score += rating
        total = ((body.get("meta") or {}).get("paging") or {}).get("total")
        return RatingsData(
            average_rating=(score / len(reviews)) if reviews else 0.0,
            total_ratings=int(total) if total is not None else len(reviews),
            distribution=distribution,
        )
