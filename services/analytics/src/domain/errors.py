class AnalyticsError(Exception):
    """Base class for analytics service errors."""


class SourceUnavailableError(AnalyticsError):
    """A single metric source call failed (network, throttling, bad payload).

    Raised by adapters; the aggregator records it as a failed SourceResult
    instead of letting it reach the caller.
    """

    def __init__(self, source: str, resource: str, reason: str):
        super().__init__(f"{source} fetch failed for {resource or '-'}: {reason}")
        self.source = source
        self.resource = resource
        self.reason = reason


class MalformedRequestError(AnalyticsError):
    """Request parameters could not be parsed (HTTP 400)."""


class AuthenticationError(AnalyticsError):
    """Missing, invalid or expired bearer token (HTTP 401)."""


class AuthorizationError(AnalyticsError):
    """Authenticated principal lacks the required privilege (HTTP 403)."""
