from enum import Enum


class Environment(str, Enum):
    """Deployment environments recognised by the services."""

    PRODUCTION = "production"
    STAGING = "staging"
    TESTING = "testing"
    DEVELOPMENT = "development"

    @classmethod
    def parse(cls, env: str) -> "Environment":
        """Map a raw setting to an Environment; unknown values mean production."""
        try:
            return cls(env.strip().lower())
        except ValueError:
            return cls.PRODUCTION

    def effective_log_level(self, configured: str) -> str:
        # Development always logs at DEBUG regardless of app_log_level
        if self is Environment.DEVELOPMENT:
            return "DEBUG"
        return configured.upper()

    @property
    def exposes_docs(self) -> bool:
        """OpenAPI docs are served everywhere except production."""
        return self is not Environment.PRODUCTION
