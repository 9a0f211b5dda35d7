from pydantic import field_validator
from pydantic_settings import SettingsConfigDict
from src.domain.resources import AppConfig, split_names

from shared.config import BaseServiceConfig


class Settings(BaseServiceConfig):
    model_config = SettingsConfigDict(extra="ignore")

    otel_service_name: str = "analytics"

    # Aggregation
    source_timeout_seconds: float = 10.0  # per adapter call
    source_max_workers: int = 32  # threads for blocking SDK calls
    default_window_hours: int = 24
    health_window_hours: int = 1

    # Health thresholds
    lambda_error_rate_threshold: float = 5.0  # percent
    api_error_rate_threshold: float = 5.0  # percent
    api_latency_threshold_ms: float = 1000.0

    # Cost
    cost_top_services: int = 5
    cost_forecast_days: int = 30
    projection_days: int = 30

    # Time series
    timeseries_max_points: int = 500  # buckets per request
    timeseries_parallel_buckets: int = 4

    # Session tokens
    jwt_secret: str  # JWT_SECRET; no default, startup fails without it
    jwt_issuer: str = "central-analytics"
    jwt_ttl_seconds: int = 86400
    admin_only: bool = True  # every /api route requires the admin claim

    # App Store Connect
    appstore_key_id: str = ""
    appstore_issuer_id: str = ""
    appstore_private_key: str = ""  # PEM (PKCS#8)
    appstore_timeout_seconds: float = 30.0
    appstore_retries: int = 3

    # HTTP
    cors_allow_origins: list[str] = [
        "http://localhost:4321",
        "https://localhost:4321",
    ]

    # Application resources (comma-separated env overrides)
    ilikeyacut_app_store_id: str = ""
    ilikeyacut_env: str = "dev"
    ilikeyacut_lambda_functions: str = (
        "ilikeyacut-gemini-proxy-dev,ilikeyacut-auth-dev,ilikeyacut-templates-dev,"
        "ilikeyacut-user-data-dev,ilikeyacut-purchase-dev,ilikeyacut-iap-webhook-dev"
    )
    ilikeyacut_api_gateway: str = "ilikeyacut-api-dev"
    ilikeyacut_dynamodb_tables: str = (
        "ilikeyacut-users-dev,ilikeyacut-transactions-dev,"
        "ilikeyacut-templates-dev,ilikeyacut-rate-limits-dev"
    )
    extra_apps: list[AppConfig] = []  # JSON list in EXTRA_APPS

    @field_validator("jwt_secret")
    @classmethod
    def _require_secret(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("JWT_SECRET must be set to a non-empty value")
        return value

    @property
    def appstore_configured(self) -> bool:
        return bool(
            self.appstore_key_id
            and self.appstore_issuer_id
            and self.appstore_private_key
        )

    def app_configs(self) -> dict[str, AppConfig]:
        """Static app id -> resources table backing the resource resolver."""
        apps = {
            "ilikeyacut": AppConfig(
                id="ilikeyacut",
                name="I Like Ya Cut",
                app_store_id=self.ilikeyacut_app_store_id,
                environment=self.ilikeyacut_env,
                lambda_functions=split_names(self.ilikeyacut_lambda_functions),
                api_gateway=self.ilikeyacut_api_gateway.strip(),
                dynamodb_tables=split_names(self.ilikeyacut_dynamodb_tables),
            )
        }
        for app in self.extra_apps:
            apps[app.id] = app
        return apps


settings = Settings()

__all__ = ["Settings", "settings"]
