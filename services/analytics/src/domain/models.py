from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from shared.constants import CostExplorer, MetricCategory

PERIOD_FORMAT = "%Y-%m-%d %H:%M:%S"


class CamelModel(BaseModel):
    """Immutable model serialized with camelCase keys for the dashboard."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class TimeWindow(CamelModel):
    """Half-open query window; both bounds timezone-aware UTC, start < end."""

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _require_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError("timestamp must carry a timezone offset")
        try:
            return value.astimezone(timezone.utc)
        except OverflowError as e:
            raise ValueError("timestamp out of range in UTC") from e

    @model_validator(mode="after")
    def _check_order(self) -> "TimeWindow":
        if self.start >= self.end:
            raise ValueError("start must be before end")
        return self

    @classmethod
    def last(cls, hours: int, now: Optional[datetime] = None) -> "TimeWindow":
        end = now or datetime.now(timezone.utc)
        return cls(start=end - timedelta(hours=hours), end=end)

    @property
    def days(self) -> float:
        return (self.end - self.start).total_seconds() / 86400

    def period_label(self) -> str:
        return (
            f"{self.start.strftime(PERIOD_FORMAT)} to {self.end.strftime(PERIOD_FORMAT)}"
        )


class Principal(BaseModel):
    """Verified caller identity yielded by the session token verifier."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str = ""
    is_admin: bool = False


# --- Raw per-resource payloads returned by the source adapters ---


class MetricDatapoint(CamelModel):
    timestamp: datetime
    value: float
    unit: str = "Count"


class LambdaMetrics(CamelModel):
    function_name: str
    invocations: float = 0.0
    errors: float = 0.0
    duration: Optional[float] = None  # ms, None when CloudWatch had no points
    throttles: float = 0.0
    concurrent_executions: Optional[float] = None
    datapoints: List[MetricDatapoint] = Field(default_factory=list)


class APIGatewayMetrics(CamelModel):
    api_name: str
    count: float = 0.0
    latency: Optional[float] = None  # ms
    error_4xx: float = Field(0.0, alias="error4xx")
    error_5xx: float = Field(0.0, alias="error5xx")
    datapoints: List[MetricDatapoint] = Field(default_factory=list)


class DynamoDBMetrics(CamelModel):
    table_name: str
    consumed_read_capacity: float = 0.0
    consumed_write_capacity: float = 0.0
    provisioned_read_capacity: float = 0.0
    provisioned_write_capacity: float = 0.0
    throttled_requests: float = 0.0
    user_errors: float = 0.0
    system_errors: float = 0.0
    item_count: int = 0
    table_size_bytes: int = 0
    datapoints: List[MetricDatapoint] = Field(default_factory=list)


class ServiceCost(CamelModel):
    service_name: str
    cost: float
    percentage: float = 0.0


class DailyCost(CamelModel):
    date: str
    cost: float


class CostData(CamelModel):
    total_cost: float = 0.0
    currency: str = CostExplorer.DEFAULT_CURRENCY
    services: List[ServiceCost] = Field(default_factory=list)
    daily_costs: List[DailyCost] = Field(default_factory=list)
    period: str = ""


class RatingsData(CamelModel):
    average_rating: float = 0.0
    total_ratings: int = 0
    distribution: Dict[int, int] = Field(default_factory=dict)


class AppAnalytics(CamelModel):
    app_id: str
    app_name: str = ""
    downloads: int = 0
    updates: int = 0
    revenue: float = 0.0
    active_devices: int = 0
    crashes: int = 0
    ratings: RatingsData = Field(default_factory=RatingsData)
    period: str = ""


# --- Category summaries (zero-valued defaults double as "unavailable") ---


class LambdaSummary(CamelModel):
    total_invocations: float = 0.0
    total_errors: float = 0.0
    error_rate: float = 0.0
    average_duration: float = 0.0
    total_throttles: float = 0.0
    max_concurrent_executions: float = 0.0
    function_count: int = 0


class APIGatewaySummary(CamelModel):
    total_requests: float = 0.0
    total_4xx_errors: float = Field(0.0, alias="total4xxErrors")
    total_5xx_errors: float = Field(0.0, alias="total5xxErrors")
    error_rate: float = 0.0
    average_latency: float = 0.0


class DynamoDBSummary(CamelModel):
    total_read_capacity: float = 0.0
    total_write_capacity: float = 0.0
    total_throttles: float = 0.0
    total_errors: float = 0.0
    table_count: int = 0
    total_item_count: int = 0
    total_size_bytes: int = 0


class CostSummary(CamelModel):
    current_period: float = 0.0
    daily_average: float = 0.0
    projected_month: float = 0.0
    currency: str = CostExplorer.DEFAULT_CURRENCY
    top_services: List[ServiceCost] = Field(default_factory=list)


class AppStoreSummary(CamelModel):
    downloads: int = 0
    updates: int = 0
    revenue: float = 0.0
    arpu: float = 0.0
    active_devices: int = 0
    average_rating: float = 0.0
    total_ratings: int = 0


class AWSSummary(CamelModel):
    lambda_: LambdaSummary = Field(default_factory=LambdaSummary, alias="lambda")
    api_gateway: APIGatewaySummary = Field(default_factory=APIGatewaySummary)
    dynamo_db: DynamoDBSummary = Field(
        default_factory=DynamoDBSummary, alias="dynamoDB"
    )
    cost: CostSummary = Field(default_factory=CostSummary)


class HealthVerdict(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    CRITICAL = "critical"


def verdict_for(healthy_count: int, degraded_count: int) -> HealthVerdict:
    """critical iff degraded > healthy; degraded iff any degraded; else healthy."""
    if degraded_count > healthy_count:
        return HealthVerdict.CRITICAL
    if degraded_count > 0:
        return HealthVerdict.DEGRADED
    return HealthVerdict.HEALTHY


class HealthStatus(CamelModel):
    verdict: HealthVerdict = HealthVerdict.HEALTHY
    healthy_count: int = 0
    degraded_count: int = 0
    unknown_count: int = 0
    issues: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _verdict_matches_counts(self) -> "HealthStatus":
        expected = verdict_for(self.healthy_count, self.degraded_count)
        if self.verdict is not expected:
            raise ValueError(
                f"verdict {self.verdict.value} inconsistent with counts "
                f"(healthy={self.healthy_count}, degraded={self.degraded_count})"
            )
        return self

    @classmethod
    def from_counts(
        cls, healthy: int, degraded: int, unknown: int, issues: List[str]
    ) -> "HealthStatus":
        return cls(
            verdict=verdict_for(healthy, degraded),
            healthy_count=healthy,
            degraded_count=degraded,
            unknown_count=unknown,
            issues=list(issues),
        )


class SourceStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"  # nothing configured / not permitted


class AggregateMetrics(CamelModel):
    app_id: str
    period: str
    window: TimeWindow
    timestamp: int
    aws: AWSSummary = Field(default_factory=AWSSummary)
    app_store: AppStoreSummary = Field(default_factory=AppStoreSummary)
    health: HealthStatus = Field(default_factory=HealthStatus)
    sources: Dict[MetricCategory, SourceStatus] = Field(default_factory=dict)


class SeriesPoint(CamelModel):
    """One interval of a time series; ``value`` is None unless status is ok."""

    timestamp: datetime
    value: Optional[float] = None
    status: SourceStatus = SourceStatus.OK
    metadata: Dict[str, Any] = Field(default_factory=dict)


class TimeSeries(CamelModel):
    app_id: str
    metric_type: str  # "<category>:<metric>", e.g. "lambda:invocations"
    period: str
    interval: str
    series: List[SeriesPoint] = Field(default_factory=list)
    metadata: Dict[str, str] = Field(default_factory=dict)
    timestamp: int
