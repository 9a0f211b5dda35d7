"""Port interfaces for metric source adapters.

The aggregator depends only on these protocols. Every method either returns
its typed payload or raises SourceUnavailableError.
"""

from typing import Protocol, runtime_checkable

from src.domain.models import (
    APIGatewayMetrics,
    AppAnalytics,
    CostData,
    DynamoDBMetrics,
    LambdaMetrics,
    Principal,
    TimeWindow,
)


@runtime_checkable
class CloudWatchSource(Protocol):
    """Lambda and API Gateway metrics (CloudWatch GetMetricData)."""

    async def get_lambda_metrics(
        self, function_name: str, window: TimeWindow
    ) -> LambdaMetrics: ...

    async def get_api_gateway_metrics(
        self, api_name: str, window: TimeWindow
    ) -> APIGatewayMetrics: ...


@runtime_checkable
class DynamoDBSource(Protocol):
    async def get_table_metrics(
        self, table_name: str, window: TimeWindow
    ) -> DynamoDBMetrics: ...


@runtime_checkable
class CostSource(Protocol):
    async def get_cost_and_usage(self, window: TimeWindow) -> CostData: ...

    async def get_forecast(self, days: int) -> CostData: ...


@runtime_checkable
class AppStoreSource(Protocol):
    async def get_app_analytics(
        self, app_store_id: str, window: TimeWindow
    ) -> AppAnalytics: ...


@runtime_checkable
class TokenVerifier(Protocol):
    """Session token verification; raises AuthenticationError on rejection."""

    ttl_seconds: int

    def verify(self, token: str) -> Principal: ...

    def refresh_token(self, token: str) -> str: ...
