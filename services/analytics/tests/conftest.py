import asyncio
import os
from datetime import datetime, timedelta, timezone

# Settings are loaded at import time and refuse to start without a secret
os.environ.setdefault("JWT_SECRET", "unit-test-secret-with-enough-entropy-0123")

import pytest  # noqa: E402
from src.domain.errors import SourceUnavailableError
from src.domain.models import (
    APIGatewayMetrics,
    AppAnalytics,
    CostData,
    DynamoDBMetrics,
    LambdaMetrics,
    RatingsData,
    ServiceCost,
    TimeWindow,
)
from src.domain.resources import AppConfig, ResourceResolver
from src.services.aggregator import MetricsAggregator

WINDOW_END = datetime(2024, 5, 2, 12, 0, tzinfo=timezone.utc)
FIXED_NOW = 1714651200.0


class FakeSource:
    """Serves canned payloads keyed by resource name.

    Missing names raise SourceUnavailableError, exception values are raised
    as-is and ``delays`` are awaited before answering.
    """

    source = "fake"

    def __init__(self, payloads=None, delays=None):
        self.payloads = dict(payloads or {})
        self.delays = dict(delays or {})
        self.calls = []

    async def _serve(self, name):
        self.calls.append(name)
        delay = self.delays.get(name)
        if delay:
            await asyncio.sleep(delay)
        value = self.payloads.get(name)
        if value is None:
            raise SourceUnavailableError(self.source, name, "no data")
        if isinstance(value, BaseException):
            raise value
        return value


class FakeCloudWatch(FakeSource):
    source = "cloudwatch"

    async def get_lambda_metrics(self, function_name, window):
        return await self._serve(function_name)

    async def get_api_gateway_metrics(self, api_name, window):
        return await self._serve(api_name)


class FakeDynamoDB(FakeSource):
    source = "dynamoDB"

    async def get_table_metrics(self, table_name, window):
        return await self._serve(table_name)


class FakeCost(FakeSource):
    source = "cost"

    async def get_cost_and_usage(self, window):
        return await self._serve("current")

    async def get_forecast(self, days):
        return await self._serve("forecast")


class FakeAppStore(FakeSource):
    source = "appStore"

    async def get_app_analytics(self, app_store_id, window):
        return await self._serve(app_store_id)


@pytest.fixture
def window():
    return TimeWindow(start=WINDOW_END - timedelta(hours=24), end=WINDOW_END)


@pytest.fixture
def demo_app():
    return AppConfig(
        id="demo",
        name="Demo App",
        app_store_id="999",
        environment="test",
        lambda_functions=["fn-a", "fn-b"],
        api_gateway="demo-api",
        dynamodb_tables=["users", "orders"],
    )


@pytest.fixture
def resolver(demo_app):
    return ResourceResolver({demo_app.id: demo_app})


@pytest.fixture
def healthy_payloads():
    """One healthy payload per demo resource, keyed by source."""
    return {
        "cloudwatch": {
            "fn-a": LambdaMetrics(
                function_name="fn-a",
                invocations=1000,
                errors=10,
                duration=120.0,
                concurrent_executions=4,
            ),
            "fn-b": LambdaMetrics(
                function_name="fn-b",
                invocations=500,
                errors=0,
                duration=80.0,
                concurrent_executions=9,
            ),
            "demo-api": APIGatewayMetrics(
                api_name="demo-api", count=2000, latency=150.0, error_4xx=20, error_5xx=2
            ),
        },
        "dynamodb": {
            "users": DynamoDBMetrics(
                table_name="users",
                consumed_read_capacity=40,
                consumed_write_capacity=10,
                user_errors=1,
                item_count=100,
                table_size_bytes=2048,
            ),
            "orders": DynamoDBMetrics(
                table_name="orders",
                consumed_read_capacity=60,
                consumed_write_capacity=30,
                item_count=50,
                table_size_bytes=1024,
            ),
        },
        "cost": {
            "current": CostData(
                total_cost=120.0,
                services=[
                    ServiceCost(service_name="AWS Lambda", cost=30.0, percentage=25.0),
                    ServiceCost(service_name="Amazon DynamoDB", cost=90.0, percentage=75.0),
                ],
                period="2024-05-01 to 2024-05-02",
            ),
            "forecast": CostData(total_cost=3000.0, period="forecast"),
        },
        "appstore": {
            "999": AppAnalytics(
                app_id="999",
                app_name="Demo App",
                downloads=40,
                revenue=200.0,
                active_devices=50,
                ratings=RatingsData(average_rating=4.5, total_ratings=12),
            )
        },
    }


@pytest.fixture
def make_aggregator(resolver):
    """Build a MetricsAggregator over fake sources.

    ``payloads`` maps source key (cloudwatch/dynamodb/cost/appstore) to the
    per-resource payloads; ``delays`` likewise. Pass ``appstore=False`` to
    leave App Store unconfigured.
    """

    def _make(payloads=None, delays=None, timeout=1.0, appstore=True):
        payloads = payloads or {}
        delays = delays or {}
        fakes = {
            "cloudwatch": FakeCloudWatch(
                payloads.get("cloudwatch"), delays.get("cloudwatch")
            ),
            "dynamodb": FakeDynamoDB(payloads.get("dynamodb"), delays.get("dynamodb")),
            "cost": FakeCost(payloads.get("cost"), delays.get("cost")),
            "appstore": FakeAppStore(payloads.get("appstore"), delays.get("appstore")),
        }
        aggregator = MetricsAggregator(
            resolver=resolver,
            cloudwatch=fakes["cloudwatch"],
            dynamodb=fakes["dynamodb"],
            cost=fakes["cost"],
            appstore=fakes["appstore"] if appstore else None,
            timeout=timeout,
            clock=lambda: FIXED_NOW,
        )
        return aggregator, fakes

    return _make
