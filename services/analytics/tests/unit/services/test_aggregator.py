import asyncio
import time
from datetime import timedelta
from unittest.mock import patch

import pytest
from src.domain.errors import SourceUnavailableError
from src.domain.models import (
    CostData,
    DailyCost,
    APIGatewaySummary,
    AppStoreSummary,
    AWSSummary,
    CostSummary,
    DynamoDBMetrics,
    HealthVerdict,
    LambdaMetrics,
    LambdaSummary,
    SourceStatus,
    TimeWindow,
)
from src.domain.resources import AppConfig, ResourceResolver

from shared.constants import MetricCategory


@pytest.mark.asyncio
async def test_aggregate_all_sources_ok(make_aggregator, healthy_payloads, window):
    aggregator, _ = make_aggregator(healthy_payloads)

    result = await aggregator.aggregate("demo", window)

    assert result.app_id == "demo"
    assert result.timestamp == 1714651200
    assert result.period == "2024-05-01 12:00:00 to 2024-05-02 12:00:00"
    assert result.window == window

    lam = result.aws.lambda_
    assert lam.total_invocations == 1500
    assert lam.total_errors == 10
    assert lam.error_rate == pytest.approx(10 / 1500 * 100)
    assert lam.average_duration == pytest.approx(100.0)
    assert lam.max_concurrent_executions == 9
    assert lam.function_count == 2

    api = result.aws.api_gateway
    assert api.total_requests == 2000
    assert api.error_rate == pytest.approx(1.1)
    assert api.average_latency == 150.0

    ddb = result.aws.dynamo_db
    assert ddb.total_read_capacity == 100
    assert ddb.total_write_capacity == 40
    assert ddb.total_errors == 1
    assert ddb.table_count == 2
    assert ddb.total_item_count == 150
    assert ddb.total_size_bytes == 3072

    cost = result.aws.cost
    assert cost.current_period == 120.0
    assert cost.daily_average == pytest.approx(120.0)
    assert cost.projected_month == pytest.approx(3600.0)
    assert [s.service_name for s in cost.top_services] == [
        "Amazon DynamoDB",
        "AWS Lambda",
    ]

    assert result.app_store.downloads == 40
    assert result.app_store.arpu == pytest.approx(4.0)
    assert result.app_store.average_rating == 4.5

    assert result.health.verdict is HealthVerdict.HEALTHY
    assert result.health.healthy_count == 5
    assert result.health.unknown_count == 0
    assert result.health.issues == []
    assert set(result.sources.values()) == {SourceStatus.OK}


@pytest.mark.asyncio
async def test_total_failure_returns_zero_document(make_aggregator, window):
    aggregator, _ = make_aggregator({})

    result = await aggregator.aggregate("demo", window)

    assert result.aws == AWSSummary()
    assert result.app_store == AppStoreSummary()
    assert result.health.verdict is HealthVerdict.HEALTHY
    assert result.health.unknown_count == 5
    assert result.health.healthy_count == 0
    assert result.health.degraded_count == 0
    assert result.health.issues == []
    assert set(result.sources.values()) == {SourceStatus.FAILED}


@pytest.mark.parametrize(
    "source_key,category",
    [
        ("cloudwatch", MetricCategory.LAMBDA),
        ("cloudwatch-api", MetricCategory.API_GATEWAY),
        ("dynamodb", MetricCategory.DYNAMODB),
        ("cost", MetricCategory.COST),
        ("appstore", MetricCategory.APP_STORE),
    ],
)
@pytest.mark.asyncio
async def test_one_failing_source_does_not_touch_the_others(
    make_aggregator, healthy_payloads, window, source_key, category
):
    baseline, _ = make_aggregator(healthy_payloads)
    expected = await baseline.aggregate("demo", window)

    broken = dict(healthy_payloads)
    if source_key == "cloudwatch":
        # keep the API healthy, drop only the Lambda functions
        broken["cloudwatch"] = {"demo-api": healthy_payloads["cloudwatch"]["demo-api"]}
    elif source_key == "cloudwatch-api":
        broken["cloudwatch"] = {
            k: v for k, v in healthy_payloads["cloudwatch"].items() if k != "demo-api"
        }
    else:
        broken[source_key] = {}
    aggregator, _ = make_aggregator(broken)

    result = await aggregator.aggregate("demo", window)

    assert result.sources[category] is SourceStatus.FAILED
    for other, status in result.sources.items():
        if other is not category:
            assert status is SourceStatus.OK

    if category is MetricCategory.LAMBDA:
        assert result.aws.lambda_ == LambdaSummary()
    else:
        assert result.aws.lambda_ == expected.aws.lambda_
    if category is MetricCategory.COST:
        assert result.aws.cost == CostSummary()
    else:
        assert result.aws.cost == expected.aws.cost
    if category is MetricCategory.APP_STORE:
        assert result.app_store == AppStoreSummary()
    else:
        assert result.app_store == expected.app_store
    if category is MetricCategory.API_GATEWAY:
        assert result.aws.api_gateway == APIGatewaySummary()
    else:
        assert result.aws.api_gateway == expected.aws.api_gateway


@pytest.mark.asyncio
async def test_failed_function_only_drops_its_own_contribution(make_aggregator, window):
    names = [f"fn-{i}" for i in range(6)]
    app = AppConfig(id="ilikeyacut", lambda_functions=names)
    payloads = {
        "cloudwatch": {
            "fn-0": LambdaMetrics(function_name="fn-0", invocations=1000, errors=50),
            **{n: LambdaMetrics(function_name=n) for n in names[2:]},
        }
    }
    aggregator, fakes = make_aggregator(payloads)
    aggregator.resolver = ResourceResolver({app.id: app})

    result = await aggregator.aggregate("ilikeyacut", window)

    lam = result.aws.lambda_
    assert lam.total_invocations == 1000
    assert lam.total_errors == 50
    assert lam.error_rate == pytest.approx(5.0)
    assert lam.function_count == 6
    assert result.sources[MetricCategory.LAMBDA] is SourceStatus.OK
    assert result.health.unknown_count == 1
    assert result.health.healthy_count == 5
    assert fakes["cloudwatch"].calls == names


@pytest.mark.asyncio
async def test_hanging_source_times_out_without_blocking_siblings(
    make_aggregator, healthy_payloads, window
):
    aggregator, _ = make_aggregator(
        healthy_payloads, delays={"cloudwatch": {"fn-b": 5.0}}, timeout=0.05
    )

    started = time.perf_counter()
    result = await aggregator.aggregate("demo", window)
    elapsed = time.perf_counter() - started

    assert elapsed < 2.0
    assert result.aws.lambda_.total_invocations == 1000
    assert result.health.unknown_count == 1
    assert result.sources[MetricCategory.LAMBDA] is SourceStatus.OK
    assert result.sources[MetricCategory.COST] is SourceStatus.OK


@pytest.mark.asyncio
async def test_issue_order_follows_declaration_not_completion(
    make_aggregator, healthy_payloads, window
):
    payloads = dict(healthy_payloads)
    payloads["cloudwatch"] = {
        "fn-a": LambdaMetrics(function_name="fn-a", invocations=10, errors=5),
        "fn-b": LambdaMetrics(function_name="fn-b", invocations=10, throttles=1),
        "demo-api": healthy_payloads["cloudwatch"]["demo-api"],
    }
    payloads["dynamodb"] = {
        "users": DynamoDBMetrics(table_name="users", throttled_requests=3),
        "orders": DynamoDBMetrics(table_name="orders", system_errors=1),
    }
    # fn-a and users finish last
    delays = {"cloudwatch": {"fn-a": 0.05}, "dynamodb": {"users": 0.05}}
    aggregator, _ = make_aggregator(payloads, delays=delays)

    result = await aggregator.aggregate("demo", window)

    assert result.health.issues == [
        "Lambda fn-a has high error rate: 50.00%",
        "Lambda fn-b is being throttled",
        "DynamoDB table users is being throttled",
        "DynamoDB table orders has system errors",
    ]
    assert result.health.verdict is HealthVerdict.CRITICAL
    assert result.health.degraded_count == 4
    assert result.health.healthy_count == 1


@pytest.mark.asyncio
async def test_unknown_app_gets_zero_summaries(make_aggregator, healthy_payloads, window):
    aggregator, fakes = make_aggregator(healthy_payloads)

    result = await aggregator.aggregate("nope", window)

    assert result.aws.lambda_ == LambdaSummary()
    assert result.aws.api_gateway == APIGatewaySummary()
    assert result.health.verdict is HealthVerdict.HEALTHY
    assert result.health.unknown_count == 0
    assert result.sources[MetricCategory.LAMBDA] is SourceStatus.SKIPPED
    assert result.sources[MetricCategory.APP_STORE] is SourceStatus.SKIPPED
    # Cost Explorer is account-wide and still reported
    assert result.sources[MetricCategory.COST] is SourceStatus.OK
    assert fakes["cloudwatch"].calls == []


@pytest.mark.asyncio
async def test_app_store_excluded_for_caller(make_aggregator, healthy_payloads, window):
    aggregator, fakes = make_aggregator(healthy_payloads)

    result = await aggregator.aggregate("demo", window, include_app_store=False)

    assert result.sources[MetricCategory.APP_STORE] is SourceStatus.SKIPPED
    assert result.app_store == AppStoreSummary()
    assert fakes["appstore"].calls == []


@pytest.mark.asyncio
async def test_app_store_not_configured(make_aggregator, healthy_payloads, window):
    aggregator, _ = make_aggregator(healthy_payloads, appstore=False)

    result = await aggregator.aggregate("demo", window)

    assert not aggregator.appstore_enabled
    assert result.sources[MetricCategory.APP_STORE] is SourceStatus.SKIPPED


@pytest.mark.asyncio
async def test_unexpected_adapter_exception_is_contained(
    make_aggregator, healthy_payloads, window
):
    payloads = dict(healthy_payloads)
    payloads["cost"] = {"current": RuntimeError("boom")}
    aggregator, _ = make_aggregator(payloads)

    result = await aggregator.aggregate("demo", window)

    assert result.sources[MetricCategory.COST] is SourceStatus.FAILED
    assert result.aws.cost == CostSummary()


@pytest.mark.asyncio
async def test_health_skips_cost_and_app_store(make_aggregator, healthy_payloads, window):
    aggregator, fakes = make_aggregator(healthy_payloads)

    status = await aggregator.health("demo", window)

    assert status.healthy_count == 5
    assert fakes["cost"].calls == []
    assert fakes["appstore"].calls == []


@pytest.mark.asyncio
async def test_fetch_cost_forecast(make_aggregator, healthy_payloads):
    aggregator, _ = make_aggregator(healthy_payloads)

    forecast = await aggregator.fetch_cost_forecast(30)

    assert forecast.is_ok
    assert forecast.value.total_cost == 3000.0


@pytest.mark.asyncio
async def test_unexpected_adapter_exception_logged_once(
    make_aggregator, healthy_payloads, window
):
    boom = RuntimeError("boom")
    payloads = dict(healthy_payloads)
    payloads["cost"] = {"current": boom}
    aggregator, _ = make_aggregator(payloads)

    with patch("src.services.aggregator.logger") as logger:
        await aggregator.fetch_cost(window)

    logger.exception.assert_not_called()
    logger.warning.assert_called_once()
    args, kwargs = logger.warning.call_args
    assert args == ("source_fetch_failed",)
    assert kwargs["extra"]["kind"] == "unexpected"
    assert kwargs["exc_info"] is boom


@pytest.mark.asyncio
async def test_expected_failure_logged_without_traceback(make_aggregator, window):
    aggregator, _ = make_aggregator({})

    with patch("src.services.aggregator.logger") as logger:
        await aggregator.fetch_cost(window)

    assert logger.warning.call_args.kwargs["exc_info"] is None
    assert logger.warning.call_args.kwargs["extra"]["kind"] == "error"


@pytest.mark.asyncio
async def test_health_logs_app_without_resources(make_aggregator, window):
    aggregator, fakes = make_aggregator({})

    with patch("src.services.aggregator.logger") as logger:
        status = await aggregator.health("ghost", window)

    logger.info.assert_any_call("health_no_resources", extra={"app_id": "ghost"})
    assert status.healthy_count == status.unknown_count == 0
    assert fakes["cloudwatch"].calls == []


class TestSeries:
    @pytest.mark.asyncio
    async def test_lambda_series_one_point_per_interval(
        self, make_aggregator, healthy_payloads, window
    ):
        aggregator, fakes = make_aggregator(healthy_payloads)

        series = await aggregator.lambda_series("demo", window, timedelta(hours=6))

        assert series.metric_type == "lambda:invocations"
        assert series.interval == "6h"
        assert series.metadata == {"unit": "count", "functions": "2"}
        assert series.timestamp == 1714651200
        assert [p.timestamp for p in series.series] == [
            window.start + timedelta(hours=6 * i) for i in range(4)
        ]
        assert [p.value for p in series.series] == [1500.0] * 4
        assert len(fakes["cloudwatch"].calls) == 8

    @pytest.mark.asyncio
    async def test_duration_is_mean_of_functions(
        self, make_aggregator, healthy_payloads, window
    ):
        aggregator, _ = make_aggregator(healthy_payloads)

        series = await aggregator.lambda_series(
            "demo", window, timedelta(hours=12), metric="duration"
        )

        assert series.metadata["unit"] == "milliseconds"
        assert [p.value for p in series.series] == [100.0, 100.0]

    @pytest.mark.asyncio
    async def test_failed_resources_are_flagged_not_zeroed(
        self, make_aggregator, healthy_payloads, window
    ):
        payloads = dict(healthy_payloads)
        payloads["dynamodb"] = {"users": healthy_payloads["dynamodb"]["users"]}
        aggregator, _ = make_aggregator(payloads)

        tables = await aggregator.dynamodb_series("demo", window, timedelta(hours=24))
        api = await aggregator.api_gateway_series(
            "demo", window, timedelta(hours=24), metric="errors"
        )
        ghost = await aggregator.lambda_series("ghost", window, timedelta(hours=24))

        (point,) = tables.series
        assert point.value == 50.0
        assert point.status is SourceStatus.OK
        assert point.metadata == {"resources": 2, "failed": 1}
        assert api.series[0].value == 22.0
        assert api.metadata["apiName"] == "demo-api"
        assert ghost.series[0].value is None
        assert ghost.series[0].status is SourceStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_all_failed_interval(self, make_aggregator, window):
        aggregator, _ = make_aggregator({})

        series = await aggregator.lambda_series("demo", window, timedelta(hours=24))

        assert series.series[0].value is None
        assert series.series[0].status is SourceStatus.FAILED

    @pytest.mark.asyncio
    async def test_buckets_in_flight_are_bounded(self, make_aggregator, window):
        aggregator, _ = make_aggregator()
        aggregator.series_parallelism = 2
        buckets = [
            TimeWindow(
                start=window.start + timedelta(hours=i),
                end=window.start + timedelta(hours=i + 1),
            )
            for i in range(5)
        ]
        in_flight = 0
        peak = 0

        async def fetch(name, bucket):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return (name, bucket.start)

        results = await aggregator.fetch_series(
            MetricCategory.LAMBDA, ["a", "b", "c"], buckets, fetch
        )

        assert peak <= 6
        assert [r.succeeded[0] for r in results] == [("a", b.start) for b in buckets]
        assert [r.status for r in results] == [SourceStatus.OK] * 5

    @pytest.mark.asyncio
    async def test_cost_series_daily_points(self, make_aggregator, window):
        data = CostData(
            total_cost=30.0,
            daily_costs=[
                DailyCost(date="2024-05-01", cost=10.0),
                DailyCost(date="2024-05-02", cost=20.0),
            ],
        )
        aggregator, _ = make_aggregator({"cost": {"current": data}})

        series = await aggregator.cost_series("demo", window)

        assert series.metric_type == "cost:daily"
        assert series.interval == "24h"
        assert [p.value for p in series.series] == [10.0, 20.0]
        assert series.series[0].timestamp.isoformat() == "2024-05-01T00:00:00+00:00"
        assert series.metadata == {"unit": "USD", "currency": "USD"}

    @pytest.mark.asyncio
    async def test_cost_series_failure_raises(self, make_aggregator, window):
        aggregator, _ = make_aggregator({})

        with pytest.raises(SourceUnavailableError, match="no data"):
            await aggregator.cost_series("demo", window)
