"""Concurrent multi-source metrics aggregation.

One task per category and, inside Lambda and DynamoDB, one task per
resource. Every adapter call is bounded by a timeout and converted into a
SourceResult, so a failing or hanging source never cancels its siblings
and never fails the aggregate as a whole. Each task returns its own
result; results are only combined after the join.
"""

from __future__ import annotations

import asyncio
import time
from datetime import timedelta
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

from src.core.logger import get_logger
from src.core.metrics import (
    AGGREGATION_LATENCY_SECONDS,
    AGGREGATION_REQUESTS_TOTAL,
    SOURCE_FETCH_FAILURES_TOTAL,
    SOURCE_FETCH_LATENCY_SECONDS,
)
from src.domain.errors import SourceUnavailableError
from src.domain.models import (
    AggregateMetrics,
    APIGatewaySummary,
    AppStoreSummary,
    AWSSummary,
    CostData,
    CostSummary,
    DynamoDBSummary,
    HealthStatus,
    LambdaSummary,
    SourceStatus,
    TimeSeries,
    TimeWindow,
)
from src.domain.ports import (
    AppStoreSource,
    CloudWatchSource,
    CostSource,
    DynamoDBSource,
)
from src.domain.resources import ResourceResolver, ResourceSet
from src.domain.results import CategoryResults, ResourceResult, SourceResult

from shared.constants import MetricCategory

from .health import HealthThresholds, classify
from .summaries import (
    summarize_api_gateway,
    summarize_app_store,
    summarize_cost,
    summarize_dynamodb,
    summarize_lambda,
)
from .timeseries import (
    API_GATEWAY_SERIES,
    DYNAMODB_SERIES,
    LAMBDA_SERIES,
    SeriesSource,
    daily_cost_points,
    fold,
    format_interval,
    split_window,
)

logger = get_logger("analytics.aggregator")

T = TypeVar("T")

COST_RESOURCE = "account"


class MetricsAggregator:
    def __init__(
        self,
        resolver: ResourceResolver,
        cloudwatch: CloudWatchSource,
        dynamodb: DynamoDBSource,
        cost: CostSource,
        appstore: Optional[AppStoreSource] = None,
        thresholds: HealthThresholds = HealthThresholds(),
        timeout: float = 10.0,
        top_services: int = 5,
        projection_days: int = 30,
        series_max_points: int = 500,
        series_parallelism: int = 4,
        clock: Callable[[], float] = time.time,
    ):
        self.resolver = resolver
        self.cloudwatch = cloudwatch
        self.dynamodb = dynamodb
        self.cost = cost
        self.appstore = appstore
        self.thresholds = thresholds
        self.timeout = timeout
        self.top_services = top_services
        self.projection_days = projection_days
        self.series_max_points = series_max_points
        self.series_parallelism = series_parallelism
        self._clock = clock

    async def _call(
        self,
        category: MetricCategory,
        resource: str,
        fetch: Callable[[], Awaitable[T]],
    ) -> SourceResult[T]:
        """Run one adapter call under the timeout; never raises."""
        started = time.perf_counter()
        unexpected: Optional[Exception] = None
        try:
            value = await asyncio.wait_for(fetch(), self.timeout)
            return SourceResult.ok(value)
        except SourceUnavailableError as e:
            reason, kind = e.reason, "error"
        except asyncio.TimeoutError:
            reason, kind = f"timed out after {self.timeout:g}s", "timeout"
        except Exception as e:  # adapter bug or unexpected payload
            reason, kind = str(e) or type(e).__name__, "unexpected"
            unexpected = e
        finally:
            SOURCE_FETCH_LATENCY_SECONDS.labels(category=category.value).observe(
                time.perf_counter() - started
            )
        SOURCE_FETCH_FAILURES_TOTAL.labels(category=category.value, reason=kind).inc()
        logger.warning(
            "source_fetch_failed",
            extra={
                "category": category.value,
                "resource": resource,
                "error": reason,
                "kind": kind,
            },
            exc_info=unexpected,
        )
        return SourceResult.failed(reason)

    async def _fan_out(
        self,
        category: MetricCategory,
        names: Sequence[str],
        fetch: Callable[[str], Awaitable[T]],
    ) -> CategoryResults[T]:
        # gather keeps argument order, so results follow declaration order
        outcomes = await asyncio.gather(
            *(self._call(category, name, lambda n=name: fetch(n)) for name in names)
        )
        return CategoryResults(
            [ResourceResult(name, outcome) for name, outcome in zip(names, outcomes)]
        )

    async def fetch_lambda(self, resources: ResourceSet, window: TimeWindow):
        return await self._fan_out(
            MetricCategory.LAMBDA,
            resources.lambda_functions,
            lambda name: self.cloudwatch.get_lambda_metrics(name, window),
        )

    async def fetch_api_gateway(self, resources: ResourceSet, window: TimeWindow):
        names = [resources.api_gateway] if resources.api_gateway else []
        return await self._fan_out(
            MetricCategory.API_GATEWAY,
            names,
            lambda name: self.cloudwatch.get_api_gateway_metrics(name, window),
        )

    async def fetch_dynamodb(self, resources: ResourceSet, window: TimeWindow):
        return await self._fan_out(
            MetricCategory.DYNAMODB,
            resources.dynamodb_tables,
            lambda name: self.dynamodb.get_table_metrics(name, window),
        )

    async def fetch_cost(self, window: TimeWindow):
        return await self._fan_out(
            MetricCategory.COST,
            [COST_RESOURCE],
            lambda _: self.cost.get_cost_and_usage(window),
        )

    async def fetch_cost_forecast(self, days: int) -> SourceResult[CostData]:
        return await self._call(
            MetricCategory.COST, "forecast", lambda: self.cost.get_forecast(days)
        )

    async def fetch_app_store(self, resources: ResourceSet, window: TimeWindow):
        if self.appstore is None or not resources.app_store_id:
            return CategoryResults()
        appstore = self.appstore
        return await self._fan_out(
            MetricCategory.APP_STORE,
            [resources.app_store_id],
            lambda app_store_id: appstore.get_app_analytics(app_store_id, window),
        )

    @property
    def appstore_enabled(self) -> bool:
        return self.appstore is not None

    async def aggregate(
        self, app_id: str, window: TimeWindow, include_app_store: bool = True
    ) -> AggregateMetrics:
        AGGREGATION_REQUESTS_TOTAL.labels(kind="aggregate").inc()
        resources = self.resolver.resolve(app_id)
        if resources.is_empty:
            logger.info("aggregate_no_resources", extra={"app_id": app_id})

        async def _skipped():
            return CategoryResults()

        with AGGREGATION_LATENCY_SECONDS.time():
            lambdas, apis, tables, cost, store = await asyncio.gather(
                self.fetch_lambda(resources, window),
                self.fetch_api_gateway(resources, window),
                self.fetch_dynamodb(resources, window),
                self.fetch_cost(window),
                (
                    self.fetch_app_store(resources, window)
                    if include_app_store
                    else _skipped()
                ),
            )

        aws = AWSSummary(
            lambda_=(
                summarize_lambda(lambdas.succeeded, len(lambdas.resources))
                if lambdas.status is SourceStatus.OK
                else LambdaSummary()
            ),
            api_gateway=(
                summarize_api_gateway(apis.succeeded)
                if apis.status is SourceStatus.OK
                else APIGatewaySummary()
            ),
            dynamo_db=(
                summarize_dynamodb(tables.succeeded, len(tables.resources))
                if tables.status is SourceStatus.OK
                else DynamoDBSummary()
            ),
            cost=(
                summarize_cost(
                    cost.succeeded[0], window, self.top_services, self.projection_days
                )
                if cost.status is SourceStatus.OK
                else CostSummary()
            ),
        )
        app_store = (
            summarize_app_store(store.succeeded[0])
            if store.status is SourceStatus.OK
            else AppStoreSummary()
        )
        health = self.classify(lambdas, apis, tables)
        sources = {
            MetricCategory.LAMBDA: lambdas.status,
            MetricCategory.API_GATEWAY: apis.status,
            MetricCategory.DYNAMODB: tables.status,
            MetricCategory.COST: cost.status,
            MetricCategory.APP_STORE: store.status,
        }
        logger.info(
            "aggregate_completed",
            extra={
                "app_id": app_id,
                "sources": {k.value: v.value for k, v in sources.items()},
                "verdict": health.verdict.value,
            },
        )
        return AggregateMetrics(
            app_id=app_id,
            period=window.period_label(),
            window=window,
            timestamp=int(self._clock()),
            aws=aws,
            app_store=app_store,
            health=health,
            sources=sources,
        )

    def classify(
        self,
        lambdas: CategoryResults,
        apis: CategoryResults,
        tables: CategoryResults,
    ) -> HealthStatus:
        return classify(
            {
                MetricCategory.LAMBDA: lambdas.resources,
                MetricCategory.API_GATEWAY: apis.resources,
                MetricCategory.DYNAMODB: tables.resources,
            },
            self.thresholds,
        )

    async def health(self, app_id: str, window: TimeWindow) -> HealthStatus:
        """Health verdict from the health categories only (no cost/App Store)."""
        AGGREGATION_REQUESTS_TOTAL.labels(kind="health").inc()
        resources = self.resolver.resolve(app_id)
        if resources.health_resource_count == 0:
            logger.info("health_no_resources", extra={"app_id": app_id})
        with AGGREGATION_LATENCY_SECONDS.time():
            lambdas, apis, tables = await asyncio.gather(
                self.fetch_lambda(resources, window),
                self.fetch_api_gateway(resources, window),
                self.fetch_dynamodb(resources, window),
            )
        return self.classify(lambdas, apis, tables)

    async def fetch_series(
        self,
        category: MetricCategory,
        names: Sequence[str],
        buckets: Sequence[TimeWindow],
        fetch: Callable[[str, TimeWindow], Awaitable[T]],
    ) -> List[CategoryResults[T]]:
        """One fan-out per bucket, in bucket order.

        At most ``series_parallelism`` buckets are in flight so a long series
        does not queue hundreds of blocking calls at once.
        """
        gate = asyncio.Semaphore(self.series_parallelism)

        async def _bucket(bucket: TimeWindow) -> CategoryResults[T]:
            async with gate:
                return await self._fan_out(
                    category, names, lambda name: fetch(name, bucket)
                )

        return list(await asyncio.gather(*(_bucket(b) for b in buckets)))

    async def _resource_series(
        self,
        app_id: str,
        category: MetricCategory,
        source: SeriesSource,
        names: Sequence[str],
        window: TimeWindow,
        interval: timedelta,
        metric: Optional[str],
        fetch: Callable[[str, TimeWindow], Awaitable[T]],
        metadata: Dict[str, str],
    ) -> TimeSeries:
        metric_name, series_metric = source.select(metric)
        buckets = split_window(window, interval, self.series_max_points)
        AGGREGATION_REQUESTS_TOTAL.labels(kind="timeseries").inc()
        with AGGREGATION_LATENCY_SECONDS.time():
            results = await self.fetch_series(category, names, buckets, fetch)
        return TimeSeries(
            app_id=app_id,
            metric_type=f"{source.label}:{metric_name}",
            period=window.period_label(),
            interval=format_interval(interval),
            series=[fold(b, r, series_metric) for b, r in zip(buckets, results)],
            metadata={"unit": series_metric.unit, **metadata},
            timestamp=int(self._clock()),
        )

    async def lambda_series(
        self,
        app_id: str,
        window: TimeWindow,
        interval: timedelta,
        metric: Optional[str] = None,
    ) -> TimeSeries:
        functions = self.resolver.resolve(app_id).lambda_functions
        return await self._resource_series(
            app_id,
            MetricCategory.LAMBDA,
            LAMBDA_SERIES,
            functions,
            window,
            interval,
            metric,
            self.cloudwatch.get_lambda_metrics,
            {"functions": str(len(functions))},
        )

    async def api_gateway_series(
        self,
        app_id: str,
        window: TimeWindow,
        interval: timedelta,
        metric: Optional[str] = None,
    ) -> TimeSeries:
        api_name = self.resolver.resolve(app_id).api_gateway
        return await self._resource_series(
            app_id,
            MetricCategory.API_GATEWAY,
            API_GATEWAY_SERIES,
            [api_name] if api_name else [],
            window,
            interval,
            metric,
            self.cloudwatch.get_api_gateway_metrics,
            {"apiName": api_name or ""},
        )

    async def dynamodb_series(
        self,
        app_id: str,
        window: TimeWindow,
        interval: timedelta,
        metric: Optional[str] = None,
    ) -> TimeSeries:
        tables = self.resolver.resolve(app_id).dynamodb_tables
        return await self._resource_series(
            app_id,
            MetricCategory.DYNAMODB,
            DYNAMODB_SERIES,
            tables,
            window,
            interval,
            metric,
            self.dynamodb.get_table_metrics,
            {"tables": str(len(tables))},
        )

    async def cost_series(self, app_id: str, window: TimeWindow) -> TimeSeries:
        """Daily account-wide cost; raises SourceUnavailableError on failure."""
        AGGREGATION_REQUESTS_TOTAL.labels(kind="timeseries").inc()
        results = await self.fetch_cost(window)
        if results.status is not SourceStatus.OK:
            failure = results.resources[0].result.error or "unknown error"
            raise SourceUnavailableError("cost", COST_RESOURCE, failure)
        data = results.succeeded[0]
        return TimeSeries(
            app_id=app_id,
            metric_type="cost:daily",
            period=window.period_label(),
            interval="24h",
            series=daily_cost_points(data),
            metadata={"unit": data.currency, "currency": data.currency},
            timestamp=int(self._clock()),
        )
