"""Interval bucketing and per-interval folding for metric time series.

A query window is cut into consecutive buckets of one interval each (the last
one truncated at the window end). Every bucket is fetched with the same
per-resource fan-out as the aggregate, then folded into a single SeriesPoint.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Generic, List, Optional, TypeVar

from src.domain.errors import MalformedRequestError
from src.domain.models import (
    APIGatewayMetrics,
    CostData,
    DynamoDBMetrics,
    LambdaMetrics,
    SeriesPoint,
    SourceStatus,
    TimeWindow,
)
from src.domain.results import CategoryResults

from shared.constants import CloudWatchNamespaces, CostExplorer

T = TypeVar("T")

# CloudWatch is queried at this period; shorter buckets would come back empty
MIN_INTERVAL = timedelta(seconds=CloudWatchNamespaces.DEFAULT_PERIOD_SECONDS)
DAILY = timedelta(days=1)


@dataclass(frozen=True)
class SeriesMetric(Generic[T]):
    unit: str
    extract: Callable[[T], Optional[float]]
    average: bool = False  # mean across resources instead of the sum


@dataclass(frozen=True)
class SeriesSource(Generic[T]):
    """Metrics one category can chart, keyed by their query-string name."""

    label: str
    default_metric: str
    metrics: Dict[str, SeriesMetric[T]] = field(default_factory=dict)

    def select(self, name: Optional[str]) -> tuple[str, SeriesMetric[T]]:
        name = name or self.default_metric
        metric = self.metrics.get(name)
        if metric is None:
            raise MalformedRequestError(
                f"unknown {self.label} metric {name!r}; "
                f"expected one of {', '.join(self.metrics)}"
            )
        return name, metric


LAMBDA_SERIES: SeriesSource[LambdaMetrics] = SeriesSource(
    label="lambda",
    default_metric="invocations",
    metrics={
        "invocations": SeriesMetric("count", lambda m: m.invocations),
        "errors": SeriesMetric("count", lambda m: m.errors),
        "duration": SeriesMetric("milliseconds", lambda m: m.duration, average=True),
        "throttles": SeriesMetric("count", lambda m: m.throttles),
        "concurrent": SeriesMetric("executions", lambda m: m.concurrent_executions),
    },
)

API_GATEWAY_SERIES: SeriesSource[APIGatewayMetrics] = SeriesSource(
    label="apigateway",
    default_metric="count",
    metrics={
        "count": SeriesMetric("count", lambda m: m.count),
        "latency": SeriesMetric("milliseconds", lambda m: m.latency, average=True),
        "4xx": SeriesMetric("count", lambda m: m.error_4xx),
        "5xx": SeriesMetric("count", lambda m: m.error_5xx),
        "errors": SeriesMetric("count", lambda m: m.error_4xx + m.error_5xx),
    },
)

DYNAMODB_SERIES: SeriesSource[DynamoDBMetrics] = SeriesSource(
    label="dynamodb",
    default_metric="consumed",
    metrics={
        "consumed": SeriesMetric(
            "capacity_units",
            lambda m: m.consumed_read_capacity + m.consumed_write_capacity,
        ),
        "read": SeriesMetric("capacity_units", lambda m: m.consumed_read_capacity),
        "write": SeriesMetric("capacity_units", lambda m: m.consumed_write_capacity),
        "throttles": SeriesMetric("count", lambda m: m.throttled_requests),
        "errors": SeriesMetric("count", lambda m: m.user_errors + m.system_errors),
    },
)


def auto_interval(window: TimeWindow) -> timedelta:
    span = window.end - window.start
    if span <= timedelta(hours=2):
        return timedelta(minutes=5)
    if span <= timedelta(hours=24):
        return timedelta(hours=1)
    if span <= timedelta(days=7):
        return timedelta(hours=6)
    return DAILY


def format_interval(interval: timedelta) -> str:
    minutes = int(interval.total_seconds() // 60)
    if minutes % 60 == 0:
        return f"{minutes // 60}h"
    return f"{minutes}m"


def split_window(
    window: TimeWindow, interval: timedelta, max_points: int
) -> List[TimeWindow]:
    """Consecutive buckets covering ``window``; raises when there are too many."""
    count = math.ceil((window.end - window.start) / interval)
    if count > max_points:
        raise MalformedRequestError(
            f"{count} intervals of {format_interval(interval)} exceed the "
            f"limit of {max_points}; widen the interval or narrow the window"
        )
    buckets = []
    start = window.start
    while start < window.end:
        # min() on the remainder keeps the last bucket from overflowing
        end = start + min(interval, window.end - start)
        buckets.append(TimeWindow(start=start, end=end))
        start = end
    return buckets


def fold(
    bucket: TimeWindow, results: CategoryResults[T], metric: SeriesMetric[T]
) -> SeriesPoint:
    total = len(results.resources)
    succeeded = results.succeeded
    meta = {"resources": total, "failed": total - len(succeeded)}
    if results.status is not SourceStatus.OK:
        return SeriesPoint(
            timestamp=bucket.start, value=None, status=results.status, metadata=meta
        )
    values = [v for v in (metric.extract(m) for m in succeeded) if v is not None]
    if metric.average:
        value = sum(values) / len(values) if values else 0.0
    else:
        value = float(sum(values))
    return SeriesPoint(timestamp=bucket.start, value=value, metadata=meta)


def daily_cost_points(data: CostData) -> List[SeriesPoint]:
    return [
        SeriesPoint(
            timestamp=datetime.strptime(day.date, CostExplorer.DATE_FORMAT).replace(
                tzinfo=timezone.utc
            ),
            value=day.cost,
            metadata={"currency": data.currency},
        )
        for day in data.daily_costs
    ]
