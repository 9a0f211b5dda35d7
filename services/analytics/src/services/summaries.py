"""Fold per-resource payloads into category summaries.

Counters are summed; latency/duration style values are averaged over the
resources that actually reported them. Every rate is 0 when its
denominator is 0.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from src.domain.models import (
    APIGatewayMetrics,
    APIGatewaySummary,
    AppAnalytics,
    AppStoreSummary,
    CostData,
    CostSummary,
    DynamoDBMetrics,
    DynamoDBSummary,
    LambdaMetrics,
    LambdaSummary,
    TimeWindow,
)


def safe_rate(numerator: float, denominator: float) -> float:
    """Percentage ``numerator / denominator * 100``; 0 for a zero denominator."""
    if not denominator:
        return 0.0
    return numerator / denominator * 100


def _mean(values: Sequence[Optional[float]]) -> float:
    present = [v for v in values if v is not None]
    return sum(present) / len(present) if present else 0.0


def summarize_lambda(
    functions: Sequence[LambdaMetrics], function_count: int
) -> LambdaSummary:
    invocations = sum(f.invocations for f in functions)
    errors = sum(f.errors for f in functions)
    concurrency = [
        f.concurrent_executions
        for f in functions
        if f.concurrent_executions is not None
    ]
    return LambdaSummary(
        total_invocations=invocations,
        total_errors=errors,
        error_rate=safe_rate(errors, invocations),
        average_duration=_mean([f.duration for f in functions]),
        total_throttles=sum(f.throttles for f in functions),
        max_concurrent_executions=max(concurrency) if concurrency else 0.0,
        function_count=function_count,
    )


def summarize_api_gateway(apis: Sequence[APIGatewayMetrics]) -> APIGatewaySummary:
    requests = sum(a.count for a in apis)
    err_4xx = sum(a.error_4xx for a in apis)
    err_5xx = sum(a.error_5xx for a in apis)
    return APIGatewaySummary(
        total_requests=requests,
        total_4xx_errors=err_4xx,
        total_5xx_errors=err_5xx,
        error_rate=safe_rate(err_4xx + err_5xx, requests),
        average_latency=_mean([a.latency for a in apis]),
    )


def summarize_dynamodb(
    tables: Sequence[DynamoDBMetrics], table_count: int
) -> DynamoDBSummary:
    return DynamoDBSummary(
        total_read_capacity=sum(t.consumed_read_capacity for t in tables),
        total_write_capacity=sum(t.consumed_write_capacity for t in tables),
        total_throttles=sum(t.throttled_requests for t in tables),
        total_errors=sum(t.user_errors + t.system_errors for t in tables),
        table_count=table_count,
        total_item_count=sum(t.item_count for t in tables),
        total_size_bytes=sum(t.table_size_bytes for t in tables),
    )


def summarize_cost(
    data: CostData,
    window: TimeWindow,
    top_services: int = 5,
    projection_days: int = 30,
) -> CostSummary:
    days = window.days
    daily_average = data.total_cost / days if days > 0 else 0.0
    ranked: List = sorted(data.services, key=lambda s: s.cost, reverse=True)
    return CostSummary(
        current_period=data.total_cost,
        daily_average=daily_average,
        projected_month=daily_average * projection_days,
        currency=data.currency,
        top_services=ranked[:top_services],
    )


def summarize_app_store(data: AppAnalytics) -> AppStoreSummary:
    return AppStoreSummary(
        downloads=data.downloads,
        updates=data.updates,
        revenue=data.revenue,
        arpu=data.revenue / data.active_devices if data.active_devices else 0.0,
        active_devices=data.active_devices,
        average_rating=data.ratings.average_rating,
        total_ratings=data.ratings.total_ratings,
    )
