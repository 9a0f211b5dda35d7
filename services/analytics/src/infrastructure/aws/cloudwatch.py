"""CloudWatch GetMetricData adapter for Lambda and API Gateway metrics."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Sequence, Tuple

from botocore.exceptions import BotoCoreError, ClientError
from src.core.logger import get_logger
from src.domain.errors import SourceUnavailableError
from src.domain.models import (
    APIGatewayMetrics,
    LambdaMetrics,
    MetricDatapoint,
    TimeWindow,
)

from shared.constants import CloudWatchNamespaces, MetricQueries
from shared.utils import run_blocking

logger = get_logger("analytics.cloudwatch")

Series = Tuple[List[datetime], List[float]]


def build_queries(
    namespace: str, resource_name: str, queries: Sequence[Tuple[str, str, str]]
) -> List[Dict[str, Any]]:
    dimension = MetricQueries.dimension_for(namespace)
    return [
        {
            "Id": query_id,
            "MetricStat": {
                "Metric": {
                    "Namespace": namespace,
                    "MetricName": metric_name,
                    "Dimensions": [{"Name": dimension, "Value": resource_name}],
                },
                "Period": CloudWatchNamespaces.DEFAULT_PERIOD_SECONDS,
                "Stat": stat,
            },
            "ReturnData": True,
        }
        for query_id, metric_name, stat in queries
    ]


def fetch_series(
    client, queries: List[Dict[str, Any]], window: TimeWindow
) -> Dict[str, Series]:
    """Run GetMetricData across all pages; returns query id -> (timestamps, values).

    Series with no values are left out so callers can tell "no datapoints"
    apart from a genuine zero.
    """
    series: Dict[str, Series] = {}
    next_token = None
    while True:
        kwargs: Dict[str, Any] = {
            "MetricDataQueries": queries,
            "StartTime": window.start,
            "EndTime": window.end,
        }
        if next_token:
            kwargs["NextToken"] = next_token
        resp = client.get_metric_data(**kwargs)
        for result in resp.get("MetricDataResults", []):
            query_id = result.get("Id")
            values = list(result.get("Values", []))
            if not query_id or not values:
                continue
            timestamps, existing = series.setdefault(query_id, ([], []))
            timestamps.extend(result.get("Timestamps", [])[: len(values)])
            existing.extend(values)
        next_token = resp.get("NextToken")
        if not next_token:
            break
    return series


def total(series: Dict[str, Series], query_id: str) -> float:
    return float(sum(series[query_id][1])) if query_id in series else 0.0


def mean(series: Dict[str, Series], query_id: str) -> float | None:
    if query_id not in series:
        return None
    values = series[query_id][1]
    return float(sum(values) / len(values))


def maximum(series: Dict[str, Series], query_id: str) -> float | None:
    if query_id not in series:
        return None
    return float(max(series[query_id][1]))


def datapoints(
    series: Dict[str, Series], query_id: str, unit: str
) -> List[MetricDatapoint]:
    if query_id not in series:
        return []
    timestamps, values = series[query_id]
    return [
        MetricDatapoint(timestamp=ts, value=value, unit=unit)
        for ts, value in zip(timestamps, values)
    ]


class CloudWatchClient:
    def __init__(self, client):
        self._client = client

    async def get_lambda_metrics(
        self, function_name: str, window: TimeWindow
    ) -> LambdaMetrics:
        return await run_blocking(self._lambda_metrics, function_name, window)

    async def get_api_gateway_metrics(
        self, api_name: str, window: TimeWindow
    ) -> APIGatewayMetrics:
        return await run_blocking(self._api_gateway_metrics, api_name, window)

    def _lambda_metrics(self, function_name: str, window: TimeWindow) -> LambdaMetrics:
        queries = build_queries(
            CloudWatchNamespaces.LAMBDA, function_name, MetricQueries.LAMBDA
        )
        series = self._fetch("lambda", function_name, queries, window)
        return LambdaMetrics(
            function_name=function_name,
            invocations=total(series, "invocations"),
            errors=total(series, "errors"),
            duration=mean(series, "duration"),
            throttles=total(series, "throttles"),
            concurrent_executions=maximum(series, "concurrent"),
            datapoints=datapoints(series, "invocations", "Count"),
        )

    def _api_gateway_metrics(
        self, api_name: str, window: TimeWindow
    ) -> APIGatewayMetrics:
        queries = build_queries(
            CloudWatchNamespaces.API_GATEWAY, api_name, MetricQueries.API_GATEWAY
        )
        series = self._fetch("apiGateway", api_name, queries, window)
        return APIGatewayMetrics(
            api_name=api_name,
            count=total(series, "count"),
            latency=mean(series, "latency"),
            error_4xx=total(series, "error4xx"),
            error_5xx=total(series, "error5xx"),
            datapoints=datapoints(series, "count", "Count"),
        )

    def _fetch(
        self, source: str, resource: str, queries, window: TimeWindow
    ) -> Dict[str, Series]:
        try:
            return fetch_series(self._client, queries, window)
        except (ClientError, BotoCoreError) as e:
            logger.warning(
                "cloudwatch_get_metric_data_failed",
                extra={"source": source, "resource": resource, "error": str(e)},
            )
            raise SourceUnavailableError(source, resource, str(e)) from e
