"""Per-resource health classification.

Pure function over the per-resource results gathered by the aggregator.
Resources are evaluated Lambda functions first, then the API, then
DynamoDB tables, each in declaration order, so the issue list does not
depend on which fetch finished first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from src.domain.models import (
    APIGatewayMetrics,
    DynamoDBMetrics,
    HealthStatus,
    LambdaMetrics,
)
from src.domain.results import ResourceResult

from shared.constants import MetricCategory

from .summaries import safe_rate


@dataclass(frozen=True)
class HealthThresholds:
    lambda_error_rate: float = 5.0
    api_error_rate: float = 5.0
    api_latency_ms: float = 1000.0

    @classmethod
    def from_settings(cls, settings) -> "HealthThresholds":
        return cls(
            lambda_error_rate=settings.lambda_error_rate_threshold,
            api_error_rate=settings.api_error_rate_threshold,
            api_latency_ms=settings.api_latency_threshold_ms,
        )


def lambda_issue(
    name: str, m: LambdaMetrics, thresholds: HealthThresholds
) -> Optional[str]:
    rate = safe_rate(m.errors, m.invocations)
    if rate > thresholds.lambda_error_rate:
        return f"Lambda {name} has high error rate: {rate:.2f}%"
    if m.throttles > 0:
        return f"Lambda {name} is being throttled"
    return None


def api_gateway_issue(
    name: str, m: APIGatewayMetrics, thresholds: HealthThresholds
) -> Optional[str]:
    rate = safe_rate(m.error_4xx + m.error_5xx, m.count)
    if rate > thresholds.api_error_rate:
        return f"API Gateway has high error rate: {rate:.2f}%"
    if m.latency is not None and m.latency > thresholds.api_latency_ms:
        return f"API Gateway has high latency: {m.latency:.0f}ms"
    return None


def dynamodb_issue(
    name: str, m: DynamoDBMetrics, thresholds: HealthThresholds
) -> Optional[str]:
    if m.throttled_requests > 0:
        return f"DynamoDB table {name} is being throttled"
    if m.system_errors > 0:
        return f"DynamoDB table {name} has system errors"
    return None


_CHECKS = {
    MetricCategory.LAMBDA: lambda_issue,
    MetricCategory.API_GATEWAY: api_gateway_issue,
    MetricCategory.DYNAMODB: dynamodb_issue,
}


def classify(
    results: Mapping[MetricCategory, Sequence[ResourceResult]],
    thresholds: HealthThresholds = HealthThresholds(),
) -> HealthStatus:
    healthy = degraded = unknown = 0
    issues: List[str] = []
    for category in MetricCategory.health_categories():
        check = _CHECKS[category]
        for resource in results.get(category, ()):
            if not resource.result.is_ok:
                unknown += 1
                continue
            issue = check(resource.name, resource.result.value, thresholds)
            if issue is None:
                healthy += 1
            else:
                degraded += 1
                issues.append(issue)
    return HealthStatus.from_counts(healthy, degraded, unknown, issues)
