from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, status
from src.api.dependencies import api_principal, get_aggregator
from src.api.params import time_window
from src.api.schemas import APIGatewayReport, CostReport, DynamoDBReport, LambdaReport
from src.core.config import settings
from src.domain.models import Principal, SourceStatus, TimeWindow
from src.domain.results import CategoryResults
from src.services.aggregator import MetricsAggregator
from src.services.summaries import (
    summarize_api_gateway,
    summarize_cost,
    summarize_dynamodb,
    summarize_lambda,
)

router = APIRouter(
    prefix="/apps/{app_id}/metrics",
    tags=["metrics"],
    dependencies=[Depends(api_principal)],
)


def _failures(results: CategoryResults) -> Dict[str, str]:
    return {
        r.name: r.result.error or ""
        for r in results.resources
        if not r.result.is_ok
    }


def _bad_gateway(results: CategoryResults, what: str) -> HTTPException:
    reasons = "; ".join(f"{k}: {v}" for k, v in _failures(results).items())
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"failed to fetch {what}: {reasons}",
    )


@router.get("/lambda", response_model=LambdaReport)
async def lambda_metrics(
    app_id: str,
    window: TimeWindow = Depends(time_window),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    results = await aggregator.fetch_lambda(aggregator.resolver.resolve(app_id), window)
    if results.status is SourceStatus.FAILED:
        raise _bad_gateway(results, "Lambda metrics")
    return LambdaReport(
        app_id=app_id,
        window=window,
        functions=results.succeeded,
        failed=_failures(results),
        summary=summarize_lambda(results.succeeded, len(results.resources)),
    )


@router.get("/api-gateway", response_model=APIGatewayReport)
async def api_gateway_metrics(
    app_id: str,
    window: TimeWindow = Depends(time_window),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    resources = aggregator.resolver.resolve(app_id)
    if not resources.api_gateway:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"no API Gateway configured for app {app_id}",
        )
    results = await aggregator.fetch_api_gateway(resources, window)
    if results.status is not SourceStatus.OK:
        raise _bad_gateway(results, "API Gateway metrics")
    return APIGatewayReport(
        app_id=app_id,
        window=window,
        metrics=results.succeeded[0],
        summary=summarize_api_gateway(results.succeeded),
    )


@router.get("/dynamodb", response_model=DynamoDBReport)
async def dynamodb_metrics(
    app_id: str,
    window: TimeWindow = Depends(time_window),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    results = await aggregator.fetch_dynamodb(
        aggregator.resolver.resolve(app_id), window
    )
    if results.status is SourceStatus.FAILED:
        raise _bad_gateway(results, "DynamoDB metrics")
    return DynamoDBReport(
        app_id=app_id,
        window=window,
        tables=results.succeeded,
        failed=_failures(results),
        summary=summarize_dynamodb(results.succeeded, len(results.resources)),
    )


@router.get("/costs", response_model=CostReport)
async def cost_metrics(
    app_id: str,
    window: TimeWindow = Depends(time_window),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    # Cost Explorer data is account-wide, not per app
    results = await aggregator.fetch_cost(window)
    if results.status is not SourceStatus.OK:
        raise _bad_gateway(results, "cost data")
    forecast = await aggregator.fetch_cost_forecast(settings.cost_forecast_days)
    current = results.succeeded[0]
    return CostReport(
        app_id=app_id,
        window=window,
        current=current,
        summary=summarize_cost(
            current, window, settings.cost_top_services, settings.projection_days
        ),
        forecast=forecast.value if forecast.is_ok else None,
    )
