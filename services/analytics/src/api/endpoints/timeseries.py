from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from src.api.dependencies import api_principal, get_aggregator
from src.api.params import series_interval, time_window
from src.domain.models import TimeSeries, TimeWindow
from src.services.aggregator import MetricsAggregator
from src.services.timeseries import auto_interval

router = APIRouter(
    prefix="/apps/{app_id}/timeseries",
    tags=["timeseries"],
    dependencies=[Depends(api_principal)],
)

METRIC_HELP = "metric to chart; the category default when omitted"


@router.get("/lambda", response_model=TimeSeries)
async def lambda_series(
    app_id: str,
    metric: Optional[str] = Query(None, description=METRIC_HELP),
    window: TimeWindow = Depends(time_window),
    interval: Optional[timedelta] = Depends(series_interval),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    """Summed across functions per interval; duration is the mean."""
    return await aggregator.lambda_series(
        app_id, window, interval or auto_interval(window), metric
    )


@router.get("/apigateway", response_model=TimeSeries)
async def api_gateway_series(
    app_id: str,
    metric: Optional[str] = Query(None, description=METRIC_HELP),
    window: TimeWindow = Depends(time_window),
    interval: Optional[timedelta] = Depends(series_interval),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    if not aggregator.resolver.resolve(app_id).api_gateway:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"no API Gateway configured for app {app_id}",
        )
    return await aggregator.api_gateway_series(
        app_id, window, interval or auto_interval(window), metric
    )


@router.get("/dynamodb", response_model=TimeSeries)
async def dynamodb_series(
    app_id: str,
    metric: Optional[str] = Query(None, description=METRIC_HELP),
    window: TimeWindow = Depends(time_window),
    interval: Optional[timedelta] = Depends(series_interval),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    return await aggregator.dynamodb_series(
        app_id, window, interval or auto_interval(window), metric
    )


@router.get("/cost", response_model=TimeSeries)
async def cost_series(
    app_id: str,
    window: TimeWindow = Depends(time_window),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    # Cost Explorer reports by day regardless of the requested interval
    return await aggregator.cost_series(app_id, window)
