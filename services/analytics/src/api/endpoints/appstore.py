from fastapi import APIRouter, Depends, HTTPException, status
from src.api.dependencies import get_aggregator, require_admin
from src.api.params import time_window
from src.api.schemas import DownloadsReport, RevenueReport
from src.domain.models import AppAnalytics, SourceStatus, TimeWindow
from src.services.aggregator import MetricsAggregator
from src.services.summaries import summarize_app_store

router = APIRouter(
    prefix="/apps/{app_id}/appstore",
    tags=["appstore"],
    dependencies=[Depends(require_admin)],
)


async def _app_analytics(
    app_id: str, window: TimeWindow, aggregator: MetricsAggregator
) -> AppAnalytics:
    if not aggregator.appstore_enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="App Store Connect is not configured",
        )
    resources = aggregator.resolver.resolve(app_id)
    if not resources.app_store_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"no App Store app configured for app {app_id}",
        )
    results = await aggregator.fetch_app_store(resources, window)
    if results.status is not SourceStatus.OK:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"failed to fetch App Store data: {results.resources[0].result.error}",
        )
    return results.succeeded[0]


@router.get("/downloads", response_model=DownloadsReport)
async def downloads(
    app_id: str,
    window: TimeWindow = Depends(time_window),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    data = await _app_analytics(app_id, window, aggregator)
    return DownloadsReport(
        app_id=app_id,
        app_name=data.app_name,
        downloads=data.downloads,
        updates=data.updates,
        period=data.period,
    )


@router.get("/revenue", response_model=RevenueReport)
async def revenue(
    app_id: str,
    window: TimeWindow = Depends(time_window),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    data = await _app_analytics(app_id, window, aggregator)
    return RevenueReport(
        app_id=app_id,
        app_name=data.app_name,
        revenue=data.revenue,
        active_devices=data.active_devices,
        arpu=summarize_app_store(data).arpu,
        period=data.period,
    )
