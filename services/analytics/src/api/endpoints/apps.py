from fastapi import APIRouter, Depends
from src.api.dependencies import api_principal, get_aggregator, get_resolver
from src.api.params import time_window
from src.api.schemas import AppInfo, AppList
from src.core.config import settings
from src.domain.models import AggregateMetrics, HealthStatus, Principal, TimeWindow
from src.domain.resources import ResourceResolver
from src.services.aggregator import MetricsAggregator

router = APIRouter(prefix="/apps", tags=["apps"])


@router.get("", response_model=AppList)
async def list_apps(
    _: Principal = Depends(api_principal),
    resolver: ResourceResolver = Depends(get_resolver),
):
    return AppList(
        apps=[
            AppInfo(
                id=app.id,
                name=app.name,
                environment=app.environment,
                app_store_configured=bool(app.app_store_id),
                lambda_function_count=len(app.lambda_functions),
                dynamodb_table_count=len(app.dynamodb_tables),
                api_gateway=app.api_gateway or None,
            )
            for app in resolver.all_apps()
        ]
    )


@router.get("/{app_id}/metrics/aggregated", response_model=AggregateMetrics)
async def aggregated_metrics(
    app_id: str,
    principal: Principal = Depends(api_principal),
    window: TimeWindow = Depends(time_window),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    """All categories plus health; partial source outages never fail this call."""
    return await aggregator.aggregate(
        app_id, window, include_app_store=principal.is_admin
    )


@router.get("/{app_id}/health", response_model=HealthStatus)
async def app_health(
    app_id: str,
    _: Principal = Depends(api_principal),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    window = TimeWindow.last(hours=settings.health_window_hours)
    return await aggregator.health(app_id, window)
