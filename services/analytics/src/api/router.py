from fastapi import APIRouter

from .endpoints import apps, appstore, auth, health, metrics, timeseries

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(auth.router, prefix="/api")
api_router.include_router(apps.router, prefix="/api")
api_router.include_router(metrics.router, prefix="/api")
api_router.include_router(timeseries.router, prefix="/api")
api_router.include_router(appstore.router, prefix="/api")
