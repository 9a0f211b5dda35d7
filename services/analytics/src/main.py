from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from prometheus_fastapi_instrumentator import Instrumentator
from src.api.errors import register_exception_handlers
from src.api.router import api_router
from src.core.config import settings
from src.core.logger import configure_logging, get_logger
from src.startup import initialize_application

from shared.constants import Environment
from shared.utils import shutdown_executor

configure_logging()
logger = get_logger("analytics.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("analytics_service_starting")
    initialize_application(app)
    try:
        yield
    finally:
        logger.info("analytics_service_stopping")
        app.state.ready_event.clear()
        shutdown_executor()


_docs = Environment.parse(settings.app_environment).exposes_docs

app = FastAPI(
    title="Central Analytics API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if _docs else None,
    redoc_url=None,
    openapi_url="/openapi.json" if _docs else None,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

instrumentator = Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/docs", "/openapi.json", "/metrics", "/healthz", "/readyz"],
    inprogress_name="analytics_inprogress",
    inprogress_labels=True,
)
instrumentator.instrument(app)

register_exception_handlers(app)
app.include_router(api_router)


@app.get("/metrics")
async def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
