import asyncio

from fastapi import FastAPI
from src.core.config import Settings, settings
from src.core.logger import configure_logging, get_logger
from src.domain.resources import ResourceResolver
from src.infrastructure.appstore.client import AppStoreConnectClient
from src.infrastructure.auth.jwt_manager import JWTManager
from src.infrastructure.aws.cloudwatch import CloudWatchClient
from src.infrastructure.aws.cost_explorer import CostExplorerClient
from src.infrastructure.aws.dynamodb import DynamoDBMetricsClient
from src.infrastructure.aws.session import create_client
from src.services.aggregator import MetricsAggregator
from src.services.health import HealthThresholds

from shared.utils import configure_executor

logger = get_logger("analytics.startup")


def build_appstore_client(cfg: Settings) -> AppStoreConnectClient | None:
    if not cfg.appstore_configured:
        logger.info("appstore_not_configured")
        return None
    return AppStoreConnectClient(
        key_id=cfg.appstore_key_id,
        issuer_id=cfg.appstore_issuer_id,
        private_key=cfg.appstore_private_key,
        # the aggregator abandons the call after source_timeout_seconds anyway
        timeout=min(cfg.appstore_timeout_seconds, cfg.source_timeout_seconds),
        retries=cfg.appstore_retries,
    )


def build_aggregator(cfg: Settings, resolver: ResourceResolver) -> MetricsAggregator:
    cloudwatch = create_client("cloudwatch", cfg)
    return MetricsAggregator(
        resolver=resolver,
        cloudwatch=CloudWatchClient(cloudwatch),
        dynamodb=DynamoDBMetricsClient(create_client("dynamodb", cfg), cloudwatch),
        cost=CostExplorerClient(create_client("ce", cfg)),
        appstore=build_appstore_client(cfg),
        thresholds=HealthThresholds.from_settings(cfg),
        timeout=cfg.source_timeout_seconds,
        top_services=cfg.cost_top_services,
        projection_days=cfg.projection_days,
        series_max_points=cfg.timeseries_max_points,
        series_parallelism=cfg.timeseries_parallel_buckets,
    )


def initialize_application(app: FastAPI, cfg: Settings = settings):
    """Wire adapters, aggregator and token verifier onto ``app.state``."""
    configure_logging()
    logger.info("initializing_application")
    configure_executor(cfg.source_max_workers)
    resolver = ResourceResolver(cfg.app_configs())
    app.state.resolver = resolver
    app.state.aggregator = build_aggregator(cfg, resolver)
    app.state.token_verifier = JWTManager(
        cfg.jwt_secret, cfg.jwt_issuer, cfg.jwt_ttl_seconds
    )
    app.state.ready_event = asyncio.Event()
    app.state.ready_event.set()
    logger.info(
        "application_initialized",
        extra={
            "apps": [a.id for a in resolver.all_apps()],
            "aws_region": cfg.aws_region,
            "appstore_enabled": app.state.aggregator.appstore_enabled,
            "admin_only": cfg.admin_only,
            "source_max_workers": cfg.source_max_workers,
        },
    )
