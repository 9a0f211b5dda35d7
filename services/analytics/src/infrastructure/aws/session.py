import boto3
from botocore.config import Config
from src.core.config import Settings


def client_config(settings: Settings) -> Config:
    """Region, retry budget and socket timeouts for every AWS client.

    Socket timeouts split the per-source budget across the retry attempts so
    a hung call frees its worker thread about when the aggregator gives up.
    """
    per_attempt = max(1.0, settings.source_timeout_seconds / settings.aws_max_attempts)
    return Config(
        region_name=settings.aws_region,
        retries={"max_attempts": settings.aws_max_attempts, "mode": "standard"},
        connect_timeout=per_attempt,
        read_timeout=per_attempt,
    )


def create_client(service_name: str, settings: Settings):
    return boto3.client(service_name, config=client_config(settings))
