"""Shared configuration base classes.

Provides common configuration patterns used across all services to reduce
duplication and ensure consistency.
"""

from pydantic_settings import BaseSettings


class BaseLoggingConfig(BaseSettings):
    """Common logging configuration for all services."""

    app_log_level: str = "INFO"
    app_log_redaction_patterns: list[str] = [
        "password",
        "token",
        "secret",
        "private_key",
        "authorization",
        "cookie",
    ]
    app_environment: str = "production"


class BaseAWSConfig(BaseSettings):
    """Common AWS SDK configuration for all services."""

    aws_region: str = "us-east-1"
    aws_max_attempts: int = 3  # botocore "standard" retry mode budget


class BaseServiceConfig(BaseLoggingConfig, BaseAWSConfig):
    """Base configuration combining logging and AWS settings.

    Services should inherit from this and add their own specific settings.
    The otel_service_name should be overridden by each service.
    """

    otel_service_name: str = "unknown"  # Should be overridden by service


__all__ = ["BaseLoggingConfig", "BaseAWSConfig", "BaseServiceConfig"]
