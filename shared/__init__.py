"""Shared utilities and components for all services."""

from .config import BaseAWSConfig, BaseLoggingConfig, BaseServiceConfig
from .constants import (
    CloudWatchNamespaces,
    CostExplorer,
    Environment,
    MetricCategory,
    MetricQueries,
)

__all__ = [
    "Environment",
    "MetricCategory",
    "CloudWatchNamespaces",
    "CostExplorer",
    "MetricQueries",
    "BaseServiceConfig",
    "BaseLoggingConfig",
    "BaseAWSConfig",
]
