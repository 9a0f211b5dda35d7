from .aws import CloudWatchNamespaces, CostExplorer, MetricQueries
from .categories import MetricCategory
from .environments import Environment

__all__ = [
    "CloudWatchNamespaces",
    "CostExplorer",
    "Environment",
    "MetricCategory",
    "MetricQueries",
]
