from shared.metrics import get_counter, get_histogram

from .config import settings

_SERVICE = settings.otel_service_name

AGGREGATION_REQUESTS_TOTAL = get_counter(
    "aggregation_requests_total",
    "Aggregation runs started, by endpoint kind.",
    service=_SERVICE,
    labelnames=("kind",),
)
AGGREGATION_LATENCY_SECONDS = get_histogram(
    "aggregation_latency_seconds",
    "Wall time of one fan-out across all metric categories.",
    service=_SERVICE,
    buckets=[0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
)
SOURCE_FETCH_LATENCY_SECONDS = get_histogram(
    "source_fetch_latency_seconds",
    "Latency of a single adapter call.",
    service=_SERVICE,
    labelnames=("category",),
)
SOURCE_FETCH_FAILURES_TOTAL = get_counter(
    "source_fetch_failures_total",
    "Adapter calls that failed or timed out.",
    service=_SERVICE,
    labelnames=("category", "reason"),
)
