from .concurrency import configure_executor, run_blocking, shutdown_executor
from .retry import retry

__all__ = ["configure_executor", "retry", "run_blocking", "shutdown_executor"]
