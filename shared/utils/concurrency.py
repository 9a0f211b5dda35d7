import asyncio
import functools
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, TypeVar

T = TypeVar("T")

_executor: Optional[ThreadPoolExecutor] = None


def configure_executor(max_workers: int) -> ThreadPoolExecutor:
    """Route run_blocking through a dedicated pool of ``max_workers`` threads.

    The default executor is shared with everything else in the process; a
    fan-out of blocking SDK calls waiting in its queue would eat into the
    per-call timeout.
    """
    global _executor
    previous = _executor
    _executor = ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix="blocking-io"
    )
    if previous is not None:
        previous.shutdown(wait=False)
    return _executor


def shutdown_executor() -> None:
    global _executor
    if _executor is not None:
        _executor.shutdown(wait=False, cancel_futures=True)
        _executor = None


async def run_blocking(func: Callable[..., T], *args, **kwargs) -> T:
    """Run blocking function in the configured pool, else the default executor.

    boto3 and requests are synchronous; every adapter call goes through here
    so the event loop keeps serving other category tasks meanwhile.
    """
    if _executor is None:
        return await asyncio.to_thread(func, *args, **kwargs)
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        _executor, functools.partial(func, *args, **kwargs)
    )
