import asyncio
from typing import Callable, Optional, TypeVar

from prometheus_client import Histogram

T = TypeVar("T")


async def run_blocking(
    func: Callable[..., T], *args, histogram: Optional[Histogram] = None, **kwargs
) -> T:
    """Run a blocking call in a worker thread.

    When ``histogram`` is given the wall time of the call, including time
    spent waiting for a free worker, is observed into it.
    """
    if histogram is None:
        return await asyncio.to_thread(func, *args, **kwargs)
    with histogram.time():
        return await asyncio.to_thread(func, *args, **kwargs)
