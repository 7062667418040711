import asyncio
import inspect
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterator, Optional, Tuple, Type, TypeVar

T = TypeVar("T")

OnRetry = Callable[[int, BaseException, float], Optional[Awaitable[None]]]


@dataclass(frozen=True)
class Backoff:
    """Exponential delays ``base, 2*base, 4*base ...`` capped at ``cap``.

    Each delay is stretched by up to ``jitter`` of itself.
    """

    base: float = 0.5
    cap: float = 10.0
    jitter: float = 0.1

    def delays(self) -> Iterator[float]:
        delay = self.base
        while True:
            step = min(delay, self.cap)
            yield step + random.uniform(0, step * self.jitter)
            delay = step * 2


async def retry_async(
    func: Callable[[], Awaitable[T]],
    attempts: int = 5,
    backoff: Backoff = Backoff(),
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    on_retry: Optional[OnRetry] = None,
) -> T:
    """Await ``func`` up to ``attempts`` times, sleeping between failures.

    ``on_retry(attempt, exc, sleep_for)`` may be sync or async. The last failure
    propagates once attempts run out; errors outside ``retry_on`` propagate at once.
    """
    delays = backoff.delays()
    for attempt in range(1, attempts + 1):
        try:
            return await func()
        except retry_on as exc:
            if attempt == attempts:
                raise
            sleep_for = next(delays)
            if on_retry is not None:
                result = on_retry(attempt, exc, sleep_for)
                if inspect.isawaitable(result):
                    await result
            await asyncio.sleep(sleep_for)
    raise ValueError("attempts must be at least 1")
