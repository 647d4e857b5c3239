import asyncio
import logging
from typing import Awaitable, Callable, Iterable, List, Optional, TypeVar

logger = logging.getLogger("discogs_proxy.task_pool")

_T = TypeVar("_T")
_R = TypeVar("_R")

SleepFn = Callable[[float], Awaitable[None]]


class WavePool:
    """Run coroutines in fixed-size concurrent waves with a pause between waves.

    Waves execute strictly one after another; results come back in input order.
    """

    def __init__(self, batch_size: int = 5, delay_ms: int = 1000, sleep: Optional[SleepFn] = None):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.batch_size = batch_size
        self.delay_ms = max(delay_ms, 0)
        self._sleep = sleep or asyncio.sleep

    async def run(self, items: Iterable[_T], worker: Callable[[_T], Awaitable[_R]]) -> List[_R]:
        pending = list(items)
        results: List[_R] = []
        for start in range(0, len(pending), self.batch_size):
            if start and self.delay_ms:
                await self._sleep(self.delay_ms / 1000)
            wave = pending[start:start + self.batch_size]
            logger.debug("wave_start", extra={"offset": start, "size": len(wave)})
            results.extend(await asyncio.gather(*(worker(item) for item in wave)))
        return results
