"""Rate-limited task queue with a concurrency of one."""

import asyncio
import time
from typing import Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")


class SequentialTaskQueue:
    """Run awaitables one at a time with a minimum gap between them.

    Outbound provider calls go through this queue so that at most one is in
    flight and consecutive calls are at least `delay` seconds apart, measured
    from the end of one task to the start of the next.
    """

    def __init__(self, delay: float = 0.0):
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.delay = delay
        self._lock = asyncio.Lock()
        self._last_finished: Optional[float] = None

    async def run(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """Wait for the queue, honour the delay, then await func(*args, **kwargs)."""
        async with self._lock:
            if self._last_finished is not None and self.delay > 0:
                remaining = self.delay - (time.monotonic() - self._last_finished)
                if remaining > 0:
                    await asyncio.sleep(remaining)
            try:
                return await func(*args, **kwargs)
            finally:
                self._last_finished = time.monotonic()
