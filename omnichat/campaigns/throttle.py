"""Token bucket used to pace broadcast sends."""

import asyncio
import time
from collections.abc import Awaitable, Callable


class TokenBucket:
    """
    Async token bucket.

    Holds at most ``capacity`` tokens and refills at ``rate`` tokens per
    second. acquire() waits only as long as needed for the next token, so
    slow sends consume the budget naturally and fast ones are held back.
    """

    def __init__(
        self,
        rate: float,
        capacity: int,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if rate <= 0:
            raise ValueError("rate must be positive")
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.rate = rate
        self.capacity = capacity
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(capacity)
        self._updated = clock()
        self._lock = asyncio.Lock()

    @property
    def tokens(self) -> float:
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
        self._updated = now

    async def acquire(self, tokens: float = 1.0) -> float:
        """
        Take tokens, waiting for the bucket to refill if necessary.

        Returns:
            Seconds spent waiting
        """
        if tokens > self.capacity:
            raise ValueError("cannot acquire more tokens than the bucket capacity")

        waited = 0.0
        async with self._lock:
            self._refill()
            if self._tokens < tokens:
                waited = (tokens - self._tokens) / self.rate
                await self._sleep(waited)
                self._refill()
            # The computed wait covers the deficit; float drift must not re-loop
            self._tokens = max(0.0, self._tokens - tokens)
        return waited
