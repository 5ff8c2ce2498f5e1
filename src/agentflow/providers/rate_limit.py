"""Per-provider token buckets with a full refill every window."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

REFILL_WINDOW_SECONDS = 60.0


@dataclass(slots=True)
class TokenBucket:
    """Remaining calls for one provider in the current window."""

    tokens: int
    last_refill: float


class ProviderRateLimiter:
    """In-memory buckets keyed by provider id, owned by one provider manager.

    An empty bucket is advisory by default: the caller pauses for
    ``pause_seconds`` and still attempts the call. With ``blocking=True`` the
    caller waits until the window refills instead.
    """

    def __init__(
        self,
        *,
        calls_per_window: int = 60,
        window_seconds: float = REFILL_WINDOW_SECONDS,
        pause_seconds: float = 0.1,
        blocking: bool = False,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if calls_per_window <= 0:
            raise ValueError("calls_per_window must be > 0")
        self.calls_per_window = calls_per_window
        self.window_seconds = window_seconds
        self.pause_seconds = pause_seconds
        self.blocking = blocking
        self._clock = clock
        self._sleep = sleep
        self._buckets: dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    def try_consume(self, provider_id: str) -> bool:
        """Take one token if available."""

        with self._lock:
            now = self._clock()
            bucket = self._buckets.get(provider_id)
            if bucket is None:
                bucket = TokenBucket(tokens=self.calls_per_window, last_refill=now)
                self._buckets[provider_id] = bucket
            if now - bucket.last_refill >= self.window_seconds:
                bucket.tokens = self.calls_per_window
                bucket.last_refill = now
            if bucket.tokens <= 0:
                return False
            bucket.tokens -= 1
            return True

    def seconds_until_refill(self, provider_id: str) -> float:
        with self._lock:
            bucket = self._buckets.get(provider_id)
            if bucket is None:
                return 0.0
            return max(0.0, bucket.last_refill + self.window_seconds - self._clock())

    def remaining(self, provider_id: str) -> int:
        with self._lock:
            bucket = self._buckets.get(provider_id)
            return self.calls_per_window if bucket is None else bucket.tokens

    async def acquire(self, provider_id: str) -> bool:
        """Wait according to policy; return whether a token was actually taken."""

        if self.try_consume(provider_id):
            return True
        if not self.blocking:
            logger.debug("Rate limit exhausted for provider %s; pausing", provider_id)
            await self._sleep(self.pause_seconds)
            return False
        while not self.try_consume(provider_id):
            delay = max(self.pause_seconds, self.seconds_until_refill(provider_id))
            logger.debug("Rate limit exhausted for provider %s; waiting %.2fs", provider_id, delay)
            await self._sleep(delay)
        return True

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()
