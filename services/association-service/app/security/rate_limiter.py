"""Rate limiting for association mutations."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict, deque
from threading import Lock
from typing import Callable, Deque

from ..config import Settings

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """Thread-safe sliding window rate limiter kept in process memory.

    Keys are ordered by their most recent request, so keys that have been idle
    for a whole window sit at the front and are evicted on the next call.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._events: OrderedDict[str, Deque[float]] = OrderedDict()
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._events)

    def allow(self, key: str) -> bool:
        """Return ``True`` when the request is within the configured rate limit."""
        now = self._clock()
        with self._lock:
            self._evict_idle(now)
            events = self._events.setdefault(key, deque())
            self._events.move_to_end(key)
            while events and now - events[0] > self._window:
                events.popleft()
            if len(events) >= self._max_requests:
                return False
            events.append(now)
            return True

    def _evict_idle(self, now: float) -> None:
        while self._events:
            key, events = next(iter(self._events.items()))
            if events and now - events[-1] <= self._window:
                return
            del self._events[key]


def build_rate_limiter(settings: Settings) -> SlidingWindowRateLimiter:
    logger.info(
        "rate limiting mutations to %s per %ss",
        settings.rate_limit_requests,
        settings.rate_limit_window_seconds,
    )
    return SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
