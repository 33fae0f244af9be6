"""
Sliding-window rate limiting for capability sources.
"""

from typing import Callable, Deque, Dict
from collections import deque
import time

from adapters.base import RateLimit


class SlidingWindowRateLimiter:
    """
    Per-key rolling timestamp lists.

    ``try_acquire`` purges timestamps older than the window, refuses when the
    key is at or over its cap, and otherwise records the attempt.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._calls: Dict[str, Deque[float]] = {}

    def _purge(self, key: str, limit: RateLimit, now: float) -> Deque[float]:
        calls = self._calls.setdefault(key, deque())
        window = limit.window_ms / 1000.0
        while calls and now - calls[0] >= window:
            calls.popleft()
        return calls

    def try_acquire(self, key: str, limit: RateLimit) -> bool:
        now = self._clock()
        calls = self._purge(key, limit, now)
        if len(calls) >= limit.max_per_window:
            return False
        calls.append(now)
        return True

    def calls_in_window(self, key: str, limit: RateLimit) -> int:
        return len(self._purge(key, limit, self._clock()))

    def reset(self, key: str) -> None:
        self._calls.pop(key, None)
