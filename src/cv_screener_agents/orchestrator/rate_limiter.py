"""In-process sliding-window rate limiter for analysis runs."""

from __future__ import annotations

import math
import time
from collections.abc import Callable

import structlog

from cv_screener_core.exceptions import RateLimitExceededError

logger = structlog.get_logger()


def user_key(user_id: str) -> str:
    return f"u:{user_id}"


def ip_key(client_ip: str) -> str:
    return f"ip:{client_ip or 'local'}"


class SlidingWindowRateLimiter:
    """Allow at most ``max_runs`` per key within ``window_seconds``.

    State lives in process memory, so each API worker counts separately.
    """

    def __init__(
        self,
        max_runs: int = 5,
        window_seconds: float = 600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_runs = max_runs
        self._window = window_seconds
        self._clock = clock
        self._buckets: dict[str, list[float]] = {}

    def _prune(self, key: str, now: float) -> list[float]:
        stamps = [t for t in self._buckets.get(key, []) if now - t < self._window]
        if stamps:
            self._buckets[key] = stamps
        else:
            self._buckets.pop(key, None)
        return stamps

    def remaining(self, key: str) -> int:
        """Runs still allowed for a key in the current window."""
        return max(0, self._max_runs - len(self._prune(key, self._clock())))

    def acquire(self, *keys: str) -> None:
        """Count one run against every key, or none if any key is exhausted.

        Raises:
            RateLimitExceededError: If any key already used up its window.
        """
        now = self._clock()
        for key in keys:
            stamps = self._prune(key, now)
            if len(stamps) >= self._max_runs:
                retry_after = math.ceil(self._window - (now - stamps[0]))
                logger.warning("rate_limit_exceeded", key=key, retry_after=retry_after)
                msg = "Too many analyses started. Please wait a few minutes and try again."
                raise RateLimitExceededError(msg, retry_after_seconds=max(1, retry_after))

        for key in keys:
            self._buckets.setdefault(key, []).append(now)

    def reset(self) -> None:
        self._buckets.clear()
