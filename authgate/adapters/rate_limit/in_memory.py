"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around the counter table.
- Windows are not computed from a clock. The whole table is dropped by
  ``reset()``, which an AbstractResetScheduler calls once per window. A burst
  straddling a reset can therefore be admitted up to twice the limit.
"""

from __future__ import annotations

import math
import threading

from authgate.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Per-key request counter with a global hard reset.

    ``limit`` requests per key are admitted between two resets; the next one
    is denied without being counted. Keys never expire individually.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of allowed units per window.
            window_seconds: Reset interval, used for Retry-After hints only.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._limit = limit
        self._window_seconds = window_seconds
        self._lock = threading.RLock()
        self._counts: dict[str, int] = {}

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    @property
    def size(self) -> int:
        """Number of identities tracked in the current window."""
        with self._lock:
            return len(self._counts)

    def count_for(self, key: str) -> int:
        with self._lock:
            return self._counts.get(key, 0)

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume rate limit budget for the provided key.

        The check and the increment-or-insert happen under one lock so
        concurrent callers never observe a torn count.

        Args:
            key: Identity key for rate limiting.
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._lock:
            count = self._counts.get(key)

            if count is None:
                if cost > self._limit:
                    return self._blocked(remaining=self._limit)
                self._counts[key] = cost
                return self._allowed(remaining=self._limit - cost)

            if count + cost <= self._limit:
                self._counts[key] = count + cost
                return self._allowed(remaining=self._limit - count - cost)

            return self._blocked(remaining=max(0, self._limit - count))

    def reset(self) -> None:
        with self._lock:
            self._counts = {}

    def _allowed(self, *, remaining: int) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            limit=self._limit,
            remaining=remaining,
            retry_after_seconds=None,
        )

    def _blocked(self, *, remaining: int) -> RateLimitResult:
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=remaining,
            retry_after_seconds=max(1, int(math.ceil(self._window_seconds))),
        )
