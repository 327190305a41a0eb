"""Rate limiter and window scheduler interfaces.

Request gates depend on these abstractions (not the concrete implementation)
so the per-process counter table can later move to a shared store (e.g.
Redis) once the service runs on more than one process.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume rate limit budget for a given key.

        Args:
            key: Identity key (username, or a namespaced fallback).
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def reset(self) -> None:
        """Forget every counter, starting a fresh window for all keys."""
        raise NotImplementedError


class AbstractResetScheduler(ABC):
    """Drives the periodic window reset of a rate limiter."""

    @abstractmethod
    def start(self, callback: Callable[[], None]) -> None:
        """Begin invoking ``callback`` once per window."""
        raise NotImplementedError

    @abstractmethod
    async def stop(self) -> None:
        """Stop invoking the callback. Safe to call when not started."""
        raise NotImplementedError
