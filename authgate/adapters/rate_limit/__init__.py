"""Rate limiting adapters.

This package provides a small abstraction layer so the service can start with
an in-memory limiter and later migrate to Redis or another shared store without
changing the API layer.
"""

from authgate.adapters.rate_limit.base import (
    AbstractRateLimiter,
    AbstractResetScheduler,
    RateLimitResult,
)
from authgate.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from authgate.adapters.rate_limit.scheduler import AsyncioIntervalScheduler

__all__ = [
    "AbstractRateLimiter",
    "AbstractResetScheduler",
    "AsyncioIntervalScheduler",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitResult",
]
