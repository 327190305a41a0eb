"""Window reset schedulers for fixed-window rate limiters."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Callable

from authgate.adapters.rate_limit.base import AbstractResetScheduler

logger = logging.getLogger(__name__)


class AsyncioIntervalScheduler(AbstractResetScheduler):
    """Calls the reset callback every ``interval_seconds`` on the running loop.

    The reset fires regardless of in-flight requests. Must be started from
    inside a running event loop (the app lifespan does this).
    """

    def __init__(self, *, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, callback: Callable[[], None]) -> None:
        if self.running:
            raise RuntimeError("scheduler already started")
        self._task = asyncio.get_running_loop().create_task(
            self._run(callback), name="rate-limit-window-reset"
        )
        logger.info(
            "rate_limit.scheduler_started",
            extra={"interval_s": self._interval},
        )

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("rate_limit.scheduler_stopped")

    async def _run(self, callback: Callable[[], None]) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                callback()
            except Exception:
                # A failed reset must not kill the window clock.
                logger.exception("rate_limit.reset_failed")
