"""Background sweep that periodically replays the order queue.

Complements the call-site triggers (agent online, order completed); it only
catches capacity that appeared without one of those events.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from app.application.use_cases.distribute_orders import DistributionCoordinator
from app.domain.errors import StoreUnavailable

logger = logging.getLogger(__name__)


class QueueSweeper:
    def __init__(
        self,
        coordinator_scope: Callable[[], AbstractAsyncContextManager[DistributionCoordinator]],
        interval_seconds: float,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._scope = coordinator_scope
        self._interval = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        async with self._scope() as coordinator:
            return await coordinator.process_queue()

    async def _loop(self) -> None:
        while True:
            try:
                processed = await self.run_once()
                if processed:
                    logger.info("Queue sweep assigned %d orders", processed)
            except StoreUnavailable as e:
                logger.warning("Queue sweep skipped, store unavailable: %s", e)
            except Exception:
                logger.exception("Queue sweep failed")
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="queue-sweeper")
        logger.info("Queue sweeper started (every %.1fs)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Queue sweeper stopped")
