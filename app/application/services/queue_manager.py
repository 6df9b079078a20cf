"""QueueManager — durable backlog of unassigned orders and its ordered replay."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from app.application.ports.queue_repo import QueueRepository
from app.application.ports.transaction import TransactionManager
from app.domain.entities.queue_entry import QueueEntry
from app.domain.errors import InvalidTransition

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueueManager:
    """Owns QueueEntry rows.

    ``enqueue``, ``live_entry`` and ``close`` run inside the caller's
    transaction. ``drain_ready`` and ``pending`` open their own.
    """

    def __init__(
        self,
        queue_repo: QueueRepository,
        tx: TransactionManager,
        drain_lock: asyncio.Lock | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._queue = queue_repo
        self._tx = tx
        self._drain_lock = drain_lock or asyncio.Lock()
        self._clock = clock

    async def enqueue(self, order_id: str, priority: int = 0) -> QueueEntry:
        """Insert a live entry. One-live-entry-per-order is the caller's job."""
        entry = QueueEntry(
            id=None,
            order_id=order_id,
            priority=priority,
            queued_at=self._clock(),
        )
        return await self._queue.add(entry)

    async def live_entry(self, order_id: str) -> QueueEntry | None:
        return await self._queue.get_live(order_id)

    async def close(self, entry: QueueEntry) -> None:
        entry.processed_at = self._clock()
        await self._queue.mark_processed(entry.id, entry.processed_at)

    async def pending(self) -> list[QueueEntry]:
        async with self._tx.atomic():
            return await self._queue.list_unprocessed()

    async def drain_ready(self, assign: Callable[[str], Awaitable]) -> int:
        """Replay the backlog in priority/FIFO order through *assign*.

        *assign* is the engine's ``assign_order``; a successful assignment
        stamps the entry's processed_at in the same transaction. The first
        order that comes back queued stops the drain: later entries never
        overtake an earlier one, even if they could have been served.

        Returns the number of orders assigned.
        """
        async with self._drain_lock:
            async with self._tx.atomic():
                entries = await self._queue.list_unprocessed()

            if not entries:
                return 0

            processed = 0
            for entry in entries:
                try:
                    result = await assign(entry.order_id)
                except InvalidTransition:
                    # Order left the backlog by another path; the entry is stale.
                    logger.warning(
                        "Queue entry %s: order %s is no longer assignable, closing entry",
                        entry.id, entry.order_id,
                    )
                    async with self._tx.atomic():
                        live = await self.live_entry(entry.order_id)
                        if live is not None:
                            await self.close(live)
                    continue

                if result.queued:
                    logger.info(
                        "Queue drain blocked at order %s (priority=%d), no agent available",
                        entry.order_id, entry.priority,
                    )
                    break
                processed += 1

            logger.info("Processed %d queued orders", processed)
            return processed
