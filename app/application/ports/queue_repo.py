"""Port interface for the order backlog."""

from abc import ABC, abstractmethod
from datetime import datetime

from app.domain.entities.queue_entry import QueueEntry


class QueueRepository(ABC):
    @abstractmethod
    async def add(self, entry: QueueEntry) -> QueueEntry:
        ...

    @abstractmethod
    async def get_live(self, order_id: str) -> QueueEntry | None:
        """The unprocessed entry for *order_id*, if any."""
        ...

    @abstractmethod
    async def list_unprocessed(self) -> list[QueueEntry]:
        """Unprocessed entries ordered by priority DESC, queued_at ASC, id ASC."""
        ...

    @abstractmethod
    async def mark_processed(self, entry_id: int, processed_at: datetime) -> None:
        """Stamp a live entry. An already processed entry keeps its timestamp."""
        ...
