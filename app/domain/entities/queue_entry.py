"""QueueEntry entity — a backlog record for an order no agent could take."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class QueueEntry:
    id: int | None
    order_id: str
    priority: int = 0
    queued_at: datetime | None = None
    processed_at: datetime | None = None

    def is_live(self) -> bool:
        return self.processed_at is None

    def sort_key(self) -> tuple:
        """Drain order: priority DESC, queued_at ASC, id ASC."""
        return (-self.priority, self.queued_at or datetime.min, self.id or 0)
