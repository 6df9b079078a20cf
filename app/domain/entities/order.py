"""Order entity — a delivery request placed by a customer."""

from dataclasses import dataclass
from datetime import datetime

from app.domain.value_objects.enums import (
    ACTIVE_ORDER_STATUSES,
    ASSIGNABLE_ORDER_STATUSES,
    TERMINAL_ORDER_STATUSES,
    OrderStatus,
)


@dataclass
class Order:
    id: str
    order_number: str
    customer_id: str | None = None
    status: OrderStatus = OrderStatus.PLACED
    agent_id: str | None = None
    assigned_at: datetime | None = None
    created_at: datetime | None = None

    def is_active(self) -> bool:
        """True while the order counts toward its agent's load."""
        return self.status in ACTIVE_ORDER_STATUSES

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ORDER_STATUSES

    def is_assignable(self) -> bool:
        return self.status in ASSIGNABLE_ORDER_STATUSES

    def is_held_by(self, agent_id: str) -> bool:
        return self.is_active() and self.agent_id == agent_id

    def assign(self, agent_id: str, at: datetime) -> None:
        self.agent_id = agent_id
        self.status = OrderStatus.ASSIGNED
        self.assigned_at = at

    def release(self) -> None:
        """Drop the agent linkage and return to the unassigned state."""
        self.agent_id = None
        self.status = OrderStatus.PLACED

    def mark_queued(self) -> None:
        self.agent_id = None
        self.status = OrderStatus.QUEUED
