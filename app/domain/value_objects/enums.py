"""Domain enums — pure Python, no external dependencies."""

from enum import Enum


class AgentAvailability(str, Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class OrderStatus(str, Enum):
    PLACED = "PLACED"
    QUEUED = "QUEUED"
    ASSIGNED = "ASSIGNED"
    PICKED = "PICKED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Orders in an agent's hands. Each one counts toward current_order_count.
ACTIVE_ORDER_STATUSES = frozenset(
    {
        OrderStatus.ASSIGNED,
        OrderStatus.PICKED,
        OrderStatus.IN_TRANSIT,
        OrderStatus.DELIVERED,
    }
)

TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})

# Statuses from which the engine may pick an agent.
ASSIGNABLE_ORDER_STATUSES = frozenset({OrderStatus.PLACED, OrderStatus.QUEUED})
