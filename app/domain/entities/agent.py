"""Agent entity — a field operative who fulfils delivery orders."""

from dataclasses import dataclass, field
from datetime import datetime

from app.domain.value_objects.enums import AccountStatus, AgentAvailability


@dataclass
class Agent:
    id: str
    user_id: str
    full_name: str
    availability: AgentAvailability = AgentAvailability.OFFLINE
    account_status: AccountStatus = AccountStatus.ACTIVE
    current_order_count: int = 0
    max_order_capacity: int = 1
    created_at: datetime | None = field(default=None)

    def is_online(self) -> bool:
        return self.availability == AgentAvailability.ONLINE

    def is_account_active(self) -> bool:
        return self.account_status == AccountStatus.ACTIVE

    def has_capacity(self) -> bool:
        return self.current_order_count < self.max_order_capacity

    def remaining_capacity(self) -> int:
        return max(self.max_order_capacity - self.current_order_count, 0)
