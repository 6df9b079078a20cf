"""Port interface for order persistence."""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from app.domain.entities.order import Order
from app.domain.value_objects.enums import OrderStatus


class OrderRepository(ABC):
    @abstractmethod
    async def save(self, order: Order) -> Order:
        ...

    @abstractmethod
    async def get_by_id(self, order_id: str, for_update: bool = False) -> Order | None:
        """Load an order; with *for_update* the row stays locked until commit."""
        ...

    @abstractmethod
    async def get_by_agent(self, agent_id: str, statuses: Iterable[OrderStatus]) -> list[Order]:
        """Orders currently owned by *agent_id* whose status is in *statuses*."""
        ...

    @abstractmethod
    async def update(self, order: Order) -> Order:
        """Persist status, agent_id and assigned_at."""
        ...
