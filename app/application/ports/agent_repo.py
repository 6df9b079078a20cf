"""Port interface for agent persistence."""

from abc import ABC, abstractmethod

from app.domain.entities.agent import Agent
from app.domain.value_objects.enums import AgentAvailability


class AgentRepository(ABC):
    @abstractmethod
    async def save(self, agent: Agent) -> Agent:
        ...

    @abstractmethod
    async def get_by_id(self, agent_id: str) -> Agent | None:
        ...

    @abstractmethod
    async def list_online(self) -> list[Agent]:
        """Return ONLINE agents whose owning account is ACTIVE.

        Capacity filtering and ranking are left to the caller.
        """
        ...

    @abstractmethod
    async def increment_load(self, agent_id: str) -> None:
        """Add one to current_order_count.

        Must be conditional on current_order_count < max_order_capacity and
        raise CapacityExceeded when the condition does not hold.
        """
        ...

    @abstractmethod
    async def decrement_load(self, agent_id: str) -> None:
        """Subtract one from current_order_count; raise InvariantViolation at zero."""
        ...

    @abstractmethod
    async def set_availability(self, agent_id: str, availability: AgentAvailability) -> None:
        ...
