"""DistributionCoordinator — entry points for order and agent lifecycle events."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.application.ports.agent_repo import AgentRepository
from app.application.ports.order_repo import OrderRepository
from app.application.ports.transaction import TransactionManager
from app.application.services.assignment_engine import AssignmentEngine, AssignmentResult
from app.application.services.queue_manager import QueueManager
from app.domain.entities.queue_entry import QueueEntry
from app.domain.errors import AgentNotFound
from app.domain.value_objects.enums import (
    ACTIVE_ORDER_STATUSES,
    AgentAvailability,
    OrderStatus,
)

logger = logging.getLogger(__name__)


@dataclass
class OrderStatusChange:
    """Summary of one external order status update."""

    order_id: str
    status: OrderStatus
    released_agent_id: str | None
    queue_processed: int = 0


@dataclass
class AvailabilityChange:
    """Summary of one agent availability toggle."""

    agent_id: str
    availability: AgentAvailability
    queue_processed: int = 0
    orders_moved: int = 0


class DistributionCoordinator:
    """The only surface external callers use to drive order distribution.

    Triggers:
    - order placed            → assign_order
    - agent goes ONLINE       → process_queue
    - agent goes OFFLINE      → reassign_agent_orders
    - order completed/cancelled → process_queue (capacity freed)
    """

    def __init__(
        self,
        engine: AssignmentEngine,
        queue: QueueManager,
        order_repo: OrderRepository,
        agent_repo: AgentRepository,
        tx: TransactionManager,
    ):
        self._engine = engine
        self._queue = queue
        self._orders = order_repo
        self._agents = agent_repo
        self._tx = tx

    async def assign_order(self, order_id: str) -> AssignmentResult:
        return await self._engine.assign_order(order_id)

    async def process_queue(self) -> int:
        """Drain the backlog until the first order that still cannot be served."""
        return await self._queue.drain_ready(self._engine.assign_order)

    async def reassign_agent_orders(self, agent_id: str) -> int:
        """Move every active order off *agent_id*.

        Each order is reassigned to another eligible agent or requeued, and
        the agent is relieved of it. Returns how many orders were moved.
        """
        async with self._tx.atomic():
            agent = await self._agents.get_by_id(agent_id)
            if agent is None:
                raise AgentNotFound(agent_id)
            orders = await self._orders.get_by_agent(agent_id, ACTIVE_ORDER_STATUSES)

        if not orders:
            return 0

        moved = 0
        for order in orders:
            result = await self._engine.reassign_from(order.id, agent_id)
            if result is not None:
                moved += 1

        logger.info("Agent %s: moved %d of %d active orders", agent_id, moved, len(orders))
        return moved

    async def set_agent_availability(
        self, agent_id: str, availability: AgentAvailability
    ) -> AvailabilityChange:
        """Persist an agent's ONLINE/OFFLINE toggle and react to it."""
        async with self._tx.atomic():
            agent = await self._agents.get_by_id(agent_id)
            if agent is None:
                raise AgentNotFound(agent_id)
            await self._agents.set_availability(agent_id, availability)

        change = AvailabilityChange(agent_id=agent_id, availability=availability)
        if availability == AgentAvailability.ONLINE:
            change.queue_processed = await self.process_queue()
        else:
            change.orders_moved = await self.reassign_agent_orders(agent_id)
            logger.info("Agent %s went offline. Reassigned %d orders.", agent_id, change.orders_moved)
        return change

    async def update_order_status(self, order_id: str, status: OrderStatus) -> OrderStatusChange:
        """Apply an order lifecycle transition; replay the queue if capacity was freed."""
        order, released = await self._engine.advance_order(order_id, status)
        change = OrderStatusChange(order_id=order.id, status=order.status, released_agent_id=released)
        if released is not None:
            change.queue_processed = await self.process_queue()
        return change

    async def reassign_order(self, order_id: str, agent_id: str) -> AssignmentResult:
        return await self._engine.assign_to_agent(order_id, agent_id)

    async def pending_queue(self) -> list[QueueEntry]:
        return await self._queue.pending()
