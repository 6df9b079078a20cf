"""AssignmentEngine — round-robin agent selection and atomic order/agent commits."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from app.application.ports.agent_repo import AgentRepository
from app.application.ports.notification_port import NotificationPort
from app.application.ports.order_repo import OrderRepository
from app.application.ports.round_robin_repo import RoundRobinRepository
from app.application.ports.transaction import TransactionManager
from app.application.services.agent_directory import AgentDirectory
from app.application.services.queue_manager import QueueManager
from app.domain.entities.agent import Agent
from app.domain.entities.order import Order
from app.domain.errors import AgentNotFound, InvalidTransition, OrderNotFound
from app.domain.policies.order_lifecycle import can_transition
from app.domain.policies.round_robin import pick_next
from app.domain.value_objects.enums import OrderStatus

logger = logging.getLogger(__name__)

DEFAULT_ROTATION_KEY = "order-distribution"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AssignmentResult:
    """Outcome of one assignment attempt."""

    order_id: str
    queued: bool
    agent_id: str | None = None
    agent_user_id: str | None = None


@dataclass
class _Notice:
    user_id: str
    order_id: str
    message: str


class AssignmentEngine:
    """Picks one agent per order and commits the pairing in one transaction.

    Every write that touches both an order's agent linkage and an agent's
    current_order_count goes through this class. ``lock`` should be shared by
    all engines of the process; the rotation row lock covers other processes.
    """

    def __init__(
        self,
        directory: AgentDirectory,
        queue: QueueManager,
        agent_repo: AgentRepository,
        order_repo: OrderRepository,
        rr_repo: RoundRobinRepository,
        notifier: NotificationPort,
        tx: TransactionManager,
        lock: asyncio.Lock | None = None,
        clock: Callable[[], datetime] = _utcnow,
        rotation_key: str = DEFAULT_ROTATION_KEY,
        default_priority: int = 0,
    ):
        self._directory = directory
        self._queue = queue
        self._agents = agent_repo
        self._orders = order_repo
        self._rr = rr_repo
        self._notifier = notifier
        self._tx = tx
        self._lock = lock or asyncio.Lock()
        self._clock = clock
        self._rotation_key = rotation_key
        self._default_priority = default_priority

    # ─── Public operations ───────────────────────────────────────────

    async def assign_order(self, order_id: str, priority: int | None = None) -> AssignmentResult:
        """Assign *order_id* to the next eligible agent, or queue it.

        Pipeline (one transaction):
        1. Lock the rotation cursor and load the order
        2. Fetch ranked candidates from the directory
        3. None → enqueue (once) and mark QUEUED
        4. Otherwise advance the cursor, increment the agent's load and
           mark the order ASSIGNED, closing its live queue entry

        The notification is sent after commit and never undoes the assignment.
        """
        async with self._lock:
            async with self._tx.atomic():
                order = await self._require_order(order_id)
                if not order.is_assignable():
                    raise InvalidTransition(
                        f"Order {order_id} is {order.status.value}, cannot assign"
                    )
                result, agent = await self._place(order, priority=priority)

        if agent is not None:
            await self._notify(
                _Notice(agent.user_id, order.id, f"You have been assigned order #{order.order_number}")
            )
        return result

    async def reassign_from(self, order_id: str, previous_agent_id: str) -> AssignmentResult | None:
        """Move an active order off *previous_agent_id*.

        The old agent is relieved (-1) and the order goes to another eligible
        agent (+1) or back to the queue, all in one transaction. Returns None
        when the order is no longer held by that agent.
        """
        async with self._lock:
            async with self._tx.atomic():
                order = await self._require_order(order_id)
                if not order.is_held_by(previous_agent_id):
                    logger.info(
                        "Order %s no longer held by agent %s (status=%s), skipping",
                        order_id, previous_agent_id, order.status.value,
                    )
                    return None

                await self._agents.decrement_load(previous_agent_id)
                order.release()
                result, agent = await self._place(order, exclude_agent_id=previous_agent_id)

        if agent is not None:
            logger.info(
                "Order %s reassigned from agent %s to agent %s",
                order.order_number, previous_agent_id, agent.id,
            )
            await self._notify(
                _Notice(agent.user_id, order.id, f"You have been assigned order #{order.order_number}")
            )
        else:
            logger.info("Order %s queued - no available agents", order.order_number)
        return result

    async def assign_to_agent(self, order_id: str, agent_id: str) -> AssignmentResult:
        """Manually hand an order to a named agent, bypassing the rotation.

        The capacity ceiling still applies (CapacityExceeded).
        """
        async with self._lock:
            async with self._tx.atomic():
                order = await self._require_order(order_id)
                agent = await self._agents.get_by_id(agent_id)
                if agent is None:
                    raise AgentNotFound(agent_id)
                if order.is_terminal():
                    raise InvalidTransition(
                        f"Order {order_id} is {order.status.value}, cannot reassign"
                    )
                if order.agent_id == agent_id and order.is_active():
                    raise InvalidTransition(f"Order {order_id} is already assigned to agent {agent_id}")

                previous_agent_id = order.agent_id if order.is_active() else None
                if previous_agent_id is not None:
                    await self._agents.decrement_load(previous_agent_id)
                    order.release()
                await self._commit(order, agent)

        logger.info(
            "Order %s manually reassigned to agent %s (previous: %s)",
            order.order_number, agent.id, previous_agent_id,
        )
        await self._notify(
            _Notice(agent.user_id, order.id, f"Order #{order.order_number} has been reassigned to you")
        )
        return AssignmentResult(
            order_id=order.id, queued=False, agent_id=agent.id, agent_user_id=agent.user_id,
        )

    async def advance_order(self, order_id: str, status: OrderStatus) -> tuple[Order, str | None]:
        """Apply an external lifecycle transition.

        Reaching a terminal state from an active one relieves the owning
        agent exactly once, in the same transaction as the status change.

        Returns:
            (order, released_agent_id): released_agent_id is None when no
            capacity was freed.
        """
        async with self._lock:
            async with self._tx.atomic():
                order = await self._require_order(order_id)
                if not can_transition(order.status, status):
                    raise InvalidTransition(
                        f"Order {order_id}: {order.status.value} → {status.value} is not allowed"
                    )

                released: str | None = None
                if order.is_active() and status in (OrderStatus.COMPLETED, OrderStatus.CANCELLED):
                    released = order.agent_id
                    await self._agents.decrement_load(released)
                if order.status == OrderStatus.QUEUED:
                    live = await self._queue.live_entry(order.id)
                    if live is not None:
                        await self._queue.close(live)

                if status == OrderStatus.CANCELLED:
                    order.agent_id = None
                order.status = status
                await self._orders.update(order)

        logger.info("Order %s → %s (released agent: %s)", order.order_number, status.value, released)
        return order, released

    # ─── Internals (caller holds the lock and an open transaction) ───

    async def _require_order(self, order_id: str) -> Order:
        order = await self._orders.get_by_id(order_id, for_update=True)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    async def _place(
        self,
        order: Order,
        exclude_agent_id: str | None = None,
        priority: int | None = None,
    ) -> tuple[AssignmentResult, Agent | None]:
        cursor = await self._rr.acquire_cursor(self._rotation_key)
        candidates = await self._directory.list_eligible_agents(exclude_agent_id=exclude_agent_id)

        if not candidates:
            await self._enqueue_once(order, self._default_priority if priority is None else priority)
            return AssignmentResult(order_id=order.id, queued=True), None

        agent, cursor = pick_next(candidates, cursor)
        await self._rr.store_cursor(self._rotation_key, cursor)
        await self._commit(order, agent)

        logger.info(
            "Order %s assigned to agent %s (%s), cursor=%d of %d candidates",
            order.order_number, agent.id, agent.full_name, cursor, len(candidates),
        )
        return (
            AssignmentResult(order_id=order.id, queued=False, agent_id=agent.id, agent_user_id=agent.user_id),
            agent,
        )

    async def _commit(self, order: Order, agent: Agent) -> None:
        await self._agents.increment_load(agent.id)
        order.assign(agent.id, self._clock())
        await self._orders.update(order)

        live = await self._queue.live_entry(order.id)
        if live is not None:
            await self._queue.close(live)

    async def _enqueue_once(self, order: Order, priority: int) -> None:
        live = await self._queue.live_entry(order.id)
        if live is None:
            await self._queue.enqueue(order.id, priority)
        if order.status != OrderStatus.QUEUED:
            order.mark_queued()
            await self._orders.update(order)
        logger.info("Order %s queued - no agents available", order.order_number)

    async def _notify(self, notice: _Notice) -> None:
        try:
            await self._notifier.notify(notice.user_id, notice.order_id, notice.message)
        except Exception:
            logger.warning(
                "Notification to user %s for order %s failed",
                notice.user_id, notice.order_id, exc_info=True,
            )
