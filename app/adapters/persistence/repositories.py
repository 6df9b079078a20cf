"""SQLAlchemy repository implementations."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.adapters.persistence.models import (
    AgentModel,
    OrderModel,
    OrderQueueModel,
    RoundRobinStateModel,
    UserModel,
)
from app.application.ports.agent_repo import AgentRepository
from app.application.ports.order_repo import OrderRepository
from app.application.ports.queue_repo import QueueRepository
from app.application.ports.round_robin_repo import RoundRobinRepository
from app.application.ports.transaction import TransactionManager
from app.domain.entities.agent import Agent
from app.domain.entities.order import Order
from app.domain.entities.queue_entry import QueueEntry
from app.domain.errors import CapacityExceeded, InvariantViolation, StoreUnavailable
from app.domain.policies.round_robin import INITIAL_CURSOR
from app.domain.value_objects.enums import (
    AccountStatus,
    AgentAvailability,
    OrderStatus,
)

logger = logging.getLogger(__name__)

# ─── Mappers ─────────────────────────────────────────────────────────


def _agent_to_domain(m: AgentModel) -> Agent:
    return Agent(
        id=m.id,
        user_id=m.user_id,
        full_name=m.user.full_name,
        availability=AgentAvailability(m.availability_status),
        account_status=AccountStatus(m.user.status),
        current_order_count=m.current_order_count,
        max_order_capacity=m.max_order_capacity,
        created_at=m.created_at,
    )


def _order_to_domain(m: OrderModel) -> Order:
    return Order(
        id=m.id,
        order_number=m.order_number,
        customer_id=m.customer_id,
        status=OrderStatus(m.status),
        agent_id=m.agent_id,
        assigned_at=m.assigned_at,
        created_at=m.created_at,
    )


def _queue_entry_to_domain(m: OrderQueueModel) -> QueueEntry:
    return QueueEntry(
        id=m.id,
        order_id=m.order_id,
        priority=m.priority,
        queued_at=m.queued_at,
        processed_at=m.processed_at,
    )


# ─── Transactions ────────────────────────────────────────────────────


class SqlTransactionManager(TransactionManager):
    """Commits the session at the end of each ``atomic`` block."""

    def __init__(self, session: AsyncSession):
        self._s = session

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        try:
            yield
            await self._s.commit()
        except SQLAlchemyError as e:
            await self._s.rollback()
            logger.warning("Transaction rolled back: %s", e)
            raise StoreUnavailable(str(e)) from e
        except BaseException:
            await self._s.rollback()
            raise


# ─── Repositories ────────────────────────────────────────────────────


class SqlAgentRepository(AgentRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, agent: Agent) -> Agent:
        m = AgentModel(
            id=agent.id,
            user_id=agent.user_id,
            availability_status=agent.availability.value,
            current_order_count=agent.current_order_count,
            max_order_capacity=agent.max_order_capacity,
        )
        self._s.add(m)
        await self._s.flush()
        return agent

    async def get_by_id(self, agent_id: str) -> Agent | None:
        result = await self._s.execute(
            select(AgentModel)
            .options(joinedload(AgentModel.user))
            .where(AgentModel.id == agent_id)
            .execution_options(populate_existing=True)
        )
        m = result.scalar_one_or_none()
        return _agent_to_domain(m) if m else None

    async def list_online(self) -> list[Agent]:
        result = await self._s.execute(
            select(AgentModel)
            .join(AgentModel.user)
            .options(joinedload(AgentModel.user))
            .where(
                AgentModel.availability_status == AgentAvailability.ONLINE.value,
                UserModel.status == AccountStatus.ACTIVE.value,
            )
            .order_by(AgentModel.created_at, AgentModel.id)
            .execution_options(populate_existing=True)
        )
        return [_agent_to_domain(m) for m in result.scalars()]

    async def increment_load(self, agent_id: str) -> None:
        result = await self._s.execute(
            update(AgentModel)
            .where(
                AgentModel.id == agent_id,
                AgentModel.current_order_count < AgentModel.max_order_capacity,
            )
            .values(current_order_count=AgentModel.current_order_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise CapacityExceeded(agent_id)

    async def decrement_load(self, agent_id: str) -> None:
        result = await self._s.execute(
            update(AgentModel)
            .where(AgentModel.id == agent_id, AgentModel.current_order_count > 0)
            .values(current_order_count=AgentModel.current_order_count - 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InvariantViolation(f"Agent {agent_id} has no orders to release")

    async def set_availability(self, agent_id: str, availability: AgentAvailability) -> None:
        await self._s.execute(
            update(AgentModel)
            .where(AgentModel.id == agent_id)
            .values(availability_status=availability.value)
            .execution_options(synchronize_session=False)
        )


class SqlOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, order: Order) -> Order:
        m = OrderModel(
            id=order.id,
            order_number=order.order_number,
            customer_id=order.customer_id,
            status=order.status.value,
            agent_id=order.agent_id,
            assigned_at=order.assigned_at,
        )
        self._s.add(m)
        await self._s.flush()
        return order

    async def get_by_id(self, order_id: str, for_update: bool = False) -> Order | None:
        stmt = (
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._s.execute(stmt)
        m = result.scalar_one_or_none()
        return _order_to_domain(m) if m else None

    async def get_by_agent(self, agent_id: str, statuses: Iterable[OrderStatus]) -> list[Order]:
        result = await self._s.execute(
            select(OrderModel)
            .where(
                OrderModel.agent_id == agent_id,
                OrderModel.status.in_([s.value for s in statuses]),
            )
            .order_by(OrderModel.assigned_at, OrderModel.id)
            .execution_options(populate_existing=True)
        )
        return [_order_to_domain(m) for m in result.scalars()]

    async def update(self, order: Order) -> Order:
        await self._s.execute(
            update(OrderModel)
            .where(OrderModel.id == order.id)
            .values(
                status=order.status.value,
                agent_id=order.agent_id,
                assigned_at=order.assigned_at,
            )
            .execution_options(synchronize_session=False)
        )
        await self._s.flush()
        return order


class SqlQueueRepository(QueueRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def add(self, entry: QueueEntry) -> QueueEntry:
        m = OrderQueueModel(
            order_id=entry.order_id,
            priority=entry.priority,
            queued_at=entry.queued_at,
        )
        self._s.add(m)
        await self._s.flush()
        entry.id = m.id
        return entry

    async def get_live(self, order_id: str) -> QueueEntry | None:
        result = await self._s.execute(
            select(OrderQueueModel).where(
                OrderQueueModel.order_id == order_id,
                OrderQueueModel.processed_at.is_(None),
            )
        )
        m = result.scalar_one_or_none()
        return _queue_entry_to_domain(m) if m else None

    async def list_unprocessed(self) -> list[QueueEntry]:
        result = await self._s.execute(
            select(OrderQueueModel)
            .where(OrderQueueModel.processed_at.is_(None))
            .order_by(
                OrderQueueModel.priority.desc(),
                OrderQueueModel.queued_at.asc(),
                OrderQueueModel.id.asc(),
            )
        )
        return [_queue_entry_to_domain(m) for m in result.scalars()]

    async def mark_processed(self, entry_id: int, processed_at: datetime) -> None:
        await self._s.execute(
            update(OrderQueueModel)
            .where(OrderQueueModel.id == entry_id, OrderQueueModel.processed_at.is_(None))
            .values(processed_at=processed_at)
            .execution_options(synchronize_session=False)
        )
        await self._s.flush()


class SqlRoundRobinRepository(RoundRobinRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def acquire_cursor(self, rr_key: str) -> int:
        result = await self._s.execute(
            select(RoundRobinStateModel)
            .where(RoundRobinStateModel.rr_key == rr_key)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        m = result.scalar_one_or_none()
        if m is None:
            m = RoundRobinStateModel(rr_key=rr_key, position=INITIAL_CURSOR)
            self._s.add(m)
            await self._s.flush()
        return m.position

    async def store_cursor(self, rr_key: str, position: int) -> None:
        await self._s.execute(
            update(RoundRobinStateModel)
            .where(RoundRobinStateModel.rr_key == rr_key)
            .values(position=position)
            .execution_options(synchronize_session=False)
        )
