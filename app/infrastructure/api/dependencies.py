"""FastAPI dependency injection — wires adapters into use cases."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.notifications.sql_notifier import SqlNotificationSink
from app.adapters.persistence.database import async_session_factory, get_session
from app.adapters.persistence.repositories import (
    SqlAgentRepository,
    SqlOrderRepository,
    SqlQueueRepository,
    SqlRoundRobinRepository,
    SqlTransactionManager,
)
from app.application.services.agent_directory import AgentDirectory
from app.application.services.assignment_engine import AssignmentEngine
from app.application.services.queue_manager import QueueManager
from app.application.use_cases.distribute_orders import DistributionCoordinator
from app.config import settings

# Re-export session dependency
get_db_session = get_session

# Process-wide singletons: every request's engine shares these locks.
_assignment_lock = asyncio.Lock()
_drain_lock = asyncio.Lock()
_notifier = SqlNotificationSink(async_session_factory)


def build_coordinator(session: AsyncSession) -> DistributionCoordinator:
    tx = SqlTransactionManager(session)
    agent_repo = SqlAgentRepository(session)
    order_repo = SqlOrderRepository(session)
    queue = QueueManager(SqlQueueRepository(session), tx, drain_lock=_drain_lock)
    engine = AssignmentEngine(
        directory=AgentDirectory(agent_repo),
        queue=queue,
        agent_repo=agent_repo,
        order_repo=order_repo,
        rr_repo=SqlRoundRobinRepository(session),
        notifier=_notifier,
        tx=tx,
        lock=_assignment_lock,
        rotation_key=settings.rotation_key,
        default_priority=settings.default_queue_priority,
    )
    return DistributionCoordinator(
        engine=engine,
        queue=queue,
        order_repo=order_repo,
        agent_repo=agent_repo,
        tx=tx,
    )


@asynccontextmanager
async def coordinator_scope() -> AsyncIterator[DistributionCoordinator]:
    """A coordinator bound to a fresh session, for use outside requests."""
    async with async_session_factory() as session:
        yield build_coordinator(session)


def get_coordinator(
    session: AsyncSession = Depends(get_session),
) -> DistributionCoordinator:
    return build_coordinator(session)
