"""Tests for the SQLAlchemy adapters against a mocked AsyncSession."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.adapters.notifications.sql_notifier import SqlNotificationSink
from app.adapters.persistence.models import NotificationModel, RoundRobinStateModel
from app.adapters.persistence.repositories import (
    SqlAgentRepository,
    SqlQueueRepository,
    SqlRoundRobinRepository,
    SqlTransactionManager,
)
from app.domain.errors import CapacityExceeded, InvariantViolation, OrderNotFound, StoreUnavailable
from app.domain.policies.round_robin import INITIAL_CURSOR


def _session(rowcount: int = 1, scalar=None) -> MagicMock:
    session = MagicMock()
    result = MagicMock(rowcount=rowcount)
    result.scalar_one_or_none.return_value = scalar
    session.execute = AsyncMock(return_value=result)
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


# ─── SqlTransactionManager ───────────────────────────────────────────


@pytest.mark.asyncio
async def test_atomic_commits_on_success():
    session = _session()
    async with SqlTransactionManager(session).atomic():
        pass
    session.commit.assert_awaited_once()
    session.rollback.assert_not_awaited()


@pytest.mark.asyncio
async def test_atomic_wraps_database_errors():
    session = _session()
    with pytest.raises(StoreUnavailable) as exc_info:
        async with SqlTransactionManager(session).atomic():
            raise OperationalError("UPDATE agents", {}, Exception("connection reset"))
    session.rollback.assert_awaited_once()
    session.commit.assert_not_awaited()
    assert isinstance(exc_info.value.__cause__, OperationalError)


@pytest.mark.asyncio
async def test_atomic_wraps_commit_failure():
    session = _session()
    session.commit.side_effect = OperationalError("COMMIT", {}, Exception("server closed"))
    with pytest.raises(StoreUnavailable):
        async with SqlTransactionManager(session).atomic():
            pass
    session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_atomic_rolls_back_and_reraises_domain_errors():
    session = _session()
    with pytest.raises(OrderNotFound):
        async with SqlTransactionManager(session).atomic():
            raise OrderNotFound("o1")
    session.rollback.assert_awaited_once()
    session.commit.assert_not_awaited()


# ─── SqlAgentRepository ──────────────────────────────────────────────


@pytest.mark.asyncio
async def test_increment_on_full_agent_raises_capacity_exceeded():
    repo = SqlAgentRepository(_session(rowcount=0))
    with pytest.raises(CapacityExceeded) as exc_info:
        await repo.increment_load("a1")
    assert exc_info.value.agent_id == "a1"


@pytest.mark.asyncio
async def test_increment_within_capacity_passes():
    session = _session(rowcount=1)
    await SqlAgentRepository(session).increment_load("a1")
    session.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_decrement_below_zero_is_refused():
    repo = SqlAgentRepository(_session(rowcount=0))
    with pytest.raises(InvariantViolation):
        await repo.decrement_load("a1")


@pytest.mark.asyncio
async def test_mark_processed_only_stamps_live_entries():
    session = _session()
    await SqlQueueRepository(session).mark_processed(7, datetime(2026, 1, 1, tzinfo=timezone.utc))

    stmt = session.execute.call_args.args[0]
    assert "processed_at IS NULL" in str(stmt)


# ─── SqlRoundRobinRepository ─────────────────────────────────────────


@pytest.mark.asyncio
async def test_missing_rotation_row_is_created_at_initial_cursor():
    session = _session(scalar=None)
    position = await SqlRoundRobinRepository(session).acquire_cursor("order-distribution")

    assert position == INITIAL_CURSOR
    added = session.add.call_args.args[0]
    assert isinstance(added, RoundRobinStateModel)
    assert added.rr_key == "order-distribution"
    session.flush.assert_awaited_once()


@pytest.mark.asyncio
async def test_existing_rotation_row_is_returned():
    row = RoundRobinStateModel(rr_key="order-distribution", position=4)
    session = _session(scalar=row)
    assert await SqlRoundRobinRepository(session).acquire_cursor("order-distribution") == 4
    session.add.assert_not_called()


# ─── SqlNotificationSink ─────────────────────────────────────────────


@pytest.mark.asyncio
async def test_notification_written_in_own_session():
    session = _session()

    @asynccontextmanager
    async def factory():
        yield session

    sink = SqlNotificationSink(factory)
    await sink.notify("user-1", "order-1", "You have been assigned order #ORD-1")

    note = session.add.call_args.args[0]
    assert isinstance(note, NotificationModel)
    assert (note.user_id, note.related_order_id) == ("user-1", "order-1")
    assert note.type == "ORDER_ASSIGNED"
    assert note.message == "You have been assigned order #ORD-1"
    session.commit.assert_awaited_once()
