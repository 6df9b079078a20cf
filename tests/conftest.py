"""Shared fixtures: in-memory fakes for the distribution ports and a wired-up harness."""

from __future__ import annotations

import asyncio
import copy
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone

import pytest

from app.application.ports.agent_repo import AgentRepository
from app.application.ports.notification_port import NotificationPort
from app.application.ports.order_repo import OrderRepository
from app.application.ports.queue_repo import QueueRepository
from app.application.ports.round_robin_repo import RoundRobinRepository
from app.application.ports.transaction import TransactionManager
from app.application.services.agent_directory import AgentDirectory
from app.application.services.assignment_engine import DEFAULT_ROTATION_KEY, AssignmentEngine
from app.application.services.queue_manager import QueueManager
from app.application.use_cases.distribute_orders import DistributionCoordinator
from app.domain.entities.agent import Agent
from app.domain.entities.order import Order
from app.domain.entities.queue_entry import QueueEntry
from app.domain.errors import CapacityExceeded, InvariantViolation, StoreUnavailable
from app.domain.policies.round_robin import INITIAL_CURSOR
from app.domain.value_objects.enums import (
    ACTIVE_ORDER_STATUSES,
    AccountStatus,
    AgentAvailability,
    OrderStatus,
)

T0 = datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)

# ─── In-memory fakes ────────────────────────────────────────────────


@dataclass
class InMemoryStore:
    agents: dict[str, Agent] = field(default_factory=dict)
    orders: dict[str, Order] = field(default_factory=dict)
    queue: list[QueueEntry] = field(default_factory=list)
    cursors: dict[str, int] = field(default_factory=dict)

    def snapshot(self) -> dict:
        return copy.deepcopy(
            {"agents": self.agents, "orders": self.orders, "queue": self.queue, "cursors": self.cursors}
        )

    def restore(self, snap: dict) -> None:
        self.agents = snap["agents"]
        self.orders = snap["orders"]
        self.queue = snap["queue"]
        self.cursors = snap["cursors"]


class FakeTransactionManager(TransactionManager):
    """Snapshot on enter, restore on error."""

    def __init__(self, store: InMemoryStore):
        self._store = store
        self.commits = 0
        self.rollbacks = 0

    @asynccontextmanager
    async def atomic(self):
        snap = self._store.snapshot()
        try:
            yield
        except BaseException:
            self._store.restore(snap)
            self.rollbacks += 1
            raise
        self.commits += 1


class FakeAgentRepo(AgentRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def save(self, agent):
        self._store.agents[agent.id] = replace(agent)
        return agent

    async def get_by_id(self, agent_id):
        a = self._store.agents.get(agent_id)
        return replace(a) if a else None

    async def list_online(self):
        return [
            replace(a) for a in self._store.agents.values()
            if a.availability == AgentAvailability.ONLINE and a.account_status == AccountStatus.ACTIVE
        ]

    async def increment_load(self, agent_id):
        a = self._store.agents[agent_id]
        if a.current_order_count >= a.max_order_capacity:
            raise CapacityExceeded(agent_id)
        a.current_order_count += 1

    async def decrement_load(self, agent_id):
        a = self._store.agents[agent_id]
        if a.current_order_count <= 0:
            raise InvariantViolation(f"Agent {agent_id} has no orders to release")
        a.current_order_count -= 1

    async def set_availability(self, agent_id, availability):
        self._store.agents[agent_id].availability = availability


class FakeOrderRepo(OrderRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def save(self, order):
        self._store.orders[order.id] = replace(order)
        return order

    async def get_by_id(self, order_id, for_update=False):
        o = self._store.orders.get(order_id)
        return replace(o) if o else None

    async def get_by_agent(self, agent_id, statuses):
        wanted = set(statuses)
        return [
            replace(o) for o in self._store.orders.values()
            if o.agent_id == agent_id and o.status in wanted
        ]

    async def update(self, order):
        self._store.orders[order.id] = replace(order)
        return order


class YieldingAgentRepo(FakeAgentRepo):
    """Gives up the event loop on every read, like a real round trip."""

    async def get_by_id(self, agent_id):
        await asyncio.sleep(0)
        return await super().get_by_id(agent_id)

    async def list_online(self):
        await asyncio.sleep(0)
        return await super().list_online()


class YieldingOrderRepo(FakeOrderRepo):
    async def get_by_id(self, order_id, for_update=False):
        await asyncio.sleep(0)
        return await super().get_by_id(order_id, for_update)

    async def update(self, order):
        await asyncio.sleep(0)
        return await super().update(order)


class FailingOrderRepo(FakeOrderRepo):
    """Every update fails as if the connection dropped."""

    async def update(self, order):
        raise StoreUnavailable("connection reset")


class FakeQueueRepo(QueueRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def add(self, entry):
        entry.id = len(self._store.queue) + 1
        self._store.queue.append(replace(entry))
        return entry

    async def get_live(self, order_id):
        return next(
            (replace(e) for e in self._store.queue if e.order_id == order_id and e.is_live()),
            None,
        )

    async def list_unprocessed(self):
        live = [replace(e) for e in self._store.queue if e.is_live()]
        return sorted(live, key=QueueEntry.sort_key)

    async def mark_processed(self, entry_id, processed_at):
        for e in self._store.queue:
            if e.id == entry_id and e.processed_at is None:
                e.processed_at = processed_at


class FakeRRRepo(RoundRobinRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def acquire_cursor(self, rr_key):
        return self._store.cursors.setdefault(rr_key, INITIAL_CURSOR)

    async def store_cursor(self, rr_key, position):
        self._store.cursors[rr_key] = position


class FakeNotifier(NotificationPort):
    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []

    async def notify(self, user_id, order_id, message):
        self.sent.append((user_id, order_id, message))


class FailingNotifier(NotificationPort):
    def __init__(self):
        self.attempts = 0

    async def notify(self, user_id, order_id, message):
        self.attempts += 1
        raise RuntimeError("SMTP relay down")


class TickingClock:
    """Strictly increasing timestamps, one second apart."""

    def __init__(self, start: datetime = T0):
        self._now = start

    def __call__(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


# ─── Harness ────────────────────────────────────────────────────────


@dataclass
class Harness:
    store: InMemoryStore
    tx: FakeTransactionManager
    queue: QueueManager
    engine: AssignmentEngine
    coordinator: DistributionCoordinator
    notifier: NotificationPort
    _agents_added: int = 0

    def add_agent(
        self, agent_id: str, capacity: int = 1, online: bool = True, load: int = 0,
        account: AccountStatus = AccountStatus.ACTIVE,
    ) -> Agent:
        agent = Agent(
            id=agent_id, user_id=f"user-{agent_id}", full_name=f"Agent {agent_id}",
            availability=AgentAvailability.ONLINE if online else AgentAvailability.OFFLINE,
            account_status=account,
            current_order_count=load, max_order_capacity=capacity,
            created_at=T0 + timedelta(minutes=self._agents_added),
        )
        self._agents_added += 1
        self.store.agents[agent_id] = agent
        return agent

    def add_order(self, order_id: str) -> Order:
        order = Order(id=order_id, order_number=order_id.upper(), customer_id="cust-1", created_at=T0)
        self.store.orders[order_id] = order
        return order

    def set_online(self, agent_id: str, online: bool = True) -> None:
        self.store.agents[agent_id].availability = (
            AgentAvailability.ONLINE if online else AgentAvailability.OFFLINE
        )

    def agent(self, agent_id: str) -> Agent:
        return self.store.agents[agent_id]

    def order(self, order_id: str) -> Order:
        return self.store.orders[order_id]

    def live_entries(self, order_id: str | None = None) -> list[QueueEntry]:
        return [
            e for e in self.store.queue
            if e.is_live() and (order_id is None or e.order_id == order_id)
        ]

    def cursor(self) -> int:
        return self.store.cursors.get(DEFAULT_ROTATION_KEY, INITIAL_CURSOR)

    async def complete(self, order_id: str) -> str | None:
        """Walk an assigned order through to COMPLETED without draining."""
        released = None
        for status in (
            OrderStatus.PICKED, OrderStatus.IN_TRANSIT, OrderStatus.DELIVERED, OrderStatus.COMPLETED,
        ):
            _, released = await self.engine.advance_order(order_id, status)
        return released

    def assert_invariants(self) -> None:
        active = [o for o in self.store.orders.values() if o.status in ACTIVE_ORDER_STATUSES]
        for agent in self.store.agents.values():
            assert 0 <= agent.current_order_count <= agent.max_order_capacity, agent
            held = sum(1 for o in active if o.agent_id == agent.id)
            assert agent.current_order_count == held, agent
        assert sum(a.current_order_count for a in self.store.agents.values()) == len(active)
        for o in self.store.orders.values():
            live = self.live_entries(o.id)
            if o.status == OrderStatus.QUEUED:
                assert len(live) == 1, o
                assert o.agent_id is None
            else:
                assert live == [], o
            if o.status in (OrderStatus.PLACED, OrderStatus.QUEUED, OrderStatus.CANCELLED):
                assert o.agent_id is None, o


def build_harness(
    notifier: NotificationPort | None = None,
    order_repo_cls=FakeOrderRepo,
    agent_repo_cls=FakeAgentRepo,
) -> Harness:
    store = InMemoryStore()
    tx = FakeTransactionManager(store)
    clock = TickingClock()
    agent_repo = agent_repo_cls(store)
    order_repo = order_repo_cls(store)
    notifier = notifier or FakeNotifier()
    queue = QueueManager(FakeQueueRepo(store), tx, clock=clock)
    engine = AssignmentEngine(
        directory=AgentDirectory(agent_repo),
        queue=queue,
        agent_repo=agent_repo,
        order_repo=order_repo,
        rr_repo=FakeRRRepo(store),
        notifier=notifier,
        tx=tx,
        clock=clock,
    )
    coordinator = DistributionCoordinator(
        engine=engine, queue=queue, order_repo=order_repo, agent_repo=agent_repo, tx=tx,
    )
    return Harness(
        store=store, tx=tx, queue=queue, engine=engine, coordinator=coordinator, notifier=notifier,
    )


@pytest.fixture
def harness() -> Harness:
    return build_harness()


@pytest.fixture
def failing_notifier_harness() -> Harness:
    return build_harness(notifier=FailingNotifier())


@pytest.fixture
def failing_store_harness() -> Harness:
    return build_harness(order_repo_cls=FailingOrderRepo)


@pytest.fixture
def yielding_harness() -> Harness:
    return build_harness(order_repo_cls=YieldingOrderRepo, agent_repo_cls=YieldingAgentRepo)
