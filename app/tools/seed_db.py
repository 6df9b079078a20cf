"""Seed the database with demo agents and orders.

Usage:
    python -m app.tools.seed_db
    python -m app.tools.seed_db --agents 3 --capacity 2 --orders 10
    python -m app.tools.seed_db --drop        # drop existing data first
    python -m app.tools.seed_db --distribute  # run each order through the engine
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import uuid

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.persistence.database import async_session_factory
from app.adapters.persistence.models import (
    AgentModel,
    NotificationModel,
    OrderModel,
    OrderQueueModel,
    RoundRobinStateModel,
    UserModel,
)
from app.domain.value_objects.enums import AgentAvailability, OrderStatus
from app.infrastructure.api.dependencies import coordinator_scope

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)


async def _drop_data(session: AsyncSession) -> None:
    """Delete all data in correct order (respecting FK constraints)."""
    for model in [
        NotificationModel,
        OrderQueueModel,
        OrderModel,
        AgentModel,
        RoundRobinStateModel,
        UserModel,
    ]:
        await session.execute(delete(model))
    await session.commit()
    logger.info("Existing data dropped")


async def seed(agents: int, capacity: int, orders: int, drop: bool = False) -> dict[str, int]:
    """Insert *agents* ONLINE agents and *orders* PLACED orders.

    Returns:
        counts of inserted rows per table.
    """
    async with async_session_factory() as session:
        if drop:
            await _drop_data(session)

        for i in range(agents):
            user = UserModel(full_name=f"Agent {i + 1}", phone=f"+2557000000{i:02d}")
            session.add(user)
            await session.flush()
            session.add(
                AgentModel(
                    user_id=user.id,
                    availability_status=AgentAvailability.ONLINE.value,
                    max_order_capacity=capacity,
                )
            )

        customer = UserModel(full_name="Demo Customer")
        session.add(customer)
        await session.flush()

        existing = await session.scalar(select(func.count()).select_from(OrderModel))
        for i in range(orders):
            session.add(
                OrderModel(
                    order_number=f"ORD-{existing + i + 1:05d}-{uuid.uuid4().hex[:4].upper()}",
                    customer_id=customer.id,
                    status=OrderStatus.PLACED.value,
                )
            )
        await session.commit()

    counts = {"users": agents + 1, "agents": agents, "orders": orders}
    logger.info("Seeded %s", counts)
    return counts


async def distribute_placed() -> int:
    """Run every PLACED order through the engine, oldest first."""
    async with async_session_factory() as session:
        result = await session.execute(
            select(OrderModel.id)
            .where(OrderModel.status == OrderStatus.PLACED.value)
            .order_by(OrderModel.created_at, OrderModel.order_number)
        )
        order_ids = list(result.scalars())

    assigned = 0
    async with coordinator_scope() as coordinator:
        for order_id in order_ids:
            outcome = await coordinator.assign_order(order_id)
            if not outcome.queued:
                assigned += 1
    logger.info("Distributed %d orders: %d assigned, %d queued", len(order_ids), assigned, len(order_ids) - assigned)
    return assigned


def main():
    parser = argparse.ArgumentParser(description="Seed the order distribution database")
    parser.add_argument("--agents", type=int, default=3, help="Number of ONLINE agents (default: 3)")
    parser.add_argument("--capacity", type=int, default=2, help="max_order_capacity per agent (default: 2)")
    parser.add_argument("--orders", type=int, default=8, help="Number of PLACED orders (default: 8)")
    parser.add_argument("--drop", action="store_true", help="Drop existing data before seeding")
    parser.add_argument(
        "--distribute", action="store_true",
        help="Assign every PLACED order after seeding",
    )
    args = parser.parse_args()

    if args.capacity < 1:
        parser.error("--capacity must be at least 1")

    async def run_all():
        await seed(args.agents, args.capacity, args.orders, drop=args.drop)
        if args.distribute:
            await distribute_placed()

    asyncio.run(run_all())


if __name__ == "__main__":
    main()
