"""Distribution endpoints — the minimal contract order/agent services call."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.application.services.assignment_engine import AssignmentResult
from app.application.use_cases.distribute_orders import DistributionCoordinator
from app.domain.value_objects.enums import AgentAvailability, OrderStatus
from app.infrastructure.api.dependencies import get_coordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/distribution", tags=["distribution"])


class AvailabilityUpdate(BaseModel):
    availability_status: AgentAvailability


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class ManualReassignment(BaseModel):
    agent_id: str = Field(min_length=1)


class QueueEntryOut(BaseModel):
    id: int
    order_id: str
    priority: int
    queued_at: datetime


def _assignment_to_dict(r: AssignmentResult) -> dict:
    return {
        "order_id": r.order_id,
        "agent_id": r.agent_id,
        "agent_user_id": r.agent_user_id,
        "queued": r.queued,
    }


@router.post("/orders/{order_id}/assign")
async def assign_order(
    order_id: str,
    coordinator: DistributionCoordinator = Depends(get_coordinator),
):
    """Assign a freshly placed order, or queue it when no agent is free."""
    result = await coordinator.assign_order(order_id)
    return {"status": "ok", **_assignment_to_dict(result)}


@router.post("/orders/{order_id}/reassign")
async def reassign_order(
    order_id: str,
    body: ManualReassignment,
    coordinator: DistributionCoordinator = Depends(get_coordinator),
):
    """Hand an order to a specific agent (admin)."""
    result = await coordinator.reassign_order(order_id, body.agent_id)
    return {"status": "ok", **_assignment_to_dict(result)}


@router.patch("/orders/{order_id}/status")
async def update_order_status(
    order_id: str,
    body: OrderStatusUpdate,
    coordinator: DistributionCoordinator = Depends(get_coordinator),
):
    change = await coordinator.update_order_status(order_id, body.status)
    return {
        "status": "ok",
        "order_id": change.order_id,
        "order_status": change.status.value,
        "released_agent_id": change.released_agent_id,
        "queue_processed": change.queue_processed,
    }


@router.post("/queue/process")
async def process_queue(
    coordinator: DistributionCoordinator = Depends(get_coordinator),
):
    """Replay the backlog until the first order that still cannot be served."""
    processed = await coordinator.process_queue()
    return {"status": "ok", "processed": processed}


@router.get("/queue", response_model=list[QueueEntryOut])
async def list_queue(
    coordinator: DistributionCoordinator = Depends(get_coordinator),
):
    entries = await coordinator.pending_queue()
    return [
        QueueEntryOut(id=e.id, order_id=e.order_id, priority=e.priority, queued_at=e.queued_at)
        for e in entries
    ]


@router.post("/agents/{agent_id}/reassign")
async def reassign_agent_orders(
    agent_id: str,
    coordinator: DistributionCoordinator = Depends(get_coordinator),
):
    moved = await coordinator.reassign_agent_orders(agent_id)
    return {"status": "ok", "agent_id": agent_id, "reassigned": moved}


@router.patch("/agents/{agent_id}/status")
async def update_agent_status(
    agent_id: str,
    body: AvailabilityUpdate,
    coordinator: DistributionCoordinator = Depends(get_coordinator),
):
    """Toggle ONLINE/OFFLINE; drains the queue or moves the agent's orders."""
    change = await coordinator.set_agent_availability(agent_id, body.availability_status)
    return {
        "status": "ok",
        "agent_id": change.agent_id,
        "availability_status": change.availability.value,
        "queue_processed": change.queue_processed,
        "orders_moved": change.orders_moved,
    }
