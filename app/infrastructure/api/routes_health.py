"""Health check endpoint."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.persistence.database import get_session
from app.adapters.persistence.models import OrderQueueModel

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request, session: AsyncSession = Depends(get_session)):
    """Database connectivity, queue backlog and sweeper state."""
    backlog = None
    try:
        backlog = await session.scalar(
            select(func.count())
            .select_from(OrderQueueModel)
            .where(OrderQueueModel.processed_at.is_(None))
        )
        db_status = "connected"
    except SQLAlchemyError as e:
        db_status = f"error: {e}"

    sweeper = getattr(request.app.state, "queue_sweeper", None)
    return {
        "status": "ok" if db_status == "connected" else "degraded",
        "database": db_status,
        "queue_backlog": backlog,
        "queue_sweeper": "running" if sweeper is not None and sweeper.running else "off",
        "service": "Order Distribution Engine",
    }
