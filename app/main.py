"""Order Distribution Engine — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.adapters.persistence.database import engine
from app.config import settings
from app.infrastructure.api.dependencies import coordinator_scope
from app.infrastructure.api.errors import register_error_handlers
from app.infrastructure.api.routes_distribution import router as distribution_router
from app.infrastructure.api.routes_health import router as health_router
from app.infrastructure.scheduler.queue_sweeper import QueueSweeper

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    try:
        async with engine.begin():
            pass  # Connection pool warmed up
        logger.info("Database connection established")
    except Exception as e:
        logger.warning("Database not available on startup: %s", e)

    sweeper = None
    if settings.queue_sweep_interval_seconds > 0:
        sweeper = QueueSweeper(coordinator_scope, settings.queue_sweep_interval_seconds)
        sweeper.start()
    app.state.queue_sweeper = sweeper

    yield

    if sweeper is not None:
        await sweeper.stop()
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Order Distribution Engine",
        description="Round-robin order assignment, capacity enforcement and queue replay",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # Register routers
    app.include_router(health_router, prefix="/api")
    app.include_router(distribution_router, prefix="/api")

    return app


app = create_app()
