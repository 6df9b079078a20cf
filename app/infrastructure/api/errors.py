"""Map domain errors onto HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.domain.errors import (
    DistributionError,
    InvalidTransition,
    NotFound,
    StoreUnavailable,
)

logger = logging.getLogger(__name__)


def _status_for(exc: DistributionError) -> int:
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, InvalidTransition):
        return 409
    if isinstance(exc, StoreUnavailable):
        return 503
    return 500


async def distribution_error_handler(request: Request, exc: DistributionError) -> JSONResponse:
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DistributionError, distribution_error_handler)
