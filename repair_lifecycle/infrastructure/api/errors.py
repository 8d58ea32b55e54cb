"""Domain error → HTTP response mapping."""

from __future__ import annotations

import logging
import math

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from repair_lifecycle.domain.errors import (
    AlreadyAssignedError,
    DuplicateJobError,
    JobNotFoundError,
    LifecycleError,
    NoEligibleTechnicianError,
    PartsNotReadyError,
    StaleAssignmentError,
    StoreTimeoutError,
    TechnicianNotFoundError,
    TransitionError,
)

logger = logging.getLogger(__name__)

_STATUS: list[tuple[type[LifecycleError], int]] = [
    (JobNotFoundError, 404),
    (TechnicianNotFoundError, 404),
    (NoEligibleTechnicianError, 422),
    (StoreTimeoutError, 503),
    (TransitionError, 409),
    (StaleAssignmentError, 409),
    (AlreadyAssignedError, 409),
    (DuplicateJobError, 409),
]


def status_for(exc: LifecycleError) -> int:
    for error_type, status in _STATUS:
        if isinstance(exc, error_type):
            return status
    return 500


def error_body(exc: LifecycleError) -> dict:
    body: dict = {
        "error": type(exc).__name__,
        "detail": str(exc),
        "retryable": exc.retryable,
    }
    if isinstance(exc, NoEligibleTechnicianError):
        body["exclusions"] = exc.exclusions
    if isinstance(exc, PartsNotReadyError):
        body["pending_parts"] = exc.pending
    return body


async def lifecycle_error_handler(request: Request, exc: LifecycleError) -> JSONResponse:
    status = status_for(exc)
    headers = None
    if isinstance(exc, StoreTimeoutError):
        headers = {"Retry-After": str(max(1, math.ceil(exc.timeout)))}
    if status >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content=error_body(exc), headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LifecycleError, lifecycle_error_handler)
