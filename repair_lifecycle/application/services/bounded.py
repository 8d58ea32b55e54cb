"""Time-bounded calls to external collaborators."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from repair_lifecycle.domain.errors import StoreTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def bounded(awaitable: Awaitable[T], timeout: float | None, operation: str) -> T:
    """Await a store call, turning a timeout into a retryable ``StoreTimeoutError``."""
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as exc:
        logger.warning("Store call '%s' timed out after %ss", operation, timeout)
        raise StoreTimeoutError(operation, timeout or 0.0) from exc
