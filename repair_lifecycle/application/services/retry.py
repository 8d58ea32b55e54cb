"""Caller-side retry for store timeouts — bounded attempts, exponential backoff."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from repair_lifecycle.domain.errors import StoreTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float, max_delay: float = 5.0) -> float:
    """base * 2^attempt with ±25% jitter, capped."""
    delay = base_delay * (2 ** attempt)
    jitter = delay * 0.25
    return min(delay + random.uniform(-jitter, jitter), max_delay)


async def retry_store_timeouts(
    operation: Callable[[], Awaitable[T]],
    attempts: int = 3,
    base_delay: float = 0.1,
) -> T:
    """Run ``operation`` and retry it only when it raises ``StoreTimeoutError``.

    Any other error propagates immediately. After ``attempts`` tries the last
    timeout is re-raised.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(attempts):
        try:
            return await operation()
        except StoreTimeoutError as exc:
            if attempt == attempts - 1:
                logger.error("Giving up after %d attempts: %s", attempts, exc)
                raise
            delay = backoff_delay(attempt, base_delay)
            logger.warning(
                "Store timeout (%s), retry %d/%d in %.2fs",
                exc.operation, attempt + 1, attempts - 1, delay,
            )
            await asyncio.sleep(delay)

    raise AssertionError("unreachable")
