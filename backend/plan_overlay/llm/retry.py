"""Exponential backoff with jitter for transient upstream failures."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from plan_overlay.errors import TransientNetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_backoff(
    call: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    base_delay: float = 1.0,
    retry_on: tuple[type[BaseException], ...] = (TransientNetworkError,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "call",
) -> T:
    """Await ``call()``, retrying ``retry_on`` errors up to ``attempts`` times in total.

    The delay before retry ``n`` (1-based) is ``base_delay * 2 ** (n - 1)``
    plus 0.2-0.5s of jitter. The last error is re-raised when attempts run out.
    """
    for attempt in range(attempts):
        if attempt > 0:
            delay = base_delay * (2 ** (attempt - 1)) + random.uniform(0.2, 0.5)
            logger.info("Retrying %s (attempt %d/%d) after %.2fs", label, attempt + 1, attempts, delay)
            await sleep(delay)
        try:
            return await call()
        except retry_on as e:
            if attempt == attempts - 1:
                logger.warning("%s failed after %d attempts: %s", label, attempts, e)
                raise
            logger.warning("%s failed transiently: %s", label, e)
    raise ValueError("attempts must be at least 1")
