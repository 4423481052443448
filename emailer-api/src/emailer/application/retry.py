"""Whole-body retry with exponential backoff."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Retry an async callable on any exception.

    ``max_attempts`` counts the first call. The delay before attempt ``n + 1``
    is ``initial_delay * multiplier ** (n - 1)``, so the defaults sleep
    2, 4, 8 and 16 seconds between five attempts. When the last attempt fails
    its exception propagates unchanged.
    """

    max_attempts: int = 5
    initial_delay: float = 2.0
    multiplier: float = 2.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return self.initial_delay * self.multiplier ** (attempt - 1)

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        attempt = 1
        while True:
            try:
                return await operation()
            except Exception as e:
                if attempt >= self.max_attempts:
                    logger.error(f"Attempt {attempt} failed with exception {e}. Giving up after {attempt} attempts.")
                    raise
                delay = self.delay_for(attempt)
                logger.warning(f"Attempt {attempt} failed with exception {e}. Retrying in {delay:g} seconds.")
                await self.sleep(delay)
                attempt += 1
