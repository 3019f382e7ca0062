from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from binengine.domain.exceptions import LookupFailedError, RateLimitedError


logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 5.0
    retry_on: tuple[type[Exception], ...] = (RateLimitedError,)

    def delay_for(self, failed_attempts: int) -> float:
        delay = self.base_delay_seconds * (2 ** max(0, failed_attempts - 1))
        return min(delay, self.max_delay_seconds)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        description: str,
        sleep: Sleep = asyncio.sleep,
    ) -> T:
        attempts = max(1, self.max_attempts)
        last_exc: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                return await operation()
            except self.retry_on as exc:
                last_exc = exc
                if attempt == attempts:
                    break
                delay = self.delay_for(attempt)
                logger.warning(
                    "retry_policy: retry op=%s attempt=%s/%s delay=%.2fs error=%s",
                    description,
                    attempt,
                    attempts,
                    delay,
                    exc,
                )
                await sleep(delay)

        logger.error(
            "retry_policy: exhausted op=%s attempts=%s error=%s",
            description,
            attempts,
            last_exc,
        )
        raise LookupFailedError(f"{description} failed after {attempts} attempts: {last_exc}") from last_exc
