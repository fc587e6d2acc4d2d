"""
Bounded exponential backoff for calls to the remote source.

One RetryPolicy instance is injected into the transport client; nothing else
in the pipeline retries on its own.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from core.config import settings
from core.exceptions import RetryableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Attributes:
        max_attempts: Total attempts including the first one
        base_delay: Delay before the second attempt, in seconds
        max_delay: Upper bound for a single delay
        jitter: Random spread as a fraction of the delay (0.1 = +/-10%)
        sleep: Awaitable sleep, replaced in tests
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: float = 0.1
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            base_delay=settings.RETRY_BASE_DELAY,
            max_delay=settings.RETRY_MAX_DELAY,
            jitter=settings.RETRY_JITTER,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based): base * 2^(attempt-1)."""
        delay = min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))
        if self.jitter:
            delay += delay * random.uniform(-self.jitter, self.jitter)
        return max(0.0, delay)

    async def run(self, operation: Callable[[], Awaitable[T]], describe: str = "operation") -> T:
        """
        Await operation(), retrying RetryableError up to max_attempts.

        Non-retryable exceptions propagate immediately. When attempts are
        exhausted the last RetryableError is re-raised.
        """
        last_error: Optional[RetryableError] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except RetryableError as e:
                last_error = e
                if attempt >= self.max_attempts:
                    break
                if e.retry_after is not None:
                    delay = min(self.max_delay, e.retry_after)
                else:
                    delay = self.delay_for(attempt)
                logger.warning(
                    f"{describe} failed (attempt {attempt}/{self.max_attempts}): "
                    f"{e.message}. Retrying in {delay:.1f}s"
                )
                await self.sleep(delay)

        logger.error(f"{describe} failed after {self.max_attempts} attempts")
        last_error.context["attempts"] = self.max_attempts
        raise last_error
