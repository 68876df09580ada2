"""
Bounded retries with exponential backoff for fetches.

Only FetchError is retried. Parse and write errors are not transient and
propagate immediately.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, TypeVar

from src.config.constants import (
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_DELAY_MS,
)
from src.config.settings import settings
from src.ingestion.fetcher import FetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TerminalFailure(Exception):
    """A fetch that exhausted its retry budget (or failed non-transiently)."""

    def __init__(self, last_error: FetchError, attempts: int):
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"Gave up after {attempts} attempt(s): {last_error}")

    @property
    def url(self) -> str:
        return self.last_error.url


@dataclass
class RetryPolicy:
    """
    Retry configuration.

    delay before attempt n+1 = base_delay_ms * 2^(n-1), capped at max_delay_ms.
    """
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        """Load retry configuration from application settings."""
        return cls(
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            base_delay_ms=settings.RETRY_BASE_DELAY_MS,
            max_delay_ms=settings.RETRY_MAX_DELAY_MS,
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number `attempt` (1-based)."""
        delay_ms = self.base_delay_ms * (2 ** (attempt - 1))
        return min(delay_ms, self.max_delay_ms) / 1000.0

    def schedule(self) -> List[float]:
        """All inter-attempt delays, in seconds, for a run that always fails."""
        return [self.delay_for(attempt) for attempt in range(1, self.max_attempts)]


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    description: str = "fetch"
) -> T:
    """
    Run an async operation, retrying on FetchError.

    Args:
        operation: Zero-argument coroutine function, e.g. lambda: fetcher.fetch(url)
        policy: Retry configuration (defaults from settings)
        description: Label used in log messages

    Returns:
        Whatever the operation returns on its first success

    Raises:
        TerminalFailure: After max_attempts FetchErrors, or at once for a non-transient one
    """
    policy = policy or RetryPolicy.from_settings()
    last_error: Optional[FetchError] = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await operation()
        except FetchError as e:
            last_error = e

            if not e.is_transient:
                logger.error(f"Not retrying {description}: {e}")
                raise TerminalFailure(e, attempt) from e

            if attempt < policy.max_attempts:
                delay = policy.delay_for(attempt)
                logger.warning(f"Retry {attempt}/{policy.max_attempts} for {description} in {delay:.1f}s: {e}")
                await policy.sleep(delay)
            else:
                logger.error(f"Failed after {policy.max_attempts} attempts for {description}: {e}")

    raise TerminalFailure(last_error, policy.max_attempts)
