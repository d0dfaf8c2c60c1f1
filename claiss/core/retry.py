"""
Retry with exponential backoff for network-facing calls.

Every storage adapter that talks to a provider wraps its network call in
with_retry, which drives the attempts with tenacity. A fresh
AsyncRetrying is built per call, so concurrent callers each run their
own attempt sequence.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    How many times to try and how long to wait in between.

    The delay before attempt k (k >= 2) is
    initial_delay * multiplier ** (k - 2), so the defaults wait
    1s, 2s, 4s, 8s across five attempts. There is no jitter.
    """
    max_attempts: int = 5
    initial_delay: float = 1.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay cannot be negative")

    def delay_before(self, attempt: int) -> float:
        """Seconds to wait before the given 1-based attempt."""
        if attempt < 2:
            return 0.0
        return self.initial_delay * self.multiplier ** (attempt - 2)

    def wait_strategy(self) -> wait_exponential:
        """The same schedule as delay_before, expressed for tenacity."""
        return wait_exponential(multiplier=self.initial_delay, exp_base=self.multiplier)


DEFAULT_RETRY_POLICY = RetryPolicy()


def _log_failed_attempt(label: str, attempts: int) -> Callable[[RetryCallState], None]:
    def log(retry_state: RetryCallState) -> None:
        logger.warning(
            "Attempt failed",
            extra={
                "label": label,
                "attempt": retry_state.attempt_number,
                "max_attempts": attempts,
                "outcome": "failure",
                "error": str(retry_state.outcome.exception()),
            }
        )
    return log


def _log_retry(label: str, attempts: int) -> Callable[[RetryCallState], None]:
    def log(retry_state: RetryCallState) -> None:
        logger.info(
            "Retrying operation",
            extra={
                "label": label,
                "attempt": retry_state.attempt_number + 1,
                "max_attempts": attempts,
                "delay_seconds": retry_state.next_action.sleep,
            }
        )
    return log


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    label: str,
    max_attempts: Optional[int] = None,
    *,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run operation until it succeeds or the attempt budget is spent.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        label: Name used in log records
        max_attempts: Overrides policy.max_attempts when given
        policy: Backoff parameters
        sleep: Awaitable sleep, injectable for tests

    Returns:
        The result of the first successful attempt

    Raises:
        The exception raised by the last attempt. Earlier failures are
        logged and discarded.
    """
    attempts = policy.max_attempts if max_attempts is None else max_attempts
    if attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=policy.wait_strategy(),
        sleep=sleep,
        after=_log_failed_attempt(label, attempts),
        before_sleep=_log_retry(label, attempts),
        reraise=True,
    )

    attempt_count = 0

    async def attempt() -> T:
        nonlocal attempt_count
        attempt_count += 1
        return await operation()

    try:
        result = await retrying(attempt)
    except Exception as e:
        logger.error(
            "All attempts failed",
            extra={"label": label, "max_attempts": attempts, "error": str(e)}
        )
        raise

    logger.info(
        "Attempt succeeded",
        extra={
            "label": label,
            "attempt": attempt_count,
            "max_attempts": attempts,
            "outcome": "success",
        }
    )
    return result
