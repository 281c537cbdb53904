"""Bounded retry over an explicit success check.

Platform operations such as a Jenkins rollout report "not done yet" through
their result rather than by raising. ``retry`` polls such an operation until
the result satisfies ``is_success``; exceptions are never retried here and
propagate on the first attempt.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from subatomic.core.errors import ConfigurationError, ExhaustedRetries

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently to re-run an action."""

    max_attempts: int
    initial_delay: float
    backoff_factor: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ConfigurationError(
                "max_attempts must be at least 1", {"max_attempts": self.max_attempts}
            )
        if self.initial_delay < 0:
            raise ConfigurationError(
                "initial_delay must not be negative", {"initial_delay": self.initial_delay}
            )
        if self.backoff_factor < 1:
            raise ConfigurationError(
                "backoff_factor must be at least 1", {"backoff_factor": self.backoff_factor}
            )

    def delay_for(self, attempt: int) -> float:
        """Delay after the given (1-based) failed attempt."""
        return self.initial_delay * self.backoff_factor ** (attempt - 1)


def _log_before_sleep(description: str) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.debug(
            "retry_scheduled",
            action=description,
            attempt=retry_state.attempt_number,
            delay=delay,
        )

    return before_sleep


async def retry(
    action: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    is_success: Callable[[T], bool],
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    description: str = "action",
) -> T:
    """Run ``action`` until ``is_success`` accepts its result.

    ``action`` may be any callable returning an awaitable, such as a lambda
    wrapping a platform call.

    Raises:
        ExhaustedRetries: after ``policy.max_attempts`` unsuccessful results.
            The last result is kept on the exception.
    """

    async def attempt() -> T:
        return await action()

    retrying = AsyncRetrying(
        retry=retry_if_result(lambda result: not is_success(result)),
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_exponential(
            multiplier=policy.initial_delay,
            exp_base=policy.backoff_factor,
            min=0,
        ),
        before_sleep=_log_before_sleep(description),
        sleep=sleep,
    )
    try:
        return await retrying(attempt)
    except RetryError as exc:
        last_attempt = exc.last_attempt
        logger.warning(
            "retries_exhausted",
            action=description,
            attempts=last_attempt.attempt_number,
        )
        raise ExhaustedRetries(
            f"{description} did not succeed after {last_attempt.attempt_number} attempts",
            attempts=last_attempt.attempt_number,
            last_result=last_attempt.result(),
        ) from None
