from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from job_scraper.exceptions import RetriesExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_SECONDS = 1.0

# Programming errors fail immediately instead of waiting through the backoff.
NON_RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    AttributeError,
    LookupError,
    NameError,
    NotImplementedError,
    TypeError,
)


def is_transient(exc: BaseException) -> bool:
    return isinstance(exc, Exception) and not isinstance(exc, NON_RETRYABLE_ERRORS)


class RetryPolicy:
    """Bounded retries with plain exponential backoff.

    The wait after failed attempt ``i`` (0-indexed) is ``base_delay * 2**i``.
    No jitter is mixed in here; randomized pacing belongs to the rate limiter.
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep

    def execute(
        self,
        operation: Callable[[], T],
        max_attempts: int | None = None,
        base_delay: float | None = None,
        *,
        description: str = "operation",
    ) -> T:
        attempts = self.max_attempts if max_attempts is None else max_attempts
        delay = self.base_delay if base_delay is None else base_delay
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        def _log_retry(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.2fs: %s",
                description,
                retry_state.attempt_number,
                attempts,
                retry_state.next_action.sleep if retry_state.next_action else 0.0,
                exc,
            )

        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            retry=retry_if_exception(is_transient),
            wait=wait_exponential(multiplier=delay, exp_base=2, min=0),
            sleep=self._sleep,
            before_sleep=_log_retry,
        )
        try:
            return retrying(operation)
        except RetryError as exc:
            raise RetriesExhaustedError(description, attempts) from exc.last_attempt.exception()
