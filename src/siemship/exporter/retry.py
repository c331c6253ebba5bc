# src/siemship/exporter/retry.py
"""RetryManager: retry uploads with tenacity.

Exponential backoff with jitter around a whole ``consume_logs`` call.
Only errors that ``is_permanent()`` does not flag are retried; a permanent
rejection propagates immediately.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from siemship.exporter.errors import is_permanent

if TYPE_CHECKING:
    from siemship.core.config import RetrySettings

T = TypeVar("T")


class MaxRetriesExceeded(Exception):
    """Raised when every attempt failed with a retryable error."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Max retries ({attempts}) exceeded: {last_error}")


def is_retryable(error: BaseException) -> bool:
    return not is_permanent(error)


@dataclass
class RetryConfig:
    """Backoff parameters. max_attempts counts the first try."""

    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 60.0  # seconds
    jitter: float = 1.0  # seconds
    exponential_base: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @classmethod
    def from_settings(cls, settings: "RetrySettings") -> "RetryConfig":
        return cls(
            max_attempts=settings.max_attempts,
            base_delay=settings.initial_delay_seconds,
            max_delay=settings.max_delay_seconds,
            exponential_base=settings.exponential_base,
        )


class RetryManager:
    """Run an upload with retries on transient errors.

    Example:
        manager = RetryManager(RetryConfig.from_settings(settings.retry))
        manager.execute_with_retry(
            lambda: exporter.consume_logs(payload),
            on_retry=lambda attempt, error: log.warning("retrying", attempt=attempt),
        )
    """

    def __init__(self, config: RetryConfig) -> None:
        self._config = config

    def execute_with_retry(
        self,
        operation: Callable[[], T],
        *,
        on_retry: Callable[[int, BaseException], None] | None = None,
    ) -> T:
        """Execute operation, retrying transient failures.

        Args:
            operation: Operation to execute
            on_retry: Optional callback (attempt, error) run before each
                backoff sleep

        Raises:
            MaxRetriesExceeded: If every attempt failed with a retryable error
            Exception: The first non-retryable error, unchanged
        """

        def before_sleep(state: RetryCallState) -> None:
            if on_retry is not None and state.outcome is not None:
                error = state.outcome.exception()
                if error is not None:
                    on_retry(state.attempt_number, error)

        retrying = Retrying(
            stop=stop_after_attempt(self._config.max_attempts),
            wait=wait_exponential_jitter(
                initial=self._config.base_delay,
                max=self._config.max_delay,
                exp_base=self._config.exponential_base,
                jitter=self._config.jitter,
            ),
            retry=retry_if_exception(is_retryable),
            before_sleep=before_sleep,
        )
        try:
            return retrying(operation)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            assert last_error is not None, "RetryError without exception is impossible"
            raise MaxRetriesExceeded(e.last_attempt.attempt_number, last_error) from e
