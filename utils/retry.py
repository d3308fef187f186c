"""Bounded retry with a fixed delay between attempts."""

import logging
import time
from typing import Callable, TypeVar

T = TypeVar("T")

_module_logger = logging.getLogger(__name__)


class RetryExhausted(Exception):
    """Raised when every attempt of a retried operation has failed."""

    def __init__(self, description: str, attempts: int, last_error: BaseException):
        self.description = description
        self.attempts = attempts
        self.last_error = last_error
        self.message = f"{description} failed after {attempts} attempts: {last_error}"
        super().__init__(self.message)


def retry(
    operation: Callable[[], T],
    *,
    max_attempts: int,
    delay_ms: int,
    sleep: Callable[[float], None] = time.sleep,
    on_failure: Callable[[int, Exception], None] | None = None,
    description: str = "operation",
) -> T:
    """Call an operation until it succeeds or the attempts run out.

    Args:
        operation: Zero-argument callable. Any ``Exception`` counts as a failed attempt.
        max_attempts: Total number of attempts (>= 1).
        delay_ms: Fixed wait between a failed attempt and the next one.
        sleep: Sleep function taking seconds (injectable for tests).
        on_failure: Optional callback(attempt_number, error) for every failed attempt.
        description: Human-readable name used in logs and the exhaustion error.

    Returns:
        The operation's return value from the first successful attempt.

    Raises:
        RetryExhausted: If all attempts failed. ``last_error`` holds the final exception.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
    if delay_ms < 0:
        raise ValueError(f"delay_ms must be >= 0, got {delay_ms}")

    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except Exception as e:
            _module_logger.debug(f"{description}: attempt {attempt}/{max_attempts} failed: {e}")
            if on_failure:
                on_failure(attempt, e)
            if attempt == max_attempts:
                raise RetryExhausted(description, attempt, e) from e
            sleep(delay_ms / 1000)

    # Unreachable: the loop either returns or raises
    raise RuntimeError("Unexpected exit from retry loop")
