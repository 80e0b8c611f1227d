from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryResult(Generic[T]):
    value: T
    attempts: int


class RetryExhausted(Exception):
    def __init__(self, attempts: int, last_error: BaseException, description: str = "") -> None:
        what = description or "operation"
        super().__init__(f"{what} failed after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded attempts with a constant delay between them."""

    max_attempts: int = 3
    delay: float = 5.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay < 0:
            raise ValueError(f"delay must be >= 0, got {self.delay}")


def retry(
    operation: Callable[[], T],
    *,
    max_attempts: int,
    delay: float,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "",
) -> RetryResult[T]:
    """Call ``operation`` until it returns, at most ``max_attempts`` times.

    Only ``Exception`` subclasses count as failures; interrupts propagate
    from whichever attempt (or sleep) they arrive in. There is no sleep after
    the last attempt.
    """

    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    what = description or getattr(operation, "__name__", "operation")
    attempt = 0
    while True:
        attempt += 1
        try:
            value = operation()
        except Exception as e:
            if attempt >= max_attempts:
                logger.error("%s: attempt %d/%d failed: %s", what, attempt, max_attempts, e)
                raise RetryExhausted(attempt, e, description=what) from e
            logger.warning(
                "%s: attempt %d/%d failed: %s; retrying in %ss",
                what,
                attempt,
                max_attempts,
                e,
                delay,
            )
            sleep(delay)
            continue
        if attempt > 1:
            logger.info("%s: succeeded on attempt %d/%d", what, attempt, max_attempts)
        return RetryResult(value=value, attempts=attempt)
