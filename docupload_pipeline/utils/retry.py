"""Retry utilities for the Document Upload Pipeline.

This module provides a small retry strategy used by the page upload loop. A
RetryPolicy fixes the maximum number of attempts and a delay function that
maps the number of the failed attempt to the time to wait before the next one.
The default policy retries immediately, three times; exponential backoff can
be configured without touching the loop.
"""

from collections.abc import Callable
from dataclasses import dataclass
import logging
import time
from typing import Any, TypeVar

from ..domain.config import RetryConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

NR_OF_RETRIES_ON_FAIL = 3
"""Retries after the first failed attempt of a page upload."""


def no_delay(attempt: int) -> float:
    """Delay function for immediate retries."""
    return 0.0


def exponential_delay(
    initial_delay: float, backoff_multiplier: float, max_delay: float
) -> Callable[[int], float]:
    """Build a delay function with exponential backoff.

    The delay after the n-th failed attempt follows the formula:
    delay = min(initial_delay * (backoff_multiplier ** (n - 1)), max_delay)
    """

    def delay(attempt: int) -> float:
        return min(initial_delay * (backoff_multiplier ** (attempt - 1)), max_delay)

    return delay


@dataclass(frozen=True)
class RetryPolicy:
    """Strategy deciding how often and how fast a failed call is repeated.

    Attributes:
        max_attempts: Maximum number of attempts, including the first one.
        delay: Function mapping the number of the failed attempt (1-indexed) to
            the delay in seconds before the next attempt.
        exceptions: Exception types that trigger a retry. Other exceptions
            propagate immediately.
        sleep: Function used to wait between attempts.

    Example:
        >>> policy = RetryPolicy.immediate()
        >>> session = policy.call(client.put_page, upload_id, img, xml)
    """

    max_attempts: int = NR_OF_RETRIES_ON_FAIL + 1
    delay: Callable[[int], float] = no_delay
    exceptions: tuple[type[Exception], ...] = (Exception,)
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(
                f"max_attempts must be at least 1, got {self.max_attempts}"
            )

    @classmethod
    def immediate(cls, max_retries: int = NR_OF_RETRIES_ON_FAIL) -> "RetryPolicy":
        """Policy that retries immediately, max_retries times."""
        return cls(max_attempts=max_retries + 1)

    @classmethod
    def exponential(
        cls,
        max_retries: int,
        initial_delay: float,
        backoff_multiplier: float,
        max_delay: float,
    ) -> "RetryPolicy":
        """Policy that waits with exponential backoff between attempts."""
        return cls(
            max_attempts=max_retries + 1,
            delay=exponential_delay(initial_delay, backoff_multiplier, max_delay),
        )

    @classmethod
    def from_config(cls, config: RetryConfig) -> "RetryPolicy":
        """Build a policy from the retry configuration group."""
        if config.initial_delay > 0:
            return cls.exponential(
                config.max_retries,
                config.initial_delay,
                config.backoff_multiplier,
                config.max_delay,
            )
        return cls.immediate(config.max_retries)

    def call(
        self,
        func: Callable[..., T],
        *args: Any,
        on_retry: Callable[[int, float, Exception], None] | None = None,
        **kwargs: Any,
    ) -> T:
        """Call func until it succeeds or the attempts are exhausted.

        Args:
            func: Function to call.
            *args: Positional arguments for func.
            on_retry: Optional callback called after each failed attempt that
                will be retried. Receives the attempt number (1-indexed), the
                delay in seconds and the exception. If the callback raises, the
                exception propagates and stops the retry loop.
            **kwargs: Keyword arguments for func.

        Returns:
            The return value of the first successful call.

        Raises:
            The exception of the last attempt if all attempts fail.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return func(*args, **kwargs)
            except self.exceptions as e:
                if attempt == self.max_attempts:
                    raise

                delay = self.delay(attempt)
                if on_retry is not None:
                    on_retry(attempt, delay, e)
                if delay > 0:
                    self.sleep(delay)

        # Unreachable: the last attempt either returns or raises
        raise RuntimeError("retry loop exited without result")
