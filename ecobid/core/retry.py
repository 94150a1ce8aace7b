"""Retry utilities with exponential backoff.

Engine operations that lose an optimistic compare-and-swap on a listing are
re-run against a fresh read. This module bounds those re-runs and spaces them
out with jittered exponential backoff so that a burst of concurrent bids on a
hot listing does not retry in lock-step.
"""
import logging
import random
import time
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay in seconds (doubles each retry)
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential backoff (default: 2)
        jitter: Add randomness to prevent thundering herd (default: True)
    """

    def __init__(
        self,
        max_retries: int = 5,
        initial_delay: float = 0.005,
        max_delay: float = 0.1,
        exponential_base: float = 2.0,
        jitter: bool = True,
    ):
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    @classmethod
    def from_settings(cls, settings) -> "RetryConfig":
        """Build the CAS retry policy from application settings"""
        return cls(
            max_retries=settings.CAS_MAX_RETRIES,
            initial_delay=settings.CAS_RETRY_INITIAL_DELAY,
            max_delay=settings.CAS_RETRY_MAX_DELAY,
        )

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for a given retry attempt.

        Args:
            attempt: Current attempt number (0-indexed)

        Returns:
            Delay in seconds before next retry

        Example:
            With initial_delay=0.005, exponential_base=2.0:
            - attempt 0: 0.005s
            - attempt 1: 0.010s
            - attempt 2: 0.020s
        """
        delay = self.initial_delay * (self.exponential_base ** attempt)
        delay = min(delay, self.max_delay)

        if self.jitter:
            # Full jitter: concurrent losers of the same CAS spread out
            delay = random.uniform(0, delay)

        return delay


def retry_sync(
    func: Callable[..., T],
    *args: Any,
    config: Optional[RetryConfig] = None,
    retry_on_exceptions: tuple = (Exception,),
    **kwargs: Any,
) -> T:
    """Retry a synchronous function with exponential backoff.

    Args:
        func: Function to retry
        *args: Positional arguments for func
        config: Retry configuration
        retry_on_exceptions: Tuple of exception types to retry on
        **kwargs: Keyword arguments for func

    Returns:
        Result from successful function call

    Raises:
        The last exception if all retries fail
    """
    if config is None:
        config = RetryConfig()

    name = getattr(func, "__name__", repr(func))

    for attempt in range(config.max_retries + 1):
        try:
            result = func(*args, **kwargs)

            if attempt > 0:
                logger.debug(
                    f"Retry succeeded: {name}",
                    extra={"attempt": attempt},
                )

            return result

        except retry_on_exceptions as e:
            if attempt >= config.max_retries:
                logger.warning(
                    f"All retries exhausted: {name} ({e})",
                    extra={"attempt": attempt + 1},
                )
                raise

            delay = config.get_delay(attempt)

            logger.debug(
                f"Operation conflicted, retrying: {name} in {delay:.4f}s",
                extra={"attempt": attempt + 1},
            )

            time.sleep(delay)

    raise RuntimeError("Retry logic error")
