"""
Resilience utilities for retrying flaky operations.

Browser checks against a live SaaS app are inherently flaky (slow redirects
after login, menus that render late) and webhook calls cross the network.
This module holds the retry patterns both rely on.

Classes:
    RetryManager: Retry with configurable strategy and backoff

Functions:
    retry_call: Linear-backoff retry of any exception, for UI interactions
"""

import logging
import random
import time
from typing import Optional, Callable, TypeVar
from enum import Enum


class RetryStrategy(Enum):
    """Retry strategy enumeration."""
    FIXED = "fixed"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    EXPONENTIAL_WITH_JITTER = "exponential_with_jitter"


T = TypeVar('T')


class RetryManager:
    """
    Centralized retry and backoff management.

    Only errors in RETRIABLE_ERRORS are retried; anything else propagates on
    the first attempt. requests' exceptions derive from IOError, so network
    failures are retriable.
    """

    # Default retry configuration
    DEFAULT_MAX_RETRIES = 3
    DEFAULT_BASE_DELAY = 1.0  # seconds
    DEFAULT_MAX_DELAY = 30.0  # seconds
    DEFAULT_STRATEGY = RetryStrategy.EXPONENTIAL_WITH_JITTER

    # Retriable error types
    RETRIABLE_ERRORS = (
        ConnectionError,
        TimeoutError,
        OSError,
    )

    # Retriable HTTP status codes
    RETRIABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})

    def __init__(self, max_retries: int = DEFAULT_MAX_RETRIES,
                 base_delay: float = DEFAULT_BASE_DELAY,
                 max_delay: float = DEFAULT_MAX_DELAY,
                 strategy: RetryStrategy = DEFAULT_STRATEGY,
                 logger: Optional[logging.Logger] = None,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize RetryManager.

        Args:
            max_retries (int): Maximum number of attempts (at least 1)
            base_delay (float): Base delay in seconds
            max_delay (float): Maximum delay in seconds
            strategy (RetryStrategy): Retry strategy to use
            logger (logging.Logger, optional): Logger instance
            sleep (Callable): Sleep function, replaceable in tests
        """
        self.max_retries = max(1, max_retries)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.strategy = strategy
        self.logger = logger or logging.getLogger(__name__)
        self.sleep = sleep

    def calculate_delay(self, attempt: int, custom_jitter: bool = True) -> float:
        """
        Calculate delay for retry attempt based on strategy.

        Args:
            attempt (int): Current attempt number (0-indexed)
            custom_jitter (bool): Whether to add jitter to the delay

        Returns:
            float: Delay in seconds
        """
        if self.strategy == RetryStrategy.FIXED:
            delay = self.base_delay

        elif self.strategy == RetryStrategy.LINEAR:
            delay = self.base_delay * (attempt + 1)

        elif self.strategy == RetryStrategy.EXPONENTIAL:
            delay = self.base_delay * (2 ** attempt)

        elif self.strategy == RetryStrategy.EXPONENTIAL_WITH_JITTER:
            delay = self.base_delay * (2 ** attempt)
            if custom_jitter:
                # ±10% jitter
                jitter = delay * 0.1 * random.uniform(-1, 1)
                delay += jitter

        else:
            delay = self.base_delay

        # Cap at max delay
        return min(delay, self.max_delay)

    def retry_sync(self, func: Callable[..., T], *args, **kwargs) -> T:
        """
        Retry a synchronous function with configured strategy.

        Args:
            func (Callable): Function to retry
            *args: Positional arguments to pass to function
            **kwargs: Keyword arguments to pass to function

        Returns:
            T: Return value from function

        Raises:
            The last retriable error once attempts are exhausted, or the first
            non-retriable error.
        """
        name = getattr(func, '__name__', repr(func))
        last_exception = None

        for attempt in range(self.max_retries):
            try:
                return func(*args, **kwargs)

            except self.RETRIABLE_ERRORS as e:
                last_exception = e
                if attempt < self.max_retries - 1:
                    delay = self.calculate_delay(attempt)
                    self.logger.warning(
                        f"Attempt {attempt + 1}/{self.max_retries} failed: {e}. "
                        f"Retrying in {delay:.2f}s..."
                    )
                    self.sleep(delay)
                else:
                    self.logger.error(
                        f"All {self.max_retries} attempts failed for {name}: {e}"
                    )

        raise last_exception

    def classify_http_status(self, status_code: int) -> bool:
        """
        Classify HTTP status code as retriable.

        Args:
            status_code (int): HTTP status code

        Returns:
            bool: True if retriable, False otherwise
        """
        return status_code in self.RETRIABLE_STATUSES


def retry_call(func: Callable[[], T], tries: int = 2, base_delay: float = 0.6,
               logger: Optional[logging.Logger] = None,
               sleep: Callable[[float], None] = time.sleep) -> T:
    """
    Call func up to `tries` times with linear backoff, re-raising the last error.

    Any exception is retried: flaky UI steps (login redirects, late menus)
    fail with assorted Playwright errors, not just network ones.

    Example:
        retry_call(lambda: login(page), tries=2)
    """
    logger = logger or logging.getLogger(__name__)
    manager = RetryManager(max_retries=tries, base_delay=base_delay,
                           max_delay=base_delay * max(1, tries),
                           strategy=RetryStrategy.LINEAR, logger=logger)
    last_exception: Optional[BaseException] = None

    for attempt in range(manager.max_retries):
        try:
            return func()
        except Exception as e:
            last_exception = e
            delay = manager.calculate_delay(attempt)
            logger.warning(f"retry_call(): attempt {attempt + 1}/{manager.max_retries} failed: {e}")
            if attempt < manager.max_retries - 1:
                sleep(delay)

    raise last_exception
