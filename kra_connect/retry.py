"""Retry with exponential backoff for transient API failures.

Usage:
    handler = RetryHandler(max_retries=3, initial_delay=1.0)
    data = handler.execute(lambda: http.request_once(...), operation_name="/verify-pin")

Delays grow as ``initial_delay * 2 ** (attempt - 1)`` (1s, 2s, 4s, ...), are
capped at ``max_delay`` and get 0-10 % random jitter on top.
"""

import logging
import random
import time
from typing import Any, Callable, Iterable, TypeVar

from kra_connect.exceptions import (
    ApiError,
    AuthenticationError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
    ValidationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_JITTER_RATIO = 0.1


class RetryHandler:
    def __init__(
        self,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        max_delay: float = 30.0,
        retry_status_codes: Iterable[int] = (408, 429, 500, 502, 503, 504),
        enable_jitter: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.retry_status_codes = frozenset(retry_status_codes)
        self.enable_jitter = enable_jitter
        self._sleep = sleep

    def execute(
        self,
        operation: Callable[[], T],
        operation_name: str = "operation",
        should_retry: Callable[[Exception], bool] | None = None,
    ) -> T:
        """Run *operation*, retrying retryable failures up to ``max_retries`` times.

        *should_retry* can veto a retry for an error the handler would
        otherwise retry. The last error is re-raised once attempts run out.
        """
        attempt = 0
        while True:
            try:
                return operation()
            except Exception as exc:
                attempt += 1
                if attempt > self.max_retries or not self.is_retryable(exc):
                    raise
                if should_retry is not None and not should_retry(exc):
                    raise

                delay = self.delay_for(attempt, exc)
                logger.warning(
                    "%s failed (%s), retry %d/%d in %.2fs",
                    operation_name, exc, attempt, self.max_retries, delay,
                )
                self._sleep(delay)

    def is_retryable(self, error: Exception) -> bool:
        if isinstance(error, (AuthenticationError, ValidationError)):
            return False
        if isinstance(error, (RequestTimeoutError, NetworkError)):
            return True
        if isinstance(error, (ApiError, RateLimitError)):
            return error.status_code in self.retry_status_codes
        return False

    def delay_for(self, attempt: int, error: Exception | None = None) -> float:
        """Seconds to wait before retry number *attempt* (1-based)."""
        delay = min(self.initial_delay * 2 ** (attempt - 1), self.max_delay)
        if self.enable_jitter:
            delay += random.uniform(0, delay * _JITTER_RATIO)
        if isinstance(error, RateLimitError) and error.retry_after > delay:
            delay = min(error.retry_after, self.max_delay)
        return delay

    def retry_stats(self, attempt: int) -> dict[str, Any]:
        next_delay = self.delay_for(attempt) if attempt <= self.max_retries else None
        return {
            "max_retries":        self.max_retries,
            "current_attempt":    attempt,
            "attempts_remaining": max(0, self.max_retries - attempt + 1),
            "next_delay":         next_delay,
            "enable_jitter":      self.enable_jitter,
        }
