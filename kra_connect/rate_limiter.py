"""Token-bucket rate limiter guarding outbound API calls.

The bucket holds at most ``max_requests_per_second`` tokens, starts full and
refills continuously at ``max_requests_per_second`` tokens per second. Each
request consumes one token.
"""

import logging
import math
import threading
import time
from typing import Any, Callable

from kra_connect.exceptions import RateLimitError

logger = logging.getLogger(__name__)

# Added to every computed wait so the token is there when we wake up
_WAIT_BUFFER = 0.010


class RateLimiter:
    def __init__(
        self,
        max_requests_per_second: int,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.max_requests_per_second = max_requests_per_second
        self.enabled = enabled
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(max_requests_per_second)
        self._last_refill = clock()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------

    def acquire(self) -> None:
        """Take a token or raise RateLimitError with the time to wait."""
        if not self.enabled:
            return
        with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return
            wait = self._wait_time()
        raise RateLimitError(
            f"Rate limit exceeded. Please retry after {wait:.2f} seconds",
            retry_after=wait,
            limit=self.max_requests_per_second,
        )

    def try_acquire(self) -> bool:
        if not self.enabled:
            return True
        with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return True
            return False

    def wait_and_acquire(self) -> None:
        """Block until a token is available, then take it."""
        if not self.enabled:
            return
        while True:
            with self._lock:
                self._refill()
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    return
                wait = self._wait_time()
            logger.debug("Rate limit reached, sleeping %.3fs", wait)
            self._sleep(wait)

    def estimate_wait(self) -> float:
        """Seconds until a token is available (0.0 when one is available now)."""
        if not self.enabled:
            return 0.0
        with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                return 0.0
            return self._wait_time()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def available_tokens(self) -> float:
        with self._lock:
            self._refill()
            return self._tokens

    @property
    def has_available_token(self) -> bool:
        return self.available_tokens >= 1.0

    def stats(self) -> dict[str, Any]:
        tokens = self.available_tokens
        utilization = (1 - tokens / self.max_requests_per_second) * 100
        return {
            "enabled":                 self.enabled,
            "max_requests_per_second": self.max_requests_per_second,
            "available_tokens":        f"{tokens:.2f}",
            "utilization":             f"{utilization:.2f}",
            "has_available_token":     tokens >= 1.0,
            "estimated_wait_ms":       math.ceil(self.estimate_wait() * 1000),
        }

    def reset(self) -> None:
        with self._lock:
            self._tokens = float(self.max_requests_per_second)
            self._last_refill = self._clock()

    # ------------------------------------------------------------------
    # Internal (call with the lock held)
    # ------------------------------------------------------------------

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            capacity = float(self.max_requests_per_second)
            self._tokens = min(capacity, self._tokens + elapsed * self.max_requests_per_second)
            self._last_refill = now

    def _wait_time(self) -> float:
        needed = 1.0 - self._tokens
        return needed / self.max_requests_per_second + _WAIT_BUFFER
