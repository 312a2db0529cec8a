"""In-memory response cache with TTL expiry and LRU eviction.

Usage:
    cache = CacheManager(max_size=100, default_ttl=3600)
    cache.set("GET:https://.../verify-pin?pin=P051234567A", payload)
    payload = cache.get("GET:https://.../verify-pin?pin=P051234567A")   # None when absent/expired
    cache.remove_pattern(r"verify-pin")                                 # drop every PIN lookup
"""

import re
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

from kra_connect.exceptions import CacheError


@dataclass
class _Entry:
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class CacheManager:
    """LRU + TTL store. The first key of the ordered dict is the least recently used."""

    def __init__(
        self,
        max_size: int = 100,
        default_ttl: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any:
        """Return the cached value, or None if the key is absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store *value* under *key* for *ttl* seconds (``default_ttl`` when omitted)."""
        effective_ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            if self.max_size <= 0:
                return
            self._entries[key] = _Entry(value, self._clock() + effective_ttl)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    def has(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return False
            return True

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def clean_up(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def remove_pattern(self, pattern: "str | re.Pattern[str]") -> int:
        """Drop every key matching the regular expression *pattern*.

        Raises:
            CacheError: if *pattern* is not a valid regular expression.
        """
        try:
            regex = re.compile(pattern)
        except re.error as exc:
            raise CacheError(
                "Failed to remove keys by pattern",
                "remove_pattern",
                str(pattern),
                details={"error": str(exc)},
            ) from exc

        with self._lock:
            matching = [k for k in self._entries if regex.search(k)]
            for key in matching:
                del self._entries[key]
        return len(matching)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        return len(self._entries)

    @property
    def is_empty(self) -> bool:
        return not self._entries

    @property
    def is_full(self) -> bool:
        return len(self._entries) >= self.max_size

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def valid_keys(self) -> list[str]:
        now = self._clock()
        with self._lock:
            return [k for k, e in self._entries.items() if not e.is_expired(now)]

    def stats(self) -> dict[str, Any]:
        now = self._clock()
        with self._lock:
            size = len(self._entries)
            expired = sum(1 for e in self._entries.values() if e.is_expired(now))
        utilization = size / self.max_size * 100 if self.max_size else 0.0
        return {
            "size":            size,
            "max_size":        self.max_size,
            "utilization":     f"{utilization:.2f}",
            "expired_entries": expired,
            "valid_entries":   size - expired,
        }
