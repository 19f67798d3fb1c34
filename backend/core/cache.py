"""
Key/value cache with per-entry TTL.

Holds raw weather provider responses, transient enrichment errors and
assembled track payloads. Components receive a store instance explicitly;
there is no module-level cache.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class CacheStore(ABC):
    """Abstract cache. A `get` miss returns None."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the cached value or None when absent or expired."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store a value, replacing any existing entry."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove an entry; missing keys are ignored."""

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


class MemoryCacheStore(CacheStore):
    """
    Thread-safe in-process cache.

    Expiry is checked lazily on read. Writes are plain upserts so concurrent
    workers storing the same response are harmless.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                logger.debug(f"[CACHE] expired {key}")
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + ttl_seconds, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
