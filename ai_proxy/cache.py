from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


class Cache(ABC):
    """Key-value store with per-entry expiry."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the live value for key, or None on miss or expiry."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        ...


@dataclass
class CacheEntry:
    key: str
    value: Any
    expires_at: float

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


class MemoryCache(Cache):
    """Process-wide in-memory cache; safe to share across worker threads."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expired(self._clock()):
                # expire
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                expires_at=self._clock() + ttl_seconds,
            )

    def cleanup(self) -> None:
        with self._lock:
            now = self._clock()
            to_del = [k for k, e in self._entries.items() if e.expired(now)]
            for k in to_del:
                del self._entries[k]

    def __len__(self) -> int:
        return len(self._entries)
