import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from time import monotonic

__all__ = ["CacheEntry", "ReadCache"]


@dataclass(slots=True, frozen=True)
class CacheEntry:
    key: str
    ciphertext: str
    expires_at: float


class ReadCache:
    """
    In-memory TTL cache placed in front of the store.

    Expired entries are dropped lazily by :meth:`get` and in bulk by
    :meth:`clean_expired`, which is meant to be called periodically for keys
    that are written but never read again. Every method holds the internal
    lock only for a dict operation, so it is safe to share between threads.
    """

    def __init__(
        self,
        ttl: float | timedelta,
        clock: Callable[[], float] = monotonic,
    ):
        if isinstance(ttl, timedelta):
            ttl = ttl.total_seconds()
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")

        self.ttl = float(ttl)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] = {}

    def put(self, key: str, value: str):
        entry = CacheEntry(key, value, self._clock() + self.ttl)
        with self._lock:
            self._entries[key] = entry

    def add(self, key: str, value: str) -> bool:
        """Store ``value`` only if ``key`` has no live entry; report whether it did.

        Refills from the store use this so a value read before a concurrent
        :meth:`put` cannot replace the newer entry.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and now <= entry.expires_at:
                return False
            self._entries[key] = CacheEntry(key, value, now + self.ttl)
            return True

    def get(self, key: str) -> tuple[str, bool]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return "", False
            if now > entry.expires_at:
                del self._entries[key]
                return "", False
            return entry.ciphertext, True

    def delete(self, key: str):
        with self._lock:
            self._entries.pop(key, None)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def clean_expired(self) -> int:
        """Remove every expired entry and return how many were dropped."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now > e.expires_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()
