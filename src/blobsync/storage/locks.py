import threading
from collections.abc import Iterator
from contextlib import contextmanager

__all__ = ["LockRegistry", "ReadWriteLock"]


class ReadWriteLock:
    """Many readers or one writer.

    Waiting writers block newly arriving readers, and a writer releasing the
    lock hands it to the readers already waiting, so neither side starves.
    Not reentrant.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._readers_waiting = 0
        self._writers_waiting = 0
        self._readers_turn = False

    def acquire_read(self):
        with self._cond:
            self._readers_waiting += 1
            try:
                while self._writer or (self._writers_waiting and not self._readers_turn):
                    self._cond.wait()
            finally:
                self._readers_waiting -= 1
            self._readers += 1
            if not self._readers_waiting:
                self._readers_turn = False

    def release_read(self):
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while (
                    self._writer
                    or self._readers
                    or (self._readers_turn and self._readers_waiting)
                ):
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self):
        with self._cond:
            self._writer = False
            self._readers_turn = self._readers_waiting > 0
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class LockRegistry:
    """Lazily creates one :class:`ReadWriteLock` per key.

    Entries are never removed, so the table grows with the number of
    distinct keys ever touched (not with request volume).
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, ReadWriteLock] = {}

    def get(self, key: str) -> ReadWriteLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = ReadWriteLock()
            return lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
