import threading
from time import monotonic

from .errors import CancelledError

__all__ = ["CancelScope"]


class CancelScope:
    """Cancellation signal for one store call.

    Cancelled either explicitly through :meth:`cancel` or once the optional
    ``deadline`` (a :func:`time.monotonic` timestamp) has passed.
    """

    def __init__(self, deadline: float | None = None):
        self.deadline = deadline
        self._event = threading.Event()

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancelScope":
        return cls(deadline=monotonic() + seconds)

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self.deadline is not None and monotonic() >= self.deadline

    def check(self):
        if self._event.is_set():
            raise CancelledError("operation cancelled")
        if self.deadline is not None and monotonic() >= self.deadline:
            raise CancelledError("deadline exceeded")
