__all__ = [
    "CancelledError",
    "KeyValidationError",
    "NotFoundError",
    "StoreError",
    "StoreIOError",
]


class StoreError(Exception):
    """Base class for every failure raised by :class:`KeyedStore`."""


class KeyValidationError(StoreError):
    """Malformed key or oversize payload, rejected before any I/O."""


class NotFoundError(StoreError):
    def __init__(self, key: str):
        super().__init__(f"no record stored for key {key!r}")
        self.key = key


class StoreIOError(StoreError):
    """Filesystem or serialization failure. Not retried."""


class CancelledError(StoreError):
    """The caller gave up before the operation touched the filesystem."""
