from .cancel import CancelScope
from .errors import (
    CancelledError,
    KeyValidationError,
    NotFoundError,
    StoreError,
    StoreIOError,
)
from .store import MAX_KEY_LENGTH, KeyedStore, validate_key

__all__ = [
    "MAX_KEY_LENGTH",
    "CancelScope",
    "CancelledError",
    "KeyValidationError",
    "KeyedStore",
    "NotFoundError",
    "StoreError",
    "StoreIOError",
    "validate_key",
]
