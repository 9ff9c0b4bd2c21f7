import os
from os import PathLike
from pathlib import Path

from pydantic import ValidationError

from blobsync.models.schema import Record, StoredBlob
from blobsync.shared import Logger

from .cancel import CancelScope
from .errors import KeyValidationError, NotFoundError, StoreIOError
from .locks import LockRegistry

logger = Logger(__name__).get_logger()

__all__ = ["MAX_KEY_LENGTH", "KeyedStore", "name_max", "validate_key"]

MAX_KEY_LENGTH = 256
# Used where the filesystem cannot report its own file name limit
DEFAULT_NAME_MAX = 255
RECORD_SUFFIX = ".json"
_RESERVED_KEYS = {"", ".", ".."}
_FORBIDDEN_CHARS = ("/", "\\", "\x00")


def validate_key(key: str, max_length: int = MAX_KEY_LENGTH):
    if not isinstance(key, str):
        raise KeyValidationError(f"invalid key type: {type(key).__name__}")
    if key in _RESERVED_KEYS:
        raise KeyValidationError(f"invalid key: {key!r}")
    if any(char in key for char in _FORBIDDEN_CHARS):
        raise KeyValidationError(f"invalid key contains path separator: {key!r}")
    try:
        key.encode("utf-8")
    except UnicodeEncodeError as e:
        raise KeyValidationError(f"invalid key is not valid unicode: {key!r}") from e
    if len(key) > max_length:
        raise KeyValidationError(
            f"key length {len(key)} exceeds maximum of {max_length}"
        )


def name_max(directory: str) -> int:
    """Longest file name, in bytes, that ``directory`` accepts."""
    try:
        limit = os.pathconf(directory, "PC_NAME_MAX")
    except (AttributeError, OSError, ValueError):
        # os.pathconf is missing on Windows and some filesystems do not answer
        return DEFAULT_NAME_MAX
    return limit if limit > 0 else DEFAULT_NAME_MAX


class KeyedStore:
    """One ``<root>/<key>.json`` file per record, guarded by per-key locks.

    The lock registry belongs to the instance, so two stores never share
    locks even when they point at the same directory. The root directory is
    assumed to be owned by a single process.
    """

    def __init__(
        self,
        root: str | PathLike,
        max_ciphertext_length: int | None = None,
        max_key_length: int = MAX_KEY_LENGTH,
    ):
        self.root = Path(root)
        self.max_ciphertext_length = max_ciphertext_length
        self.max_key_length = max_key_length

        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreIOError(f"cannot create data directory {self.root}: {e}") from e

        self._root_path = os.path.normpath(os.path.abspath(self.root))
        self.max_name_bytes = name_max(self._root_path)
        self._locks = LockRegistry()
        logger.info("Records will be stored in: %s", self._root_path)

    def get_safe_file_path(self, key: str) -> Path:
        """Validate ``key`` and return the file that holds its record."""
        validate_key(key, self.max_key_length)
        file_name = f"{key}{RECORD_SUFFIX}"
        name_bytes = len(file_name.encode("utf-8"))
        if name_bytes > self.max_name_bytes:
            raise KeyValidationError(
                f"key too long for file name: {name_bytes} bytes with suffix, "
                f"filesystem allows {self.max_name_bytes}"
            )

        full_path = os.path.normpath(os.path.join(self._root_path, file_name))
        prefix = self._root_path.rstrip(os.sep) + os.sep
        if not full_path.startswith(prefix):
            raise KeyValidationError(
                f"path traversal detected: key {key!r} resolves outside data directory"
            )
        return Path(full_path)

    def put(self, key: str, ciphertext: str, cancel: CancelScope | None = None):
        file_path = self.get_safe_file_path(key)
        if not isinstance(ciphertext, str):
            raise KeyValidationError(
                f"invalid ciphertext type: {type(ciphertext).__name__}"
            )
        if (
            self.max_ciphertext_length is not None
            and len(ciphertext) > self.max_ciphertext_length
        ):
            raise KeyValidationError(
                f"ciphertext length {len(ciphertext)} exceeds maximum of "
                f"{self.max_ciphertext_length}"
            )

        # Fail fast before contending for the lock
        if cancel is not None:
            cancel.check()

        with self._locks.get(key).write_locked():
            if cancel is not None:
                cancel.check()

            try:
                content = StoredBlob(encrypted=ciphertext).model_dump_json().encode("utf-8")
            except (ValidationError, ValueError) as e:
                raise StoreIOError(f"serialize record: {e}") from e

            try:
                with open(file_path, "wb") as f:
                    f.write(content)
            except OSError as e:
                logger.error("Failed to write %s: %s", file_path, e)
                raise StoreIOError(f"write file: {e}") from e

        logger.debug("Stored %s bytes for key %s", len(content), key)

    def get(self, key: str, cancel: CancelScope | None = None) -> Record:
        file_path = self.get_safe_file_path(key)

        if cancel is not None:
            cancel.check()

        with self._locks.get(key).read_locked():
            if cancel is not None:
                cancel.check()

            try:
                with open(file_path, "rb") as f:
                    content = f.read()
            except FileNotFoundError as e:
                raise NotFoundError(key) from e
            except OSError as e:
                logger.error("Failed to read %s: %s", file_path, e)
                raise StoreIOError(f"read file: {e}") from e

        try:
            blob = StoredBlob.model_validate_json(content)
        except ValidationError as e:
            raise StoreIOError(f"deserialize record: {e}") from e

        return Record(key=key, ciphertext=blob.encrypted)

    def close(self):
        """Nothing is held open between calls."""
