from .schema import Record, StoredBlob

__all__ = ["Record", "StoredBlob"]
