from .read_cache import CacheEntry, ReadCache

__all__ = ["CacheEntry", "ReadCache"]
