"""In-memory caching."""

from backend.cache.memory import CacheEntry, ResultCache

__all__ = ["ResultCache", "CacheEntry"]
