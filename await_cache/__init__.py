"""In-memory caches used by await-remote-run (no disk persistence)."""

from .cache_conditional import CacheEntry, ConditionalCache

__all__ = ["CacheEntry", "ConditionalCache"]
