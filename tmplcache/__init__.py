"""tmplcache: content-aware, tiered artifact cache for scaffolding pipelines.

Skips recomputation across repeated tool runs by caching values against a
source file's size, modification time and content, or against an arbitrary
key, with TTL expiry, quota eviction and corruption recovery.
"""

from tmplcache.domain.models.entry import CacheEntry
from tmplcache.domain.models.options import CacheOptions, CacheStats, CleanupResult
from tmplcache.infrastructure.cache.caching_service import Cache
from tmplcache.infrastructure.cache.serializers import JsonSerializer
from tmplcache.infrastructure.cache.store import DiskEntryStore, MemoryEntryStore
from tmplcache.main import create_cache

__all__ = [
    "Cache",
    "CacheEntry",
    "CacheOptions",
    "CacheStats",
    "CleanupResult",
    "DiskEntryStore",
    "JsonSerializer",
    "MemoryEntryStore",
    "create_cache",
]

__version__ = "0.1.0"
