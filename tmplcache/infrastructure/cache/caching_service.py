"""Concrete implementation of the CacheService: the cache facade.

Wires the tiered store, the validity checker, the cleanup engine and the
stats tracker together. The cache is an optimization layer, so apart from
key-generator errors nothing raised underneath ever reaches the caller:
failures are logged and degrade to a miss or a no-op.
"""

import asyncio
import logging
import time
from typing import Any, Optional, Set

# Domain Layer Imports
from tmplcache.domain.interfaces.cache import CacheService
from tmplcache.domain.interfaces.filesystem import FileSystem
from tmplcache.domain.interfaces.store import EntryStore
from tmplcache.domain.interfaces.strategies import Clock
from tmplcache.domain.models.common import HASH_SIZE_LIMIT, CacheKey, EpochMillis, FilePath
from tmplcache.domain.models.entry import CacheEntry
from tmplcache.domain.models.errors import SerializationError
from tmplcache.domain.models.options import CacheOptions, CacheStats, CleanupResult

# Infrastructure Imports
from tmplcache.infrastructure.cache.cleanup import CleanupEngine
from tmplcache.infrastructure.cache.hashing import default_key_generator, file_cache_key, fingerprint_file
from tmplcache.infrastructure.cache.stats import StatsTracker
from tmplcache.infrastructure.cache.store import DiskEntryStore
from tmplcache.infrastructure.cache.validity import ValidityChecker
from tmplcache.infrastructure.filesystem.local_fs import LocalFileSystem

logger = logging.getLogger(__name__)


def epoch_millis() -> float:
    return time.time() * 1000


class Cache(CacheService):
    """Content-aware cache with an in-memory tier over one JSON file per entry."""

    def __init__(
        self,
        options: Optional[CacheOptions] = None,
        fs: Optional[FileSystem] = None,
        store: Optional[EntryStore] = None,
        clock: Optional[Clock] = None,
    ):
        """Initializes the cache.

        The cache directory is provisioned here; if that fails the cache
        disables itself instead of raising. Persisted entries are loaded
        lazily on first use.

        Args:
            options: Construction options (defaults apply when omitted).
            fs: File system adapter; defaults to the local disk.
            store: Entry store; defaults to a DiskEntryStore under `cache_dir`.
            clock: Epoch-millisecond clock; defaults to the wall clock.
        """
        self.options = options or CacheOptions()
        self.cache_dir = self.options.cache_path
        self.fs = fs or LocalFileSystem()
        self.clock = clock or epoch_millis
        self.store = store or DiskEntryStore(self.cache_dir, self.fs, self.options.serializer)
        self.stats = StatsTracker()

        self._key_generator = self.options.key_generator or default_key_generator
        self._checker = ValidityChecker(self.fs, self.options.ttl_ms, self.clock, self.options.validator)
        self._cleaner = CleanupEngine(self.store, self.options.ttl_ms, self.options.max_files, self.clock)

        self._enabled = self.options.enabled and self.store.provision()
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._background_tasks: Set[asyncio.Task] = set()

        logger.info(
            f"Cache initialized. enabled={self._enabled}, dir={self.cache_dir}, "
            f"ttl_days={self.options.ttl_days}, max_files={self.options.max_files}"
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def initialized(self) -> bool:
        """True once persisted entries have been loaded."""
        return self._initialized

    @property
    def size(self) -> int:
        """Number of live entries held in memory."""
        return len(self.store)

    async def _ensure_initialized(self) -> None:
        """Loads persisted entries once, then schedules the startup cleanup."""
        if self._initialized or not self._enabled:
            return
        async with self._init_lock:
            if self._initialized:
                return
            try:
                loaded = await self.store.load()
                logger.debug(f"Preloaded {loaded} cache entries")
            except OSError as e:
                logger.warning(f"Failed to preload cache entries from {self.cache_dir}: {e}")
            self._initialized = True

        if self.options.auto_cleanup:
            task = asyncio.get_running_loop().create_task(self._background_cleanup())
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)

    async def _background_cleanup(self) -> None:
        result = await self.cleanup()
        for error in result.errors:
            logger.warning(f"Background cache cleanup error: {error}")

    # --- Lookup helpers ---

    async def _lookup(self, key: CacheKey, file_path: Optional[FilePath]) -> Optional[Any]:
        """Reads and validates one entry, updating the counters."""
        try:
            entry = await self.store.read(key)
            valid = await self._checker.validate(entry, file_path)
        except Exception as e:
            logger.warning(f"Cache lookup failed for key {key}: {e}")
            entry, valid = None, False

        if valid:
            # Admit entries loaded from disk unless a newer write got there first
            if self.store.peek(key) is None:
                self.store.install(entry)
            self.stats.record_hit()
            logger.debug(f"Cache hit for key: {key}")
            return entry.data

        current = self.store.peek(key)
        if entry is not None and (current is None or current is entry):
            self.store.mark_invalid(key)
        self.stats.record_miss()
        logger.debug(f"Cache miss for key: {key}")
        return None

    async def _store_entry(self, entry: CacheEntry) -> None:
        try:
            await self.store.persist(entry)
        except SerializationError as e:
            logger.warning(f"{e}. Skipping cache write.")
            # Whatever was cached for this key predates the failed write
            self.store.mark_invalid(entry.key)

    # --- CacheService Interface Implementation ---

    async def set(self, file_path: FilePath, data: Any) -> None:
        """Caches `data` together with the size, mtime and (small-file) hash of `file_path`."""
        if not self._enabled:
            return
        await self._ensure_initialized()

        try:
            key = file_cache_key(file_path)
            state = await self.fs.stat_file(file_path)
            fingerprint = None
            if state.size <= HASH_SIZE_LIMIT:
                fingerprint = await fingerprint_file(self.fs, file_path)
        except (OSError, RuntimeError, ValueError) as e:
            logger.warning(f"Failed to cache data for {file_path}: {e}")
            return

        entry = CacheEntry(
            key=key,
            data=data,
            created_at=EpochMillis(self.clock()),
            size=state.size,
            mtime=state.mtime,
            hash=fingerprint,
        )
        await self._store_entry(entry)

    async def get(self, file_path: FilePath) -> Optional[Any]:
        if not self._enabled:
            return None
        await self._ensure_initialized()
        try:
            key = file_cache_key(file_path)
        except (OSError, RuntimeError, ValueError) as e:
            logger.warning(f"Cannot derive cache key for {file_path}: {e}")
            self.stats.record_miss()
            return None
        return await self._lookup(key, file_path)

    async def set_by_data(self, data: Any, created_at: Optional[float] = None) -> Optional[CacheKey]:
        """Caches `data` under the key produced by the key generator.

        Returns:
            The key used, or None when the cache is disabled.
        """
        if not self._enabled:
            return None
        await self._ensure_initialized()

        key = CacheKey(self._key_generator(data))
        entry = CacheEntry(
            key=key,
            data=data,
            created_at=EpochMillis(created_at if created_at is not None else self.clock()),
        )
        await self._store_entry(entry)
        return key

    async def get_by_key(self, key: CacheKey) -> Optional[Any]:
        if not self._enabled:
            return None
        await self._ensure_initialized()
        return await self._lookup(key, None)

    async def cleanup(self) -> CleanupResult:
        if not self._enabled:
            return CleanupResult()
        await self._ensure_initialized()
        try:
            return await self._cleaner.run()
        except OSError as e:
            logger.warning(f"Cache cleanup failed: {e}")
            return CleanupResult(errors=[e])

    async def clear(self) -> None:
        """Removes all entries; hit/miss counters are cumulative and survive."""
        await self._ensure_initialized()
        await self.store.clear()

    async def get_stats(self) -> CacheStats:
        disk_usage, files = await self.store.disk_usage()
        return CacheStats(
            hits=self.stats.hits,
            misses=self.stats.misses,
            hit_rate=self.stats.hit_rate,
            disk_usage=disk_usage,
            files=files,
        )

    async def close(self) -> None:
        """Waits for background cleanup scheduled at startup to finish."""
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
