"""Eviction/Cleanup Engine.

One pass over the union of resident entries and backing files removes, in
order: tombstoned entries, corrupted files, entries past their TTL, and the
oldest-written entries beyond the quota. Deletions are independent; a
failure is collected in the result and the entry is kept.
"""

import logging
from typing import Dict, List, Optional, Tuple

from tmplcache.domain.interfaces.store import EntryStore, StoredRecord
from tmplcache.domain.interfaces.strategies import Clock
from tmplcache.domain.models.common import CacheKey
from tmplcache.domain.models.entry import CacheEntry
from tmplcache.domain.models.errors import StorageError
from tmplcache.domain.models.options import CleanupResult

logger = logging.getLogger(__name__)


class CleanupEngine:
    """Reconciles memory and disk after expiry, corruption and quota checks."""

    def __init__(self, store: EntryStore, ttl_ms: float, max_files: int, clock: Clock):
        self.store = store
        self.ttl_ms = ttl_ms
        self.max_files = max_files
        self.clock = clock

    async def run(self) -> CleanupResult:
        result = CleanupResult()
        if not self.store.enabled:
            return result

        records = await self.store.list_records()
        resident = {entry.key: entry for entry in self.store.entries()}
        owners = {self.store.path_for(key): key for key in resident}
        on_disk: Dict[CacheKey, StoredRecord] = {}
        for record in records:
            if record.corrupted:
                logger.debug(f"Removing corrupted cache file: {record.path}")
                # A resident entry whose file is corrupted goes with it
                key = owners.get(record.path)
                entry = resident.pop(key) if key is not None else None
                await self._remove(result, key=key, entry=entry, record=record)
                continue
            previous = on_disk.get(record.key)
            if previous is not None:
                # Two files claim one key; the older one is stale
                older, record = sorted((previous, record), key=lambda r: r.created_at)
                await self._remove(result, record=older)
            on_disk[record.key] = record

        now = self.clock()
        survivors: List[Tuple[float, CacheKey]] = []

        for key in sorted(set(on_disk) | set(resident)):
            entry = resident.get(key)
            record = on_disk.get(key)
            if entry is not None and entry.tombstone:
                await self._remove(result, key=key, entry=entry, record=record)
                continue
            created_at = entry.created_at if entry is not None else record.created_at
            if now - created_at > self.ttl_ms:
                await self._remove(result, key=key, entry=entry, record=record)
                continue
            survivors.append((created_at, key))

        if len(survivors) > self.max_files:
            # Newest first; equal timestamps fall back to key order
            survivors.sort(key=lambda item: (-item[0], item[1]))
            for _, key in survivors[self.max_files:]:
                await self._remove(result, key=key, entry=resident.get(key), record=on_disk.get(key))

        logger.info(
            f"Cache cleanup removed {result.removed} entries "
            f"({result.total_size} bytes, {len(result.errors)} errors)"
        )
        return result

    async def _remove(
        self,
        result: CleanupResult,
        key: Optional[CacheKey] = None,
        entry: Optional[CacheEntry] = None,
        record: Optional[StoredRecord] = None,
    ) -> None:
        if key is not None and self.store.peek(key) is not entry:
            # Rewritten while the pass was running
            return

        freed = 0
        if record is not None:
            try:
                freed = await self.store.delete_record(record)
            except OSError as e:
                logger.warning(f"Failed to remove cache file {record.path}: {e}")
                error = StorageError(f"Failed to remove cache file: {e}", record.path)
                error.__cause__ = e
                result.errors.append(error)
                return

        if key is not None and self.store.peek(key) is entry:
            self.store.drop(key)
        result.removed += 1
        result.total_size += freed
