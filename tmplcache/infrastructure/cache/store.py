"""Tiered entry stores: an in-memory table, optionally backed by JSON files.

`DiskEntryStore` keeps one `<key>.json` file per entry under the cache
directory and mirrors live entries in memory so repeated lookups within one
run never touch the disk. `MemoryEntryStore` is the same table without a
backing tier.
"""

import asyncio
import hashlib
import json
import logging
import re
import uuid
import weakref
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from tmplcache.domain.interfaces.filesystem import FileSystem
from tmplcache.domain.interfaces.store import EntryStore, StoredRecord
from tmplcache.domain.interfaces.strategies import Serializer
from tmplcache.domain.models.common import CacheKey, FilePath
from tmplcache.domain.models.entry import CacheEntry
from tmplcache.domain.models.errors import (
    CorruptedEntryError,
    DeserializationError,
    SerializationError,
)
from tmplcache.infrastructure.cache.serializers import JsonSerializer

logger = logging.getLogger(__name__)

ENTRY_SUFFIX = ".json"
TEMP_SUFFIX = ".tmp"

# Keys matching this are used verbatim as file names; others are hashed.
_SAFE_KEY = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9_.-]{0,127}$")


class MemoryEntryStore(EntryStore):
    """In-process store with no backing tier."""

    def __init__(self):
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._enabled = True

    @property
    def enabled(self) -> bool:
        return self._enabled

    def provision(self) -> bool:
        return self._enabled

    async def load(self) -> int:
        return 0

    async def read(self, key: CacheKey) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None or entry.tombstone:
            return None
        return entry

    async def persist(self, entry: CacheEntry) -> None:
        self.install(entry)

    def path_for(self, key: CacheKey) -> Optional[FilePath]:
        return None

    async def list_records(self) -> List[StoredRecord]:
        return []

    async def delete_record(self, record: StoredRecord) -> int:
        return 0

    async def clear(self) -> None:
        self._entries.clear()

    async def disk_usage(self) -> Tuple[int, int]:
        return 0, 0

    def peek(self, key: CacheKey) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def install(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry

    def mark_invalid(self, key: CacheKey) -> None:
        current = self._entries.get(key)
        created_at = current.created_at if current is not None else 0.0
        self._entries[key] = CacheEntry.tombstoned(key, created_at)

    def drop(self, key: CacheKey) -> None:
        self._entries.pop(key, None)

    def entries(self) -> List[CacheEntry]:
        return list(self._entries.values())

    def __len__(self) -> int:
        return sum(1 for entry in self._entries.values() if not entry.tombstone)


class DiskEntryStore(MemoryEntryStore):
    """Memory table backed by one JSON file per entry."""

    def __init__(self, cache_dir: Path, fs: FileSystem, serializer: Optional[Serializer] = None):
        super().__init__()
        self.cache_dir = Path(cache_dir)
        self.fs = fs
        self.serializer = serializer or JsonSerializer()
        self._enabled = False
        # Per-key write locks; a lock disappears once no write holds it
        self._write_locks = weakref.WeakValueDictionary()

    def provision(self) -> bool:
        """Creates the cache directory; on failure the store stays disabled."""
        try:
            self.fs.ensure_dir(FilePath(str(self.cache_dir)))
            self._enabled = True
        except OSError as e:
            logger.warning(f"Cache directory {self.cache_dir} is unusable, disabling cache: {e}")
            self._enabled = False
        return self._enabled

    def path_for(self, key: CacheKey) -> FilePath:
        """File holding the entry for `key`."""
        name = key if _SAFE_KEY.match(key) else hashlib.sha256(key.encode("utf-8")).hexdigest()
        return FilePath(str(self.cache_dir / f"{name}{ENTRY_SUFFIX}"))

    # --- Encoding ---

    def encode(self, entry: CacheEntry) -> str:
        """Renders the on-disk envelope for an entry.

        Raises:
            SerializationError: If the serializer raises or the result is not
                JSON-compatible.
        """
        try:
            payload = self.serializer.serialize(entry.data)
            return json.dumps(entry.to_record(payload), ensure_ascii=False)
        except Exception as e:
            raise SerializationError(f"Failed to serialize cache entry {entry.key}: {e}") from e

    async def _read_record(self, path: FilePath) -> CacheEntry:
        """Parses a backing file into an entry whose data is still serialized.

        Raises:
            CorruptedEntryError: If the file is unreadable, not JSON, or incomplete.
        """
        try:
            content = await self.fs.read_file(path)
        except FileNotFoundError:
            raise
        except (OSError, UnicodeDecodeError) as e:
            raise CorruptedEntryError(f"Unreadable cache file: {e}", path) from e
        try:
            record = json.loads(content)
        except ValueError as e:
            raise CorruptedEntryError(f"Invalid JSON in cache file: {e}", path) from e
        return CacheEntry.from_record(record, path)

    def _decode_data(self, entry: CacheEntry) -> CacheEntry:
        """Runs the serializer's deserialize step on a freshly parsed entry."""
        try:
            entry.data = self.serializer.deserialize(entry.data)
        except Exception as e:
            raise DeserializationError(f"Failed to deserialize cache entry {entry.key}: {e}") from e
        return entry

    # --- EntryStore Interface Implementation ---

    async def load(self) -> int:
        """Admits every parsable backing file to memory."""
        if not self._enabled:
            return 0
        loaded = 0
        for path in await self._entry_files():
            try:
                entry = await self._read_record(path)
            except FileNotFoundError:
                continue
            except CorruptedEntryError as e:
                logger.debug(f"Skipping corrupted cache file {path}: {e}")
                continue

            current = self.peek(entry.key)
            if current is not None and not current.tombstone and current.created_at >= entry.created_at:
                continue
            try:
                self.install(self._decode_data(entry))
                loaded += 1
            except DeserializationError as e:
                logger.warning(str(e))
                self.mark_invalid(entry.key)
        logger.debug(f"Loaded {loaded} cache entries from {self.cache_dir}")
        return loaded

    async def read(self, key: CacheKey) -> Optional[CacheEntry]:
        resident = self.peek(key)
        if resident is not None:
            return None if resident.tombstone else resident
        if not self._enabled:
            return None

        path = self.path_for(key)
        try:
            entry = await self._read_record(path)
        except FileNotFoundError:
            return None
        except CorruptedEntryError as e:
            logger.debug(f"Ignoring corrupted cache file {path}: {e}")
            return None
        if entry.key != key:
            logger.debug(f"Cache file {path} holds key {entry.key}, expected {key}")
            return None

        try:
            return self._decode_data(entry)
        except DeserializationError as e:
            logger.warning(f"{e}. Evicting stale file.")
            self.mark_invalid(key)
            return None

    async def persist(self, entry: CacheEntry) -> None:
        """Installs `entry` in memory, then writes it through a temp file.

        Writes for one key run one at a time in call order, and a write
        whose entry has been replaced (or tombstoned, or dropped) by the
        time its turn comes is skipped. The backing file therefore ends up
        holding the same entry as memory.
        """
        if not self._enabled:
            return
        content = self.encode(entry)
        self.install(entry)

        lock = self._write_locks.setdefault(entry.key, asyncio.Lock())
        async with lock:
            if self.peek(entry.key) is not entry:
                logger.debug(f"Skipping superseded write for key: {entry.key}")
                return
            await self._write(entry.key, content)

    async def _write(self, key: CacheKey, content: str) -> None:
        target = self.path_for(key)
        temp_path = FilePath(f"{target}.{uuid.uuid4().hex}{TEMP_SUFFIX}")
        try:
            await self.fs.write_file(temp_path, content)
            await self.fs.replace_file(temp_path, target)
            logger.debug(f"Stored cache entry: key={key}, file={target}")
        except OSError as e:
            logger.warning(f"Failed to write cache file {target}: {e}")
            try:
                await self.fs.remove_file(temp_path)
            except OSError:
                pass  # Temp file was never created or is already gone

    async def list_records(self) -> List[StoredRecord]:
        if not self._enabled:
            return []
        records = []
        for path in await self._entry_files():
            try:
                size_bytes = (await self.fs.stat_file(path)).size
            except FileNotFoundError:
                continue
            except OSError:
                size_bytes = 0
            try:
                entry = await self._read_record(path)
            except FileNotFoundError:
                continue
            except CorruptedEntryError:
                records.append(StoredRecord(path=path, size_bytes=size_bytes))
                continue
            records.append(StoredRecord(
                path=path, size_bytes=size_bytes, key=entry.key, created_at=entry.created_at,
            ))
        return records

    async def delete_record(self, record: StoredRecord) -> int:
        try:
            await self.fs.remove_file(record.path)
        except FileNotFoundError:
            return 0
        return record.size_bytes

    async def clear(self) -> None:
        await super().clear()
        if not self._enabled:
            return
        for path in await self._all_files():
            try:
                await self.fs.remove_file(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Failed to delete cache file {path}: {e}")
        logger.info(f"Cleared cache at: {self.cache_dir}")

    async def disk_usage(self) -> Tuple[int, int]:
        if not self._enabled:
            return 0, 0
        total = 0
        files = 0
        for path in await self._all_files():
            try:
                total += (await self.fs.stat_file(path)).size
            except OSError:
                continue
            if path.endswith(ENTRY_SUFFIX):
                files += 1
        return total, files

    async def _all_files(self) -> List[FilePath]:
        try:
            return await self.fs.list_dir(FilePath(str(self.cache_dir)))
        except OSError as e:
            logger.warning(f"Failed to list cache directory {self.cache_dir}: {e}")
            return []

    async def _entry_files(self) -> List[FilePath]:
        return [path for path in await self._all_files() if path.endswith(ENTRY_SUFFIX)]
