"""Interface for the storage tiers behind the cache.

A store owns the in-memory entry table and, optionally, a durable backing
tier. The validity and cleanup logic only talk to this interface, so they
run unchanged against an in-process store in tests.
"""

import abc
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..models.common import CacheKey, EpochMillis, FilePath
from ..models.entry import CacheEntry


@dataclass
class StoredRecord:
    """One file found in the backing tier during a scan.

    `key` and `created_at` are None when the file is corrupted.
    """
    path: FilePath
    size_bytes: int
    key: Optional[CacheKey] = None
    created_at: Optional[EpochMillis] = None

    @property
    def corrupted(self) -> bool:
        return self.key is None


class EntryStore(abc.ABC):
    """Abstract Base Class for the tiered entry store."""

    @property
    @abc.abstractmethod
    def enabled(self) -> bool:
        """False once the backing tier is known to be unusable."""
        pass

    @abc.abstractmethod
    def provision(self) -> bool:
        """Prepares the backing tier. Disables the store instead of raising."""
        pass

    @abc.abstractmethod
    async def load(self) -> int:
        """Loads persisted entries into memory, skipping corrupted ones.

        Returns:
            The number of entries admitted to memory.
        """
        pass

    @abc.abstractmethod
    async def read(self, key: CacheKey) -> Optional[CacheEntry]:
        """Returns the resident entry, or one loaded from the backing tier.

        Entries loaded from the backing tier are NOT admitted to memory; the
        caller installs them once they pass validation. Tombstoned keys and
        undeserializable files read as absent.
        """
        pass

    @abc.abstractmethod
    async def persist(self, entry: CacheEntry) -> None:
        """Installs an entry in memory and writes it to the backing tier.

        Raises:
            SerializationError: If the entry cannot be encoded. Nothing is
                installed or written in that case.
        """
        pass

    @abc.abstractmethod
    def path_for(self, key: CacheKey) -> Optional[FilePath]:
        """Backing file that holds `key`, or None without a backing tier."""
        pass

    @abc.abstractmethod
    async def list_records(self) -> List[StoredRecord]:
        """Scans the backing tier, classifying each file."""
        pass

    @abc.abstractmethod
    async def delete_record(self, record: StoredRecord) -> int:
        """Deletes one backing file.

        Returns:
            The number of bytes freed (0 if the file was already gone).

        Raises:
            OSError: If the file exists but could not be deleted.
        """
        pass

    @abc.abstractmethod
    async def clear(self) -> None:
        """Empties memory and deletes every backing file, logging failures."""
        pass

    @abc.abstractmethod
    async def disk_usage(self) -> Tuple[int, int]:
        """Returns (total bytes, entry file count) from a live scan."""
        pass

    # --- In-memory table (synchronous, so updates never interleave) ---

    @abc.abstractmethod
    def peek(self, key: CacheKey) -> Optional[CacheEntry]:
        """Returns the resident entry for a key, tombstones included."""
        pass

    @abc.abstractmethod
    def install(self, entry: CacheEntry) -> None:
        pass

    @abc.abstractmethod
    def mark_invalid(self, key: CacheKey) -> None:
        """Replaces the resident entry with a tombstone."""
        pass

    @abc.abstractmethod
    def drop(self, key: CacheKey) -> None:
        pass

    @abc.abstractmethod
    def entries(self) -> List[CacheEntry]:
        """Snapshot of resident entries, tombstones included."""
        pass

    @abc.abstractmethod
    def __len__(self) -> int:
        """Number of live (non-tombstoned) resident entries."""
        pass
