"""Entry Model: the unit of storage held in memory and persisted on disk."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from tmplcache.domain.models.common import CacheKey, EpochMillis, FileFingerprint
from tmplcache.domain.models.errors import CorruptedEntryError

# Version of the on-disk envelope format
ENTRY_FORMAT_VERSION = 1

REQUIRED_FIELDS = ("key", "data", "created_at")


@dataclass(frozen=True)
class FileState:
    """Size and modification time of a source file at a point in time."""
    size: int
    mtime: EpochMillis


@dataclass
class CacheEntry:
    """A cached (key, value, metadata) triple.

    File-scoped entries carry the `size` and `mtime` of their source file at
    write time, and a content `hash` when the file was small enough to
    fingerprint. `tombstone` only lives in memory: it marks an entry that is
    known to be invalid but whose backing file has not been deleted yet.
    """
    key: CacheKey
    data: Any
    created_at: EpochMillis
    size: Optional[int] = None
    mtime: Optional[EpochMillis] = None
    hash: Optional[FileFingerprint] = None
    tombstone: bool = field(default=False, compare=False)

    @property
    def is_file_scoped(self) -> bool:
        return self.size is not None and self.mtime is not None

    def age(self, now: float) -> float:
        """Milliseconds elapsed since the entry was written."""
        return now - self.created_at

    @classmethod
    def tombstoned(cls, key: CacheKey, created_at: float = 0.0) -> "CacheEntry":
        """Placeholder for a key whose backing file is pending deletion."""
        return cls(key=key, data=None, created_at=EpochMillis(created_at), tombstone=True)

    def to_record(self, serialized_data: Any) -> Dict[str, Any]:
        """Builds the on-disk envelope around already-serialized data."""
        record: Dict[str, Any] = {
            "version": ENTRY_FORMAT_VERSION,
            "key": self.key,
            "data": serialized_data,
            "created_at": self.created_at,
        }
        if self.size is not None:
            record["size"] = self.size
        if self.mtime is not None:
            record["mtime"] = self.mtime
        if self.hash is not None:
            record["hash"] = self.hash
        return record

    @classmethod
    def from_record(cls, record: Any, path: str = "") -> "CacheEntry":
        """Rebuilds an entry from a parsed envelope.

        The `data` field is returned as stored; deserializing it is up to the
        caller.

        Raises:
            CorruptedEntryError: If the record is not a mapping, lacks one of
                `key`/`data`/`created_at`, or carries mistyped metadata.
        """
        if not isinstance(record, Mapping):
            raise CorruptedEntryError("Cache record is not an object", path)
        missing = [name for name in REQUIRED_FIELDS if name not in record]
        if missing:
            raise CorruptedEntryError(f"Cache record missing fields: {', '.join(missing)}", path)

        key = record["key"]
        created_at = record["created_at"]
        if not isinstance(key, str) or not key:
            raise CorruptedEntryError("Cache record has an invalid key", path)
        if isinstance(created_at, bool) or not isinstance(created_at, (int, float)):
            raise CorruptedEntryError("Cache record has an invalid created_at", path)

        size = record.get("size")
        mtime = record.get("mtime")
        fingerprint = record.get("hash")
        if size is not None and (isinstance(size, bool) or not isinstance(size, int)):
            raise CorruptedEntryError("Cache record has an invalid size", path)
        if mtime is not None and (isinstance(mtime, bool) or not isinstance(mtime, (int, float))):
            raise CorruptedEntryError("Cache record has an invalid mtime", path)
        if fingerprint is not None and not isinstance(fingerprint, str):
            raise CorruptedEntryError("Cache record has an invalid hash", path)

        return cls(
            key=CacheKey(key),
            data=record["data"],
            created_at=EpochMillis(float(created_at)),
            size=size,
            mtime=EpochMillis(float(mtime)) if mtime is not None else None,
            hash=FileFingerprint(fingerprint) if fingerprint is not None else None,
        )
