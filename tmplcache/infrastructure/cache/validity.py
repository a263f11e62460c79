"""Validity Checker: decides whether a candidate entry is a hit or a miss.

Checks run in a fixed order and stop at the first failure:

1. TTL, for every entry.
2. For file-scoped lookups: stat, size, mtime (1 s tolerance), and the
   content fingerprint when the entry carries one.
3. The host validator, if configured.

None of the checks raise; every failure is reported as a miss.
"""

import inspect
import logging
from typing import Optional

from tmplcache.domain.interfaces.filesystem import FileSystem
from tmplcache.domain.interfaces.strategies import Clock, Validator
from tmplcache.domain.models.common import MTIME_TOLERANCE_MS, FilePath
from tmplcache.domain.models.entry import CacheEntry
from tmplcache.infrastructure.cache.hashing import fingerprint_file

logger = logging.getLogger(__name__)


class ValidityChecker:
    """Combines TTL, file-state and validator checks into one verdict."""

    def __init__(
        self,
        fs: FileSystem,
        ttl_ms: float,
        clock: Clock,
        validator: Optional[Validator] = None,
    ):
        self.fs = fs
        self.ttl_ms = ttl_ms
        self.clock = clock
        self.validator = validator

    def is_expired(self, entry: CacheEntry) -> bool:
        return entry.age(self.clock()) > self.ttl_ms

    async def check_file(self, entry: CacheEntry, file_path: FilePath) -> bool:
        """Compares an entry's recorded file state with the file on disk."""
        try:
            current = await self.fs.stat_file(file_path)
        except (OSError, ValueError) as e:
            logger.debug(f"Cannot stat {file_path}: {e}")
            return False

        if entry.size is None or current.size != entry.size:
            logger.debug(f"Size changed for {file_path}: {entry.size} -> {current.size}")
            return False

        if entry.mtime is None or abs(current.mtime - entry.mtime) > MTIME_TOLERANCE_MS:
            logger.debug(f"Modification time changed for {file_path}")
            return False

        if entry.hash is not None:
            try:
                current_hash = await fingerprint_file(self.fs, file_path)
            except (OSError, ValueError) as e:
                logger.debug(f"Cannot read {file_path} for hashing: {e}")
                return False
            if current_hash != entry.hash:
                logger.debug(f"Content changed for {file_path}")
                return False

        return True

    async def run_validator(self, entry: CacheEntry, file_path: Optional[FilePath] = None) -> bool:
        """Runs the host validator; False, an exception or a failed awaitable is a miss."""
        if self.validator is None:
            return True
        try:
            verdict = self.validator(entry, file_path)
            if inspect.isawaitable(verdict):
                verdict = await verdict
        except Exception as e:
            logger.warning(f"Cache validator failed for key {entry.key}: {e}")
            return False
        return bool(verdict)

    async def validate(self, entry: Optional[CacheEntry], file_path: Optional[FilePath] = None) -> bool:
        """Full check for a lookup; `file_path` is given for file-scoped lookups."""
        if entry is None or entry.tombstone:
            return False
        if self.is_expired(entry):
            logger.debug(f"Cache entry expired: {entry.key}")
            return False
        if file_path is not None and not await self.check_file(entry, file_path):
            return False
        return await self.run_validator(entry, file_path)
