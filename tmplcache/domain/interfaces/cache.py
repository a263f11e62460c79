"""Interface for the artifact cache.

Defines the contract used by the scaffolding pipeline: file-scoped entries
keyed by a source template path, and data-scoped entries keyed by a
caller-supplied key generator.
"""

import abc
from typing import Any, Optional

# Import relevant domain models
from ..models.common import CacheKey, FilePath
from ..models.options import CacheStats, CleanupResult

class CacheService(abc.ABC):
    """Abstract Base Class for caching operations."""

    @abc.abstractmethod
    async def set(self, file_path: FilePath, data: Any) -> None:
        """Caches `data` against the current state of a source file.

        Never raises for I/O or serialization failures.

        Args:
            file_path: The source file the value was computed from.
            data: The value to cache.
        """
        pass

    @abc.abstractmethod
    async def get(self, file_path: FilePath) -> Optional[Any]:
        """Retrieves the value cached for a source file.

        Args:
            file_path: The source file to look up.

        Returns:
            The cached value if the entry is still valid, otherwise None.
        """
        pass

    @abc.abstractmethod
    async def set_by_data(self, data: Any, created_at: Optional[float] = None) -> CacheKey:
        """Caches a value not tied to any file, keyed by the key generator.

        Args:
            data: The value to cache.
            created_at: Optional epoch-ms write time (defaults to now).

        Returns:
            The key the value was stored under.

        Raises:
            Exception: Whatever the key generator raises, unchanged.
        """
        pass

    @abc.abstractmethod
    async def get_by_key(self, key: CacheKey) -> Optional[Any]:
        """Retrieves a data-scoped value; validity is TTL plus the validator."""
        pass

    @abc.abstractmethod
    async def cleanup(self) -> CleanupResult:
        """Removes tombstoned, corrupted, expired and over-quota entries."""
        pass

    @abc.abstractmethod
    async def clear(self) -> None:
        """Removes every entry from memory and disk; counters are kept."""
        pass

    @abc.abstractmethod
    async def get_stats(self) -> CacheStats:
        """Returns cumulative counters and a live view of the cache directory."""
        pass
