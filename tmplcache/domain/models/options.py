"""Construction options and report objects exchanged with cache callers."""

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from tmplcache.domain.interfaces.strategies import KeyGenerator, Serializer, Validator
from tmplcache.domain.models.common import ttl_days_to_ms

DEFAULT_TTL_DAYS = 7
DEFAULT_MAX_FILES = 1000
DEFAULT_CACHE_DIR_NAME = ".tmplcache"


def default_cache_dir() -> Path:
    """`$CACHE_DIR/.tmplcache`, falling back to the system temp directory."""
    base = os.environ.get("CACHE_DIR") or tempfile.gettempdir()
    return Path(base) / DEFAULT_CACHE_DIR_NAME


@dataclass(frozen=True)
class CacheOptions:
    """Options fixed for the lifetime of one cache instance.

    Attributes:
        enabled: Master switch; a disabled cache turns every call into a no-op.
        cache_dir: Directory holding one JSON file per entry.
        ttl_days: Maximum entry age. Fractional values are allowed.
        max_files: Entry count kept by the quota sweep.
        auto_cleanup: Schedule a background cleanup once entries are loaded.
        key_generator: Key function for `set_by_data`; defaults to an md5 of the data.
        serializer: Converts values to/from JSON-compatible data; defaults to passthrough.
        validator: Optional extra predicate over candidate entries.
    """
    cache_dir: Union[str, Path] = field(default_factory=default_cache_dir)
    enabled: bool = True
    ttl_days: float = DEFAULT_TTL_DAYS
    max_files: int = DEFAULT_MAX_FILES
    auto_cleanup: bool = True
    key_generator: Optional[KeyGenerator] = None
    serializer: Optional[Serializer] = None
    validator: Optional[Validator] = None

    @property
    def ttl_ms(self) -> float:
        return ttl_days_to_ms(self.ttl_days)

    @property
    def cache_path(self) -> Path:
        return Path(self.cache_dir).expanduser().resolve()


@dataclass(frozen=True)
class CacheStats:
    """Cumulative lookup counters plus a live view of the cache directory."""
    hits: int
    misses: int
    hit_rate: float
    disk_usage: int
    files: int


@dataclass
class CleanupResult:
    """Outcome of one cleanup pass.

    Attributes:
        removed: Entries deleted across the tombstone, corruption, TTL and quota sweeps.
        total_size: Bytes of backing files that were deleted.
        errors: One exception per deletion that failed.
    """
    removed: int = 0
    total_size: int = 0
    errors: List[Exception] = field(default_factory=list)
