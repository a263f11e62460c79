"""Defines common Value Objects used across the cache contexts.

These objects represent simple values like file paths, cache keys and
content fingerprints, ensuring consistency and type safety.
"""

from typing import NewType

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are plain values at runtime.
FilePath = NewType("FilePath", str)             # Path to a source file
FileFingerprint = NewType("FileFingerprint", str) # Hash of file content (hex digest)

# === Caching Context ===
CacheKey = NewType("CacheKey", str)             # Unique key for a cache entry
EpochMillis = NewType("EpochMillis", float)     # Milliseconds since the Unix epoch

# Small files get a full content fingerprint; larger ones rely on size + mtime.
HASH_SIZE_LIMIT = 50 * 1024

# Allowed drift between stored and current mtime before an entry is stale.
MTIME_TOLERANCE_MS = 1000

MS_PER_DAY = 24 * 60 * 60 * 1000


def ttl_days_to_ms(ttl_days: float) -> float:
    """Converts a (possibly fractional) TTL in days to milliseconds."""
    return ttl_days * MS_PER_DAY
