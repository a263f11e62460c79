"""Key derivation and content fingerprints for the cache."""

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

from tmplcache.domain.interfaces.filesystem import FileSystem
from tmplcache.domain.models.common import CacheKey, FileFingerprint, FilePath

logger = logging.getLogger(__name__)


def canonical_path(file_path: str) -> str:
    """Absolute, symlink-resolved form of a path (the file need not exist)."""
    return str(Path(file_path).expanduser().resolve())


def file_cache_key(file_path: str) -> CacheKey:
    """Deterministic key for a file-scoped entry."""
    return CacheKey(hashlib.sha256(canonical_path(file_path).encode("utf-8")).hexdigest())


def fingerprint_bytes(content: bytes) -> FileFingerprint:
    return FileFingerprint(hashlib.sha256(content).hexdigest())


async def fingerprint_file(fs: FileSystem, file_path: FilePath) -> FileFingerprint:
    """Hashes the current content of a file.

    Raises:
        OSError: If the file cannot be read.
    """
    content = await fs.read_bytes(file_path)
    return fingerprint_bytes(content)


def default_key_generator(data: Any) -> str:
    """md5 of the JSON rendering of `data`, or of `str(data)` if it is not JSON."""
    if isinstance(data, str):
        rendered = data
    else:
        try:
            rendered = json.dumps(data, sort_keys=True, separators=(",", ":"))
        except (TypeError, ValueError):
            rendered = str(data)
    return hashlib.md5(rendered.encode("utf-8")).hexdigest()
