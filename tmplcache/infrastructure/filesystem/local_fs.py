"""Concrete implementation of the FileSystem interface for the local disk.

Uses `pathlib` for path handling and `aiofiles` for async I/O.
"""

import logging
import os
from pathlib import Path
from typing import List

import aiofiles
import aiofiles.os

# Domain Layer Imports
from tmplcache.domain.interfaces.filesystem import FileSystem
from tmplcache.domain.models.common import EpochMillis, FilePath
from tmplcache.domain.models.entry import FileState

logger = logging.getLogger(__name__)

class LocalFileSystem(FileSystem):
    """Implementation of FileSystem for the local disk."""

    def __init__(self):
        """Initializes the LocalFileSystem adapter."""
        logger.debug("LocalFileSystem initialized.")

    def ensure_dir(self, dir_path: FilePath) -> None:
        """Creates the directory if needed and verifies it is writable."""
        path = Path(dir_path)
        path.mkdir(parents=True, exist_ok=True)
        if not os.access(path, os.W_OK | os.X_OK):
            raise PermissionError(f"Directory is not writable: {dir_path}")

    async def stat_file(self, file_path: FilePath) -> FileState:
        """Stats a file, reporting mtime in epoch milliseconds."""
        stat_result = await aiofiles.os.stat(file_path)
        return FileState(size=stat_result.st_size, mtime=EpochMillis(stat_result.st_mtime_ns / 1_000_000))

    async def read_file(self, file_path: FilePath) -> str:
        """Reads file content asynchronously using aiofiles."""
        path = Path(file_path)
        logger.debug(f"Attempting to read file: {path}")
        async with aiofiles.open(path, mode='r', encoding='utf-8') as f:
            content = await f.read()
        logger.debug(f"Successfully read {len(content)} characters from {path}")
        return content

    async def read_bytes(self, file_path: FilePath) -> bytes:
        async with aiofiles.open(Path(file_path), mode='rb') as f:
            return await f.read()

    async def write_file(self, file_path: FilePath, content: str) -> None:
        """Writes content to a file asynchronously using aiofiles."""
        path = Path(file_path)
        logger.debug(f"Attempting to write {len(content)} characters to file: {path}")
        async with aiofiles.open(path, mode='w', encoding='utf-8') as f:
            await f.write(content)
        logger.debug(f"Successfully wrote to {path}")

    async def replace_file(self, source: FilePath, target: FilePath) -> None:
        # os.replace is atomic on both POSIX and Windows
        await aiofiles.os.replace(source, target)

    async def remove_file(self, file_path: FilePath) -> None:
        await aiofiles.os.remove(file_path)
        logger.debug(f"Removed file: {file_path}")

    async def list_dir(self, dir_path: FilePath) -> List[FilePath]:
        """Lists regular files in a directory (non-recursive)."""
        path = Path(dir_path)
        if not await aiofiles.os.path.isdir(path):
            return []
        names = await aiofiles.os.listdir(path)
        result = []
        for name in sorted(names):
            candidate = path / name
            if await aiofiles.os.path.isfile(candidate):
                result.append(FilePath(str(candidate)))
        logger.debug(f"Found {len(result)} files in {path}")
        return result
