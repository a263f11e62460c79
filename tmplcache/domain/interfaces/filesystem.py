"""Interface for interacting with the file system.

Defines the contract for the stat/read/write/delete/list operations the
cache needs, allowing the cache logic to be independent of the specific
file system implementation.
"""

import abc
from typing import List

# Import relevant domain models
from ..models.common import FilePath
from ..models.entry import FileState

class FileSystem(abc.ABC):
    """Abstract Base Class for file system operations."""

    @abc.abstractmethod
    def ensure_dir(self, dir_path: FilePath) -> None:
        """Creates a directory (and parents) and checks it is writable.

        Runs synchronously: it is only called while a cache is being
        constructed.

        Raises:
            OSError: If the directory cannot be created or written to.
        """
        pass

    @abc.abstractmethod
    async def stat_file(self, file_path: FilePath) -> FileState:
        """Returns the size and modification time (epoch ms) of a file.

        Raises:
            FileNotFoundError: If the file does not exist.
            OSError: For other stat failures (e.g. permission denied).
        """
        pass

    @abc.abstractmethod
    async def read_file(self, file_path: FilePath) -> str:
        """Reads the entire content of a file as UTF-8 text asynchronously.

        Raises:
            FileNotFoundError: If the file does not exist.
            PermissionError: If read permissions are denied.
            OSError: For other file system errors.
        """
        pass

    @abc.abstractmethod
    async def read_bytes(self, file_path: FilePath) -> bytes:
        """Reads the raw bytes of a file asynchronously."""
        pass

    @abc.abstractmethod
    async def write_file(self, file_path: FilePath, content: str) -> None:
        """Writes content to a file asynchronously, overwriting if it exists.

        Raises:
            PermissionError: If write permissions are denied.
            OSError: For other file system errors.
        """
        pass

    @abc.abstractmethod
    async def replace_file(self, source: FilePath, target: FilePath) -> None:
        """Atomically moves `source` over `target`."""
        pass

    @abc.abstractmethod
    async def remove_file(self, file_path: FilePath) -> None:
        """Deletes a file.

        Raises:
            FileNotFoundError: If the file does not exist.
            OSError: If the file could not be deleted.
        """
        pass

    @abc.abstractmethod
    async def list_dir(self, dir_path: FilePath) -> List[FilePath]:
        """Lists the regular files directly inside a directory.

        Returns an empty list when the directory does not exist.
        """
        pass
