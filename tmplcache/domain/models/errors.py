"""Error taxonomy for the cache.

Only errors raised by a host-supplied key generator ever leave the cache;
they are not wrapped in any of these types. Everything below is raised
between cache components and folded into a miss or a no-op at the facade.
"""


class CacheError(Exception):
    """Base class for all cache errors."""


class ConfigurationError(CacheError):
    """The cache directory could not be provisioned."""


class SerializationError(CacheError):
    """The serializer (or the JSON envelope encoder) failed on write."""


class DeserializationError(CacheError):
    """The serializer failed to rebuild a value read from disk."""


class CorruptedEntryError(CacheError):
    """A persisted file is unparsable or lacks required fields."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class StorageError(CacheError):
    """A stat/read/write/delete operation failed outside construction."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path
