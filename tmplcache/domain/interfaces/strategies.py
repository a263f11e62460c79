"""Host-supplied strategy types injected into the cache at construction.

Each strategy is a narrow callable/protocol rather than a base class to
subclass. The cache wraps every invocation in a failure boundary.
"""

from typing import Any, Awaitable, Callable, Optional, Protocol, Union, runtime_checkable

from tmplcache.domain.models.entry import CacheEntry


@runtime_checkable
class Serializer(Protocol):
    """Converts cached values to and from a JSON-compatible structure."""

    def serialize(self, data: Any) -> Any:
        ...

    def deserialize(self, raw: Any) -> Any:
        ...


# Produces the key for data-scoped entries. Exceptions propagate to the caller.
KeyGenerator = Callable[[Any], str]

# Extra validity predicate, run after the built-in checks pass. The second
# argument is the source file path for file-scoped lookups, otherwise None.
Validator = Callable[[CacheEntry, Optional[str]], Union[bool, Awaitable[bool]]]

# Returns the current time in epoch milliseconds.
Clock = Callable[[], float]
