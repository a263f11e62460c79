"""Default serializer: values are stored as-is inside the JSON envelope."""

from typing import Any


class JsonSerializer:
    """Passes JSON-compatible values through unchanged.

    The store encodes the whole envelope with `json`, so a value that is not
    JSON-compatible fails there and is reported as a serialization failure.
    """

    def serialize(self, data: Any) -> Any:
        return data

    def deserialize(self, raw: Any) -> Any:
        return raw
