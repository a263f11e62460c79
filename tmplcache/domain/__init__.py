"""Domain Layer: value objects, the entry model and the ports the cache depends on."""
