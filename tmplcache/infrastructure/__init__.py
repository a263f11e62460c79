"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the cache to the outside world (local file system, configuration
files, logging) by implementing the interfaces defined in the domain layer.
"""
