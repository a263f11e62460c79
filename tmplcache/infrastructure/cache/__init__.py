"""Cache Implementation.

Provides the concrete CacheService (the `Cache` facade) together with its
collaborators: the tiered entry store (L1: in-memory, L2: one JSON file per
entry), the validity checker, the cleanup engine and the stats tracker.
Bounded Context: Cache Management
"""
