"""Cumulative hit/miss counters, independent of what the store holds."""


class StatsTracker:
    """Counts lookups across the lifetime of one cache instance."""

    def __init__(self):
        self.hits = 0
        self.misses = 0

    def record_hit(self) -> None:
        self.hits += 1

    def record_miss(self) -> None:
        self.misses += 1

    @property
    def lookups(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Share of lookups that hit; 0.0 before the first lookup."""
        total = self.lookups
        return self.hits / total if total > 0 else 0.0

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
