# piratedb/services/stats.py

from __future__ import annotations

from dataclasses import dataclass, fields


@dataclass
class CrawlStats:
    """Counters kept by one thread and merged by the supervisor at the end."""

    dispatched: int = 0
    processed: int = 0
    emitted: int = 0
    skipped: int = 0
    failed: int = 0
    malformed: int = 0
    retried: int = 0
    inserted: int = 0
    rejected: int = 0

    def merge(self, other: CrawlStats) -> CrawlStats:
        for f in fields(self):
            setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))
        return self

    def summary(self) -> str:
        return ", ".join(f"{f.name}={getattr(self, f.name)}" for f in fields(self))
