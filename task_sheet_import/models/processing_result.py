from __future__ import annotations

import statistics
from dataclasses import dataclass, field

"""Commit-stage result models.

ImportProgress is the transient snapshot yielded after each created task.
CommitResult aggregates the outcome of a completed commit, including per-item
timing of the caller's create operation.
"""

__all__ = [
    "ImportProgress",
    "CommitResult",
    "ItemStatsAccumulator",
]


@dataclass(frozen=True)
class ImportProgress:
    """Snapshot emitted after each task of the commit batch."""
    current: int  # items processed so far (1-based after the first item)
    total: int  # batch size
    current_item_label: str  # title of the task just created

    @property
    def fraction(self) -> float:
        if self.total == 0:
            return 1.0
        return self.current / self.total


@dataclass(frozen=True)
class CommitResult:
    """Outcome of a fully committed import."""
    created_ids: tuple[object, ...]  # ids returned by create(), row order
    notified_recipients: tuple[str, ...]  # emails successfully notified
    notification_failures: tuple[str, ...] = ()  # emails whose notify() failed
    elapsed_seconds: float = 0.0
    avg_item_seconds: float = 0.0
    p95_item_seconds: float = 0.0
    skipped_rows: tuple[int, ...] = field(default=())  # rows dropped for empty title

    @property
    def created_count(self) -> int:
        return len(self.created_ids)


class ItemStatsAccumulator:
    """Collect per-item create() timings and summarize them."""

    def __init__(self) -> None:
        self.item_times: list[float] = []

    def add_item_time(self, elapsed_seconds: float) -> None:
        self.item_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Calculate item statistics.

        Returns:
            tuple: (total_items, avg_item_seconds, p95_item_seconds)
        """
        if not self.item_times:
            return (0, 0.0, 0.0)

        total = len(self.item_times)
        avg = statistics.mean(self.item_times)

        if total == 1:
            p95 = self.item_times[0]
        else:
            # 95th percentile (19th of 20 quantiles, 0-indexed)
            p95 = statistics.quantiles(self.item_times, n=20, method="inclusive")[18]

        return (total, avg, p95)
