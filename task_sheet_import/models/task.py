from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from .fields import CLOSED_STATUSES, TaskPriority, TaskStatus

"""ImportedTask: the typed record materialized from one spreadsheet row.

Created once per valid row during materialization and immutable afterward.
Consumed by the caller for persistence and by the notification consolidator.
"""

__all__ = [
    "ImportedTask",
]


@dataclass(frozen=True)
class ImportedTask:
    """Materialized task row.

    ``assigned_display_text`` always keeps the original free-text assignee
    cell, even when it did not resolve to a collaborator.
    """
    title: str  # never empty
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    progress: int = 0  # 0..100
    start_date: date | None = None
    due_date: date | None = None
    estimated_hours: float | None = None  # >= 0
    actual_hours: float | None = None  # >= 0
    assigned_person_id: str | None = None
    assigned_email: str | None = None
    assigned_display_text: str = ""
    assigned_display_name: str | None = None  # resolved collaborator name
    tags: tuple[str, ...] = ()
    color: str | None = None  # "#rrggbb"
    source_row: int = -1  # 1-based data row, -1 when unknown

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_STATUSES

    @property
    def is_assigned(self) -> bool:
        return bool(self.assigned_email)

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready representation handed to the task-creation operation."""
        return {
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "progress": self.progress,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "estimated_hours": self.estimated_hours,
            "actual_hours": self.actual_hours,
            "assigned_person_id": self.assigned_person_id,
            "assigned_email": self.assigned_email,
            "assigned_display_text": self.assigned_display_text,
            "tags": list(self.tags),
            "color": self.color,
        }
