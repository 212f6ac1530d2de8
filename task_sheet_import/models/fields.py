from __future__ import annotations

from enum import Enum

"""Target task fields and the enumerations their values normalize to.

FieldKey order is significant: auto-mapping offers a header to the fields in
this order, so a header matching several synonym lists is claimed by the
first one listed here.
"""

__all__ = [
    "FieldKey",
    "TaskStatus",
    "TaskPriority",
    "CLOSED_STATUSES",
]


class FieldKey(Enum):
    """Closed set of task fields a spreadsheet column can be mapped to."""
    TITLE = "title"  # required
    DESCRIPTION = "description"
    STATUS = "status"
    PRIORITY = "priority"
    PROGRESS = "progress"
    START_DATE = "start_date"
    DUE_DATE = "due_date"
    ESTIMATED_HOURS = "estimated_hours"
    ACTUAL_HOURS = "actual_hours"
    ASSIGNED_TO = "assigned_to"
    TAGS = "tags"
    COLOR = "color"

    @property
    def required(self) -> bool:
        return self is FieldKey.TITLE

    @classmethod
    def parse(cls, name: str) -> FieldKey:
        """Look up a field by its value (``"due_date"``), case-insensitive."""
        key = name.strip().lower()
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"unknown task field: {name!r}")


class TaskStatus(Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# Tasks in these states never trigger an assignment notification
CLOSED_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED})
