from __future__ import annotations

from dataclasses import dataclass

from .task import ImportedTask

"""Notification models: one consolidated group (and email) per recipient."""

__all__ = [
    "NotificationGroup",
    "NotificationEmail",
]


@dataclass(frozen=True)
class NotificationGroup:
    """All open tasks assigned to one recipient.

    ``recipient_email`` keeps the casing first seen among the grouped tasks.
    """
    recipient_email: str
    recipient_display_name: str
    tasks: tuple[ImportedTask, ...]

    @property
    def task_count(self) -> int:
        return len(self.tasks)


@dataclass(frozen=True)
class NotificationEmail:
    """Rendered email for a NotificationGroup, ready for a mail transport."""
    to: str
    subject: str
    html: str
