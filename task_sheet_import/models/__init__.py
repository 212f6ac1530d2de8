"""Domain models for the spreadsheet -> task importer.

This package contains the value objects passed between pipeline stages:
the raw grid, the column mapping, materialized tasks, notification groups
and commit results.
"""

from .collaborator import Collaborator
from .column_mapping import ColumnMapping
from .config_models import DateSettings, ImportSettings, NotificationSettings, RemoteSettings
from .error_record import ErrorRecord
from .fields import CLOSED_STATUSES, FieldKey, TaskPriority, TaskStatus
from .grid import RawGrid
from .notification import NotificationEmail, NotificationGroup
from .processing_result import CommitResult, ImportProgress
from .sheet_tab import TabInfo
from .task import ImportedTask

__all__ = [
    # Configuration models
    "DateSettings",
    "ImportSettings",
    "NotificationSettings",
    "RemoteSettings",
    # Pipeline values
    "CLOSED_STATUSES",
    "Collaborator",
    "ColumnMapping",
    "CommitResult",
    "ErrorRecord",
    "FieldKey",
    "ImportProgress",
    "ImportedTask",
    "NotificationEmail",
    "NotificationGroup",
    "RawGrid",
    "TabInfo",
    "TaskPriority",
    "TaskStatus",
]
