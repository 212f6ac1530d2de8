from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models.task import ImportedTask

"""Error taxonomy for the spreadsheet -> task import pipeline.

Sourcing and mapping failures halt the pipeline at the current stage and are
surfaced verbatim to the caller. Remote fetch failures are kept distinct
because each one drives different user guidance.
"""

__all__ = [
    "TaskImportError",
    "UnreadableSource",
    "InvalidSheetUrl",
    "RemoteFetchError",
    "NotFound",
    "AccessDenied",
    "NotPublic",
    "RemoteTimeout",
    "RemoteFetchFailed",
    "FetchCancelled",
    "UnknownTab",
    "MappingError",
    "TitleNotMapped",
    "NoValidRows",
    "InvalidColumn",
    "MappingLocked",
    "InvalidTransition",
    "CommitItemFailed",
]


class TaskImportError(Exception):
    """Base exception for every condition reported by the pipeline."""

    error_type = "IMPORT_ERROR"


class UnreadableSource(TaskImportError):
    """Malformed input or too few rows (header + at least one data row)."""

    error_type = "UNREADABLE_SOURCE"


class InvalidSheetUrl(UnreadableSource):
    error_type = "INVALID_SHEET_URL"


class RemoteFetchError(TaskImportError):
    """Base class for remote spreadsheet fetch failures."""

    error_type = "REMOTE_FETCH_ERROR"

    def __init__(self, message: str, *, url: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class NotFound(RemoteFetchError):
    error_type = "NOT_FOUND"


class AccessDenied(RemoteFetchError):
    """Non-2xx response or redirect to an authentication page."""

    error_type = "ACCESS_DENIED"


class NotPublic(RemoteFetchError):
    """The response body is an HTML (login) page rather than tabular data."""

    error_type = "NOT_PUBLIC"


class RemoteTimeout(RemoteFetchError):
    error_type = "REMOTE_TIMEOUT"


class RemoteFetchFailed(RemoteFetchError):
    error_type = "REMOTE_FETCH_FAILED"


class FetchCancelled(RemoteFetchError):
    error_type = "FETCH_CANCELLED"


class UnknownTab(TaskImportError):
    error_type = "UNKNOWN_TAB"


class MappingError(TaskImportError):
    error_type = "MAPPING_ERROR"


class TitleNotMapped(MappingError):
    """No column is mapped to the required ``title`` field."""

    error_type = "TITLE_NOT_MAPPED"


class NoValidRows(MappingError):
    """A title column is mapped but every row has an empty title."""

    error_type = "NO_VALID_ROWS"


class InvalidColumn(MappingError):
    error_type = "INVALID_COLUMN"


class MappingLocked(MappingError):
    error_type = "MAPPING_LOCKED"


class InvalidTransition(TaskImportError):
    error_type = "INVALID_TRANSITION"


class CommitItemFailed(TaskImportError):
    """A task creation failed mid-batch.

    ``created_count`` tasks were created before the failure; the remaining
    tasks (starting with ``task``) are still pending.
    """

    error_type = "COMMIT_ITEM_FAILED"

    def __init__(self, created_count: int, task: ImportedTask, cause: Any) -> None:
        super().__init__(
            f"task creation failed after {created_count} created "
            f"(row={task.source_row} title={task.title!r}): {cause}"
        )
        self.created_count = created_count
        self.task = task
        self.cause = cause
