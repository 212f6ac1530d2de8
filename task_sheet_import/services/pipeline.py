from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from dataclasses import replace
from enum import Enum
from typing import Any

from ..errors import CommitItemFailed, InvalidTransition, MappingError
from ..excel.reader import SourceFormat, read_source
from ..excel.remote import RemoteSheetResolver, parse_sheet_url
from ..logging.error_log import ErrorLogBuffer
from ..models.collaborator import Collaborator
from ..models.column_mapping import ColumnMapping
from ..models.config_models import ImportSettings, NotificationSettings
from ..models.fields import FieldKey
from ..models.grid import RawGrid
from ..models.notification import NotificationGroup
from ..models.processing_result import CommitResult, ImportProgress, ItemStatsAccumulator
from ..models.sheet_tab import TabInfo
from ..models.task import ImportedTask
from .mapping import auto_map, merge_synonyms
from .materialize import materialize
from .notifications import consolidate
from .summary import format_seconds

"""Import session state machine.

Stages (caller driven, each one confirmed explicitly):

    SOURCING -> [TAB_SELECTION] -> MAPPING -> PREVIEWING
        -> [CONFIRMING_NOTIFICATION] -> COMMITTING -> DONE

TAB_SELECTION is entered only when a remote document has several tabs;
CONFIRMING_NOTIFICATION is skipped when no notification group exists.
COMMITTING is the only stage emitting ImportProgress. A failing create()
sends the session back to PREVIEWING with the created count preserved, and
the next commit resumes with the first task not yet created.

One session holds one import's state (grid, mapping, tasks, workbook cache);
concurrent imports need one ImportSession each.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "Stage",
    "ImportSession",
    "CreateTask",
    "NotifyGroup",
]

CreateTask = Callable[[ImportedTask], Any]
NotifyGroup = Callable[[NotificationGroup], None]


class Stage(Enum):
    SOURCING = "sourcing"
    TAB_SELECTION = "tab_selection"
    MAPPING = "mapping"
    PREVIEWING = "previewing"
    CONFIRMING_NOTIFICATION = "confirming_notification"
    COMMITTING = "committing"
    DONE = "done"


class ImportSession:
    """One import, from source bytes or URL to created tasks.

    Parameters
    ----------
    directory: project collaborators used to resolve assignee cells
        (defaults to ``settings.collaborators``)
    resolver: remote spreadsheet resolver; built from ``settings.remote``
        on first remote load when omitted
    settings: ImportSettings (defaults apply when omitted)
    error_log: buffer receiving skipped rows and commit/notify failures
    """

    def __init__(
        self,
        directory: Sequence[Collaborator] | None = None,
        *,
        resolver: RemoteSheetResolver | None = None,
        settings: ImportSettings | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.settings = settings or ImportSettings()
        self.directory: tuple[Collaborator, ...] = tuple(
            directory if directory is not None else self.settings.collaborators
        )
        self._resolver = resolver
        self.error_log = error_log
        self._synonyms = merge_synonyms(self.settings.extra_synonyms)
        self._init_state()

    def _init_state(self) -> None:
        self._stage = Stage.SOURCING
        self._grid: RawGrid | None = None
        self._tabs: list[TabInfo] = []
        self._document_id: str | None = None
        self._mapping: ColumnMapping | None = None
        self._tasks: list[ImportedTask] = []
        self._skipped_rows: list[int] = []
        self._groups: list[NotificationGroup] = []
        self._notification_settings: NotificationSettings = self.settings.notifications
        self._send_notifications = self.settings.notifications.enabled
        self._created_ids: list[Any] = []
        self._stats = ItemStatsAccumulator()
        self._commit_started: float | None = None
        self.last_error: Exception | None = None
        self.result: CommitResult | None = None

    # ------------------------------------------------------------------
    # state accessors
    @property
    def stage(self) -> Stage:
        return self._stage

    @property
    def resolver(self) -> RemoteSheetResolver:
        if self._resolver is None:
            remote = self.settings.remote
            self._resolver = RemoteSheetResolver(
                export_base_url=remote.export_base_url, timeout=remote.timeout_seconds
            )
        return self._resolver

    @property
    def grid(self) -> RawGrid | None:
        return self._grid

    @property
    def tabs(self) -> list[TabInfo]:
        return list(self._tabs)

    @property
    def mapping(self) -> ColumnMapping | None:
        return self._mapping

    @property
    def tasks(self) -> list[ImportedTask]:
        return list(self._tasks)

    @property
    def skipped_rows(self) -> list[int]:
        return list(self._skipped_rows)

    @property
    def groups(self) -> list[NotificationGroup]:
        return list(self._groups)

    @property
    def notification_settings(self) -> NotificationSettings:
        return self._notification_settings

    @property
    def send_notifications(self) -> bool:
        return self._send_notifications

    @property
    def created_ids(self) -> tuple[Any, ...]:
        return tuple(self._created_ids)

    @property
    def created_count(self) -> int:
        return len(self._created_ids)

    @property
    def pending_tasks(self) -> list[ImportedTask]:
        """Tasks not created yet (all of them until a commit starts)."""
        return self._tasks[len(self._created_ids):]

    def _require(self, *stages: Stage, action: str) -> None:
        if self._stage not in stages:
            expected = "/".join(s.name for s in stages)
            raise InvalidTransition(f"cannot {action} in stage {self._stage.name} (expected {expected})")

    def _move(self, stage: Stage) -> None:
        logger.info(f"stage {self._stage.name} -> {stage.name}")
        self._stage = stage

    # ------------------------------------------------------------------
    # sourcing
    def _enter_mapping(self, grid: RawGrid) -> None:
        self._grid = grid
        self._mapping = auto_map(grid.headers, self._synonyms)
        logger.info(
            f"source={grid.source_name!r} columns={grid.width} rows={len(grid)} "
            f"mapped={sum(1 for _, i in self._mapping if i is not None)}"
        )
        self._move(Stage.MAPPING)

    def load_file(
        self,
        data: bytes,
        *,
        filename: str | None = None,
        fmt: SourceFormat | None = None,
        sheet: str | int | None = None,
    ) -> RawGrid:
        """Read uploaded bytes and propose a mapping; SOURCING -> MAPPING."""
        self._require(Stage.SOURCING, action="load a file")
        grid = read_source(data, filename=filename, fmt=fmt, sheet=sheet)
        self._enter_mapping(grid)
        return grid

    def load_remote(self, url: str, *, cancel: threading.Event | None = None) -> RawGrid | list[TabInfo]:
        """Fetch a shared spreadsheet.

        Returns the RawGrid (-> MAPPING) or, for a multi-tab document, the tab
        list (-> TAB_SELECTION).
        """
        self._require(Stage.SOURCING, action="load a remote spreadsheet")
        ref = parse_sheet_url(url)
        resolved = self.resolver.resolve(url, cancel=cancel)
        self._document_id = ref.document_id
        if isinstance(resolved, RawGrid):
            self._enter_mapping(resolved)
            return resolved
        self._tabs = list(resolved)
        self._move(Stage.TAB_SELECTION)
        return self.tabs

    def select_tab(self, tab_id: str) -> RawGrid:
        """Pick one tab of the fetched document; TAB_SELECTION -> MAPPING."""
        self._require(Stage.TAB_SELECTION, action="select a tab")
        assert self._document_id is not None
        grid = self.resolver.select_tab(self._document_id, tab_id)
        self._enter_mapping(grid)
        return grid

    # ------------------------------------------------------------------
    # mapping
    def auto_map(self) -> ColumnMapping:
        """Discard manual edits and re-run automatic mapping."""
        self._require(Stage.MAPPING, action="auto-map")
        assert self._grid is not None
        self._mapping = auto_map(self._grid.headers, self._synonyms)
        return self._mapping

    def assign_column(self, fld: FieldKey, index: int | None) -> ColumnMapping:
        self._require(Stage.MAPPING, action="edit the mapping")
        assert self._mapping is not None
        self._mapping.assign(fld, index)
        return self._mapping

    def clear_column(self, fld: FieldKey) -> ColumnMapping:
        return self.assign_column(fld, None)

    def confirm_mapping(self) -> list[ImportedTask]:
        """Materialize the rows; MAPPING -> PREVIEWING.

        TitleNotMapped / NoValidRows leave the session in MAPPING with an
        editable mapping.
        """
        self._require(Stage.MAPPING, action="confirm the mapping")
        assert self._grid is not None and self._mapping is not None
        try:
            outcome = materialize(self._grid, self._mapping, self.directory, dates=self.settings.dates)
        except MappingError as e:
            self.last_error = e
            self._mapping = self._mapping.copy()
            logger.error(f"mapping: {e}")
            raise

        self.last_error = None
        self._tasks = outcome.tasks
        self._skipped_rows = outcome.skipped_rows
        self._groups = consolidate(self._tasks)
        if self.error_log is not None:
            for row in outcome.skipped_rows:
                self.error_log.add(self._grid.source_name, row, "EMPTY_TITLE", "row skipped: empty title")
        # Rows are now materialized; the workbook is not needed any more
        if self._resolver is not None:
            self._resolver.cache.discard()
        self._move(Stage.PREVIEWING)
        return self.tasks

    # ------------------------------------------------------------------
    # preview / notification confirmation
    def back_to_mapping(self) -> ColumnMapping:
        """Return to MAPPING with an unlocked copy of the confirmed mapping."""
        self._require(Stage.PREVIEWING, action="go back to mapping")
        if self._created_ids:
            raise InvalidTransition(
                f"{len(self._created_ids)} task(s) already created; the mapping can no longer change"
            )
        assert self._mapping is not None
        self._mapping = self._mapping.copy()
        self._tasks = []
        self._skipped_rows = []
        self._groups = []
        self._move(Stage.MAPPING)
        return self._mapping

    def proceed(self) -> Stage:
        """Leave PREVIEWING; notification confirmation is skipped without groups."""
        self._require(Stage.PREVIEWING, action="proceed")
        if self._groups:
            self._move(Stage.CONFIRMING_NOTIFICATION)
        else:
            self._move(Stage.COMMITTING)
        return self._stage

    def confirm_notifications(
        self,
        *,
        send: bool = True,
        subject: str | None = None,
        message: str | None = None,
    ) -> None:
        """Accept (or decline) the notification plan; -> COMMITTING."""
        self._require(Stage.CONFIRMING_NOTIFICATION, action="confirm notifications")
        changes: dict[str, Any] = {}
        if subject is not None:
            changes["subject"] = subject
        if message is not None:
            changes["message"] = message
        if changes:
            self._notification_settings = replace(self._notification_settings, **changes)
        self._send_notifications = send
        logger.info(f"notifications send={send} groups={len(self._groups)}")
        self._move(Stage.COMMITTING)

    # ------------------------------------------------------------------
    # commit
    def commit(self, create: CreateTask, notify: NotifyGroup | None = None) -> Iterator[ImportProgress]:
        """Create pending tasks in row order, yielding progress after each one.

        Raises:
            CommitItemFailed: ``create`` raised; the session is back in
                PREVIEWING and ``created_count`` tasks stay created.
        """
        self._require(Stage.COMMITTING, action="commit")
        total = len(self._tasks)
        if self._commit_started is None:
            self._commit_started = time.perf_counter()
        start = len(self._created_ids)
        if start:
            logger.info(f"resuming commit at task {start + 1}/{total}")

        for index in range(start, total):
            task = self._tasks[index]
            t0 = time.perf_counter()
            try:
                task_id = create(task)
            except Exception as e:
                failure = CommitItemFailed(len(self._created_ids), task, e)
                self.last_error = failure
                logger.error(f"commit: {failure}")
                if self.error_log is not None:
                    source = self._grid.source_name if self._grid else ""
                    self.error_log.add(source, task.source_row, failure.error_type, str(e))
                self._move(Stage.PREVIEWING)
                raise failure from e
            self._stats.add_item_time(time.perf_counter() - t0)
            self._created_ids.append(task_id)
            yield ImportProgress(current=index + 1, total=total, current_item_label=task.title)

        notified, failed = self._send_all(notify)
        _, avg, p95 = self._stats.get_stats()
        self.last_error = None
        self.result = CommitResult(
            created_ids=tuple(self._created_ids),
            notified_recipients=tuple(notified),
            notification_failures=tuple(failed),
            elapsed_seconds=time.perf_counter() - self._commit_started,
            avg_item_seconds=avg,
            p95_item_seconds=p95,
            skipped_rows=tuple(self._skipped_rows),
        )
        logger.info(
            f"committed created={self.result.created_count} notified={len(notified)} "
            f"notification_failures={len(failed)} "
            f"avg_item_sec={format_seconds(avg)} p95_item_sec={format_seconds(p95)}"
        )
        self._move(Stage.DONE)

    def _send_all(self, notify: NotifyGroup | None) -> tuple[list[str], list[str]]:
        if notify is None or not self._send_notifications or not self._groups:
            return [], []
        notified: list[str] = []
        failed: list[str] = []
        for group in self._groups:
            try:
                notify(group)
            except Exception as e:
                failed.append(group.recipient_email)
                logger.warning(f"notification to {group.recipient_email} failed: {e}")
                if self.error_log is not None:
                    self.error_log.add(group.recipient_email, -1, "NOTIFICATION_FAILED", str(e))
                continue
            notified.append(group.recipient_email)
        return notified, failed

    # ------------------------------------------------------------------
    def reset(self) -> None:
        """Start over from a fresh SOURCING state (drops the workbook cache)."""
        if self._resolver is not None:
            self._resolver.cache.discard()
        previous = self._stage
        self._init_state()
        logger.info(f"stage {previous.name} -> {Stage.SOURCING.name} (reset)")
