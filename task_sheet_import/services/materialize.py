from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..errors import NoValidRows, TitleNotMapped
from ..models.collaborator import Collaborator
from ..models.column_mapping import ColumnMapping
from ..models.config_models import DateSettings
from ..models.fields import FieldKey
from ..models.grid import RawGrid
from ..models.task import ImportedTask
from .collaborators import resolve_collaborator
from .normalize import (
    normalize_color,
    normalize_date,
    normalize_hours,
    normalize_priority,
    normalize_progress,
    normalize_status,
    normalize_tags,
)

"""Row materializer / validator.

Applies a confirmed ColumnMapping to every RawGrid row, runs the value
normalizers and the collaborator resolver, and assembles ImportedTask records.
Rows whose title is empty are excluded silently; zero surviving rows is its
own condition (NoValidRows), distinct from a missing title column
(TitleNotMapped).
"""

logger = logging.getLogger(__name__)

__all__ = [
    "MaterializeOutcome",
    "materialize_row",
    "materialize",
]


@dataclass(frozen=True)
class MaterializeOutcome:
    tasks: list[ImportedTask]  # row order preserved
    skipped_rows: list[int]  # 1-based data rows dropped for an empty title

    @property
    def total_rows(self) -> int:
        return len(self.tasks) + len(self.skipped_rows)


def materialize_row(
    row: Sequence[str],
    mapping: ColumnMapping,
    directory: Sequence[Collaborator],
    *,
    source_row: int = -1,
    dates: DateSettings | None = None,
) -> ImportedTask | None:
    """Build one ImportedTask from ``row``; None when its title is empty."""
    dates = dates or DateSettings()

    def value(fld: FieldKey) -> str:
        index = mapping[fld]
        if index is None or index >= len(row):
            return ""
        return row[index] or ""

    title = value(FieldKey.TITLE).strip()
    if not title:
        return None

    assignee_text = value(FieldKey.ASSIGNED_TO).strip()
    collaborator = resolve_collaborator(assignee_text, directory)

    return ImportedTask(
        title=title,
        description=value(FieldKey.DESCRIPTION).strip(),
        status=normalize_status(value(FieldKey.STATUS)),
        priority=normalize_priority(value(FieldKey.PRIORITY)),
        progress=normalize_progress(value(FieldKey.PROGRESS)),
        start_date=normalize_date(
            value(FieldKey.START_DATE), serial_min=dates.serial_min, serial_max=dates.serial_max
        ),
        due_date=normalize_date(
            value(FieldKey.DUE_DATE), serial_min=dates.serial_min, serial_max=dates.serial_max
        ),
        estimated_hours=normalize_hours(value(FieldKey.ESTIMATED_HOURS)),
        actual_hours=normalize_hours(value(FieldKey.ACTUAL_HOURS)),
        assigned_person_id=collaborator.person_id if collaborator else None,
        assigned_email=(collaborator.email or None) if collaborator else None,
        assigned_display_text=assignee_text,
        assigned_display_name=collaborator.display_name if collaborator else None,
        tags=normalize_tags(value(FieldKey.TAGS)),
        color=normalize_color(value(FieldKey.COLOR)),
        source_row=source_row,
    )


def materialize(
    grid: RawGrid,
    mapping: ColumnMapping,
    directory: Sequence[Collaborator] = (),
    *,
    dates: DateSettings | None = None,
) -> MaterializeOutcome:
    """Materialize every grid row; locks ``mapping``.

    Raises:
        TitleNotMapped: no column is mapped to ``title``
        NoValidRows: every row has an empty title
    """
    if mapping[FieldKey.TITLE] is None:
        raise TitleNotMapped('the "title" field must be mapped to a column')
    mapping.lock()

    tasks: list[ImportedTask] = []
    skipped: list[int] = []
    for number, row in enumerate(grid.rows, start=1):
        task = materialize_row(row, mapping, directory, source_row=number, dates=dates)
        if task is None:
            skipped.append(number)
            continue
        tasks.append(task)

    if skipped:
        logger.debug(f"skipped {len(skipped)} row(s) with an empty title: {skipped[:20]}")
    if not tasks:
        raise NoValidRows(
            f"no valid task found in {len(grid.rows)} row(s); the title column "
            f"{grid.headers[mapping[FieldKey.TITLE]]!r} seems empty"
        )
    unresolved = sum(1 for t in tasks if t.assigned_display_text and t.assigned_person_id is None)
    logger.info(
        f"materialized tasks={len(tasks)} skipped_rows={len(skipped)} unresolved_assignees={unresolved}"
    )
    return MaterializeOutcome(tasks=tasks, skipped_rows=skipped)
