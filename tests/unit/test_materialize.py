from __future__ import annotations

from datetime import date

import pytest

from task_sheet_import.errors import MappingLocked, NoValidRows, TitleNotMapped
from task_sheet_import.models.column_mapping import ColumnMapping
from task_sheet_import.models.config_models import DateSettings
from task_sheet_import.models.fields import FieldKey, TaskPriority, TaskStatus
from task_sheet_import.models.grid import RawGrid
from task_sheet_import.services.mapping import auto_map
from task_sheet_import.services.materialize import materialize, materialize_row


@pytest.fixture()
def grid() -> RawGrid:
    return RawGrid(
        headers=["Titre", "Statut", "Échéance", "Responsable", "Avancement %", "Tags", "Couleur", "Heures"],
        rows=[
            ["Maquette accueil", "en cours", "45366", "J. Dupont", "75%", "design, front", "#3B82F6", "7,5"],
            ["   ", "terminé", "", "Arthur", "", "", "", ""],
            ["Recette", "terminé", "31/05/2024", "Arthur", "100", "", "bleu", ""],
            ["Mise en ligne", "???", "", "Quelqu'un", "", "", "", "8h"],
        ],
        source_name="planning.xlsx",
    )


def test_materialize_builds_typed_tasks(grid, directory):
    mapping = auto_map(grid.headers)
    mapping.assign(FieldKey.ESTIMATED_HOURS, 7)
    outcome = materialize(grid, mapping, directory)

    assert [t.title for t in outcome.tasks] == ["Maquette accueil", "Recette", "Mise en ligne"]
    assert outcome.skipped_rows == [2]
    assert outcome.total_rows == len(grid.rows)

    first = outcome.tasks[0]
    assert first.status is TaskStatus.IN_PROGRESS
    assert first.due_date == date(2024, 3, 15)
    assert first.progress == 75
    assert first.tags == ("design", "front")
    assert first.color == "#3b82f6"
    assert first.estimated_hours == 7.5
    assert first.assigned_person_id == "u-001"
    assert first.assigned_email == "jean.dupont@example.com"
    assert first.assigned_display_name == "Jean Dupont"
    assert first.assigned_display_text == "J. Dupont"
    assert first.source_row == 1

    recette = outcome.tasks[1]
    assert recette.is_closed
    assert recette.due_date == date(2024, 5, 31)
    assert recette.color is None
    assert recette.source_row == 3

    unknown = outcome.tasks[2]
    assert unknown.status is TaskStatus.TODO
    assert unknown.priority is TaskPriority.MEDIUM
    assert unknown.assigned_person_id is None
    assert unknown.assigned_email is None
    assert unknown.assigned_display_text == "Quelqu'un"
    assert not unknown.is_assigned


def test_every_task_has_a_title_and_count_never_grows(grid, directory):
    outcome = materialize(grid, auto_map(grid.headers), directory)
    assert len(outcome.tasks) <= len(grid.rows)
    assert all(t.title.strip() for t in outcome.tasks)


def test_materialize_locks_mapping(grid):
    mapping = auto_map(grid.headers)
    materialize(grid, mapping)
    assert mapping.locked
    with pytest.raises(MappingLocked):
        mapping.assign(FieldKey.TAGS, None)


def test_title_not_mapped(grid):
    mapping = ColumnMapping(grid.width, {FieldKey.STATUS: 1})
    with pytest.raises(TitleNotMapped):
        materialize(grid, mapping)
    assert not mapping.locked


def test_no_valid_rows_is_distinct_from_missing_title(grid):
    mapping = ColumnMapping(grid.width, {FieldKey.TITLE: 5})
    with pytest.raises(NoValidRows, match="Tags"):
        materialize(
            RawGrid(headers=grid.headers, rows=[r[:5] + [""] + r[6:] for r in grid.rows]),
            mapping,
        )


def test_materialize_row_uses_date_bounds(directory):
    mapping = ColumnMapping(2, {FieldKey.TITLE: 0, FieldKey.DUE_DATE: 1})
    row = ["Livrer", "45366"]
    assert materialize_row(row, mapping, directory).due_date == date(2024, 3, 15)
    narrow = DateSettings(serial_min=0, serial_max=40000)
    assert materialize_row(row, mapping, directory, dates=narrow).due_date is None
    assert materialize_row(["", "45366"], mapping, directory) is None


def test_to_payload_is_json_ready(grid, directory):
    task = materialize(grid, auto_map(grid.headers), directory).tasks[0]
    payload = task.to_payload()
    assert payload["status"] == "in_progress"
    assert payload["priority"] == "medium"
    assert payload["due_date"] == "2024-03-15"
    assert payload["tags"] == ["design", "front"]
