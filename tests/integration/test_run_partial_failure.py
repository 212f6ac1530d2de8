from __future__ import annotations

import json
from pathlib import Path

import pytest

from task_sheet_import.errors import CommitItemFailed
from task_sheet_import.logging.error_log import ErrorLogBuffer
from task_sheet_import.services.pipeline import ImportSession, Stage


def test_failed_batch_resumes_with_remaining_rows(directory, temp_workdir: Path, xlsx_factory, task_rows):
    log = ErrorLogBuffer(temp_workdir / "logs")
    session = ImportSession(directory, error_log=log)
    session.load_file(xlsx_factory({"Planning": task_rows}), filename="planning.xlsx")
    session.confirm_mapping()
    session.proceed()
    session.confirm_notifications(send=False)

    store: dict[str, str] = {}
    outages = {"Rédiger contenus"}

    def create(task):
        if task.title in outages:
            raise TimeoutError("backend timeout")
        store[f"id-{len(store) + 1}"] = task.title
        return f"id-{len(store)}"

    with pytest.raises(CommitItemFailed) as info:
        list(session.commit(create))
    assert info.value.created_count == 1
    assert session.stage is Stage.PREVIEWING
    assert list(store.values()) == ["Maquette accueil"]

    outages.clear()
    session.proceed()
    session.confirm_notifications(send=False)
    progress = list(session.commit(create))
    assert [p.current_item_label for p in progress] == ["Rédiger contenus", "Recette", "Mise en ligne"]
    assert list(store.values()) == ["Maquette accueil", "Rédiger contenus", "Recette", "Mise en ligne"]
    assert session.result.created_ids == ("id-1", "id-2", "id-3", "id-4")

    lines = log.flush().read_text(encoding="utf-8").splitlines()
    records = [json.loads(line) for line in lines]
    assert [(r["error_type"], r["row"]) for r in records] == [("EMPTY_TITLE", 3), ("COMMIT_ITEM_FAILED", 2)]
    assert records[1]["source"] == "planning.xlsx"
