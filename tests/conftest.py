# Shared pytest fixtures
from __future__ import annotations

import io
import logging
import tempfile
from pathlib import Path

import pandas as pd
import pytest

from task_sheet_import.logging.init import LOGGER_NAME, reset_logging
from task_sheet_import.models.collaborator import Collaborator


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()
    logging.getLogger(LOGGER_NAME).setLevel(logging.NOTSET)


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """project_name: Refonte site vitrine
project_url: https://dashboard.example.com/projects/site-vitrine
collaborators:
  - person_id: u-001
    display_name: Jean Dupont
    email: jean.dupont@example.com
  - person_id: u-002
    display_name: Arthur Le Goux
    email: arthur.legoux@example.com
  - person_id: 3
    display_name: Marie Curie
    email: marie.curie@example.com
notifications:
  enabled: true
  subject: "Nouvelles tâches - {project}"
dates:
  serial_min: 0
  serial_max: 100000
synonyms:
  title: [mission]
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def directory() -> list[Collaborator]:
    return [
        Collaborator("u-001", "Jean Dupont", "jean.dupont@example.com"),
        Collaborator("u-002", "Arthur Le Goux", "arthur.legoux@example.com"),
        Collaborator("u-003", "Marie Curie", "marie.curie@example.com"),
    ]


def make_xlsx_bytes(sheets: dict[str, list[list[object]]]) -> bytes:
    """Workbook bytes with one header-less sheet per entry, in order."""
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        for sheet, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
    return buf.getvalue()


@pytest.fixture()
def xlsx_factory():
    return make_xlsx_bytes


@pytest.fixture()
def task_rows() -> list[list[object]]:
    return [
        ["Nom de la tâche", "Statut", "Échéance", "Responsable", "Priorité", "Avancement %"],
        ["Maquette accueil", "en cours", 45366, "J. Dupont", "haute", "75%"],
        ["Rédiger contenus", "à faire", "2024-04-02", "marie.curie@example.com", "", ""],
        ["", "terminé", "", "Arthur", "", ""],
        ["Recette", "terminé", "", "Arthur", "basse", "100"],
        ["Mise en ligne", "", "", "Inconnu", "", ""],
    ]
