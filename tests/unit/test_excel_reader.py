from __future__ import annotations

from datetime import datetime

import pandas as pd
import pytest

from task_sheet_import.errors import UnreadableSource
from task_sheet_import.excel.reader import (
    cell_to_str,
    count_data_rows,
    detect_format,
    grid_from_rows,
    read_source,
)


def test_detect_format_by_suffix_then_magic():
    assert detect_format(b"a,b\n1,2", "tasks.CSV") == "csv"
    assert detect_format(b"", "tasks.xlsx") == "xlsx"
    assert detect_format(b"PK\x03\x04rest", None) == "xlsx"
    assert detect_format(b"\xd0\xcf\x11\xe0rest", "upload") == "xls"
    assert detect_format(b"title;status\n", None) == "csv"


def test_cell_to_str_coercions():
    assert cell_to_str(None) == ""
    assert cell_to_str(float("nan")) == ""
    assert cell_to_str(42000.0) == "42000"
    assert cell_to_str(1.5) == "1.5"
    assert cell_to_str(datetime(2024, 3, 15)) == "2024-03-15"
    assert cell_to_str(pd.Timestamp("2024-03-15 10:30")) == "2024-03-15T10:30:00"
    assert cell_to_str(True) == "TRUE"
    assert cell_to_str("  texte ") == "  texte "


def test_read_csv_pads_rows_and_trims_headers():
    data = "Titre , Statut,Échéance\nTâche A,en cours\n\n,,\nTâche B,terminé,2024-05-01,extra\n".encode()
    grid = read_source(data, filename="export.csv")
    assert grid.headers == ["Titre", "Statut", "Échéance", ""]
    assert grid.rows == [
        ["Tâche A", "en cours", "", ""],
        ["Tâche B", "terminé", "2024-05-01", "extra"],
    ]
    assert grid.source_name == "export.csv"
    assert all(len(r) == grid.width for r in grid.rows)


def test_read_csv_semicolon_and_bom():
    data = "\ufefftitle;status\nA;done\n".encode("utf-8")
    grid = read_source(data, fmt="csv")
    assert grid.headers == ["title", "status"]
    assert grid.rows == [["A", "done"]]


def test_read_csv_latin1_fallback():
    data = "titre;statut\nRéunion;terminé\n".encode("latin-1")
    grid = read_source(data, filename="legacy.csv")
    assert grid.rows == [["Réunion", "terminé"]]


def test_header_only_is_unreadable():
    with pytest.raises(UnreadableSource, match="only contains headers"):
        read_source(b"title,status\n", filename="x.csv")


def test_empty_source_is_unreadable():
    with pytest.raises(UnreadableSource):
        read_source(b"", filename="x.csv")
    with pytest.raises(UnreadableSource, match="not contain enough data"):
        grid_from_rows([["", ""], [None, None]], "blank")


def test_html_body_is_unreadable():
    with pytest.raises(UnreadableSource):
        read_source(b"<!DOCTYPE html><html><body>login</body></html>", fmt="csv")


def test_corrupt_workbook_is_unreadable():
    with pytest.raises(UnreadableSource):
        read_source(b"PK\x03\x04not really a zip", filename="broken.xlsx")


def test_read_xlsx_first_non_empty_row_is_header(xlsx_factory):
    data = xlsx_factory(
        {
            "Tâches": [
                [None, None, None],
                ["Tâche", "Échéance", "Heures"],
                ["Maquette", 45366, 7.5],
                [None, None, None],
                ["Recette", "2024-04-02", 3],
            ]
        }
    )
    grid = read_source(data, filename="planning.xlsx")
    assert grid.headers == ["Tâche", "Échéance", "Heures"]
    assert grid.rows == [["Maquette", "45366", "7.5"], ["Recette", "2024-04-02", "3"]]
    assert grid.source_name == "planning.xlsx"


def test_read_xlsx_sheet_selection(xlsx_factory):
    data = xlsx_factory(
        {
            "Premier": [["title"], ["A"]],
            "Second": [["title"], ["B"], ["C"]],
        }
    )
    assert read_source(data, filename="w.xlsx").rows == [["A"]]
    assert read_source(data, filename="w.xlsx", sheet="Second").rows == [["B"], ["C"]]
    assert read_source(data, filename="w.xlsx", sheet=1).rows == [["B"], ["C"]]
    with pytest.raises(UnreadableSource):
        read_source(data, filename="w.xlsx", sheet="Absent")
    with pytest.raises(UnreadableSource):
        read_source(data, filename="w.xlsx", sheet=5)


def test_count_data_rows_excludes_header_and_blanks():
    df = pd.DataFrame([["title"], [None], ["A"], ["B"]])
    assert count_data_rows(df) == 2
    assert count_data_rows(pd.DataFrame()) == 0
