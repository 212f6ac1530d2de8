from __future__ import annotations

import csv
import io
import math
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time
from pathlib import PurePath
from typing import Any, Literal

import pandas as pd

from ..errors import UnreadableSource
from ..models.grid import RawGrid

"""Tabular source reader.

Turns uploaded bytes (delimited text or a spreadsheet binary) into a RawGrid:
the first non-empty row becomes the header, entirely empty rows are dropped and
every cell is coerced to a string. Pure transform, no side effect.

Cells that pandas hands back as dates are rendered as ISO dates; numeric cells
are rendered without a spurious ".0", so a date stored as a plain number
reaches the date normalizer as a spreadsheet serial it knows how to read.
"""

__all__ = [
    "SourceFormat",
    "detect_format",
    "read_source",
    "read_workbook",
    "grid_from_frame",
    "grid_from_rows",
    "count_data_rows",
    "cell_to_str",
    "read_delimited",
]

SourceFormat = Literal["csv", "xlsx", "xls"]

_SUFFIX_FORMATS: dict[str, SourceFormat] = {
    ".csv": "csv",
    ".tsv": "csv",
    ".txt": "csv",
    ".xlsx": "xlsx",
    ".xlsm": "xlsx",
    ".xls": "xls",
}
_ZIP_MAGIC = b"PK\x03\x04"
_OLE_MAGIC = b"\xd0\xcf\x11\xe0"
_CSV_DELIMITERS = [",", ";", "\t", "|"]


def detect_format(data: bytes, filename: str | None = None) -> SourceFormat:
    """Derive the source format from the file name suffix, else from magic bytes."""
    if filename:
        fmt = _SUFFIX_FORMATS.get(PurePath(filename).suffix.lower())
        if fmt is not None:
            return fmt
    if data.startswith(_ZIP_MAGIC):
        return "xlsx"
    if data.startswith(_OLE_MAGIC):
        return "xls"
    return "csv"


def cell_to_str(value: Any) -> str:
    """Coerce a raw pandas cell to its display string ("" for blanks)."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if value is pd.NaT:
        return ""
    if isinstance(value, (pd.Timestamp, datetime)):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value)


def _decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def _sniff_delimiter(text: str) -> str:
    # Most frequent candidate on the first non-empty line
    first = next((line for line in text.splitlines() if line.strip()), "")
    counts = {d: first.count(d) for d in _CSV_DELIMITERS}
    best = max(counts, key=lambda d: counts[d])
    return best if counts[best] > 0 else ","


def read_delimited(data: bytes) -> list[list[str]]:
    text = _decode_text(data)
    if text.lstrip().lower().startswith(("<!doctype", "<html")):
        raise UnreadableSource("source is an HTML document, not tabular data")
    try:
        return list(csv.reader(io.StringIO(text, newline=""), delimiter=_sniff_delimiter(text)))
    except csv.Error as e:
        raise UnreadableSource(f"cannot parse delimited text: {e}") from e


def read_workbook(data: bytes, fmt: SourceFormat = "xlsx") -> dict[str, pd.DataFrame]:
    """Read every sheet of a spreadsheet binary as raw (header-less) DataFrames.

    Sheets are returned in workbook order, keyed by sheet name.
    """
    engine = "openpyxl" if fmt == "xlsx" else None
    try:
        xls = pd.ExcelFile(io.BytesIO(data), engine=engine)
    except ImportError as e:
        raise UnreadableSource(f"no reader available for {fmt} files: {e}") from e
    except Exception as e:
        # openpyxl/xlrd raise a variety of types for corrupt archives
        raise UnreadableSource(f"cannot open spreadsheet: {e}") from e
    dfs: dict[str, pd.DataFrame] = {}
    for name in xls.sheet_names:
        # No header inference: the header is the first non-empty row
        dfs[str(name)] = xls.parse(name, header=None, keep_default_na=False, na_values=[""])
    return dfs


def _string_rows(raw_rows: Iterable[Sequence[Any]]) -> list[list[str]]:
    rows = []
    for raw in raw_rows:
        cells = [cell_to_str(v) for v in raw]
        if any(c.strip() for c in cells):
            rows.append(cells)
    return rows


def count_data_rows(df: pd.DataFrame) -> int:
    """Number of non-empty rows after the header row."""
    return max(0, len(_string_rows(df.itertuples(index=False, name=None))) - 1)


def grid_from_frame(df: pd.DataFrame, source_name: str = "") -> RawGrid:
    """Normalize a raw (header-less) DataFrame into a RawGrid."""
    return grid_from_rows(df.itertuples(index=False, name=None), source_name)


def grid_from_rows(raw_rows: Iterable[Sequence[Any]], source_name: str = "") -> RawGrid:
    """Normalize raw cell rows into a RawGrid.

    Steps:
    1. Stringify every cell and drop entirely empty rows
    2. Require at least a header row and one data row
    3. First row -> trimmed headers, remaining rows -> data
    4. Pad every row (header included) to the widest used column
    """
    rows = _string_rows(raw_rows)
    if len(rows) < 2:
        if rows:
            raise UnreadableSource(f"'{source_name}' only contains headers, no data to import")
        raise UnreadableSource(f"'{source_name}' does not contain enough data")

    # Widest column holding a non-empty value anywhere
    width = 0
    for cells in rows:
        for i in range(len(cells) - 1, -1, -1):
            if cells[i].strip():
                width = max(width, i + 1)
                break

    def fit(cells: list[str]) -> list[str]:
        cells = cells[:width]
        return cells + [""] * (width - len(cells))

    headers = [h.strip() for h in fit(rows[0])]
    return RawGrid(headers=headers, rows=[fit(r) for r in rows[1:]], source_name=source_name)


def read_source(
    data: bytes,
    *,
    filename: str | None = None,
    fmt: SourceFormat | None = None,
    sheet: str | int | None = None,
    label: str | None = None,
) -> RawGrid:
    """Read file bytes into a RawGrid.

    Parameters
    ----------
    data: raw file content
    filename: used for the format suffix and as the grid's display label
    fmt: declared format; wins over suffix / magic byte detection
    sheet: sheet name or position for spreadsheet binaries (first sheet by default)
    label: display label for the grid (defaults to the file name)
    """
    if not data:
        raise UnreadableSource("source is empty")
    fmt = fmt or detect_format(data, filename)
    if label is None:
        label = PurePath(filename).name if filename else "upload"

    if fmt == "csv":
        return grid_from_rows(read_delimited(data), label)

    sheets = read_workbook(data, fmt)
    if not sheets:
        raise UnreadableSource(f"'{label}' contains no sheet")
    names = list(sheets)
    if sheet is None:
        name = names[0]
    elif isinstance(sheet, int):
        if not 0 <= sheet < len(names):
            raise UnreadableSource(f"'{label}' has no sheet at position {sheet}")
        name = names[sheet]
    else:
        if sheet not in sheets:
            raise UnreadableSource(f"'{label}' has no sheet named {sheet!r}")
        name = sheet
    return grid_from_frame(sheets[name], label)
