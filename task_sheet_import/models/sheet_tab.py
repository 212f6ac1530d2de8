from __future__ import annotations

from dataclasses import dataclass

"""TabInfo: one tab of a multi-tab remote spreadsheet, offered for selection."""

__all__ = [
    "TabInfo",
]


@dataclass(frozen=True)
class TabInfo:
    tab_id: str  # position of the tab in the workbook, as text
    name: str
    non_empty_row_count: int  # data rows, header excluded
