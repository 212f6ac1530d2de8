from __future__ import annotations

from dataclasses import dataclass

"""RawGrid: the uniform header + rows string matrix produced by a tabular source."""

__all__ = [
    "RawGrid",
]


@dataclass(frozen=True)
class RawGrid:
    """Header row plus data rows, every cell a string.

    Every row has exactly ``len(headers)`` cells (short rows are right-padded
    with ``""`` by the reader) and entirely empty rows never appear.
    """
    headers: list[str]
    rows: list[list[str]]
    source_name: str = ""  # Display label: file name or "Google Sheet - <tab>"

    @property
    def width(self) -> int:
        return len(self.headers)

    def __len__(self) -> int:
        return len(self.rows)

    def sample(self, n: int = 3) -> list[dict[str, str]]:
        """First ``n`` rows keyed by header, for inspection output."""
        out = []
        for row in self.rows[:n]:
            out.append({(h or f"#{i}"): v for i, (h, v) in enumerate(zip(self.headers, row))})
        return out
