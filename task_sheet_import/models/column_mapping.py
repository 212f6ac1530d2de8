from __future__ import annotations

from collections.abc import Iterator, Mapping

from ..errors import InvalidColumn, MappingLocked
from .fields import FieldKey

"""ColumnMapping: task field -> optional column index.

Lifecycle: produced by auto-mapping, editable by the caller until
confirmation, locked once row materialization begins. A column is claimed by
at most one field at any time.
"""

__all__ = [
    "ColumnMapping",
]


class ColumnMapping:
    """Mutable field -> column assignment with a lock for materialization."""

    def __init__(self, width: int, assignments: Mapping[FieldKey, int | None] | None = None) -> None:
        self.width = width
        self._columns: dict[FieldKey, int | None] = {f: None for f in FieldKey}
        self._locked = False
        if assignments:
            for fld, index in assignments.items():
                self.assign(fld, index)

    @property
    def locked(self) -> bool:
        return self._locked

    def lock(self) -> None:
        self._locked = True

    def copy(self) -> ColumnMapping:
        """Unlocked copy with the same assignments."""
        return ColumnMapping(self.width, self._columns)

    def __getitem__(self, fld: FieldKey) -> int | None:
        return self._columns[fld]

    def __iter__(self) -> Iterator[tuple[FieldKey, int | None]]:
        return iter(self._columns.items())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ColumnMapping):
            return NotImplemented
        return self.width == other.width and self._columns == other._columns

    def __repr__(self) -> str:
        mapped = {f.value: i for f, i in self._columns.items() if i is not None}
        return f"ColumnMapping(width={self.width}, mapped={mapped})"

    def column_owner(self, index: int) -> FieldKey | None:
        """Field currently claiming ``index``, if any."""
        for fld, col in self._columns.items():
            if col == index:
                return fld
        return None

    def assign(self, fld: FieldKey, index: int | None) -> None:
        """Map ``fld`` to ``index`` (None clears it).

        A column already claimed by another field is released from that field
        first, so a column never satisfies two fields.
        """
        if self._locked:
            raise MappingLocked("mapping is locked once materialization has started")
        if index is not None:
            if not 0 <= index < self.width:
                raise InvalidColumn(f"column index {index} out of range (0..{self.width - 1}) for {fld.value}")
            owner = self.column_owner(index)
            if owner is not None and owner is not fld:
                self._columns[owner] = None
        self._columns[fld] = index

    def clear(self, fld: FieldKey) -> None:
        self.assign(fld, None)

    def as_dict(self) -> dict[str, int | None]:
        return {f.value: i for f, i in self._columns.items()}
