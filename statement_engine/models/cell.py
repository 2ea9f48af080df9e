"""Tagged cell type for tabular statement sources."""

import numbers
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional, Sequence, Tuple

from .enums import CellKind


@dataclass(frozen=True)
class Cell:
    """
    A single spreadsheet/CSV cell: empty, number or text.

    Dates decoded by the spreadsheet reader arrive as TEXT in ISO form so the
    normalizer sees one shape for them.
    """
    kind: CellKind = CellKind.EMPTY
    number: Optional[float] = None
    text: str = ""

    @classmethod
    def of(cls, value: Any) -> "Cell":
        """Classify a raw decoded value."""
        if isinstance(value, Cell):
            return value
        if value is None:
            return EMPTY_CELL

        # NaN and NaT never equal themselves
        try:
            if value != value:
                return EMPTY_CELL
        except (TypeError, ValueError):
            pass

        if isinstance(value, bool):
            return cls(kind=CellKind.TEXT, text=str(value))

        if isinstance(value, numbers.Real):
            try:
                number = float(value)
            except OverflowError:
                return EMPTY_CELL
            if number in (float("inf"), float("-inf")):
                return EMPTY_CELL
            return cls(kind=CellKind.NUMBER, number=number, text=_format_number(number))

        if isinstance(value, datetime):
            return cls(kind=CellKind.TEXT, text=value.date().isoformat())
        if isinstance(value, date):
            return cls(kind=CellKind.TEXT, text=value.isoformat())

        text = str(value).strip()
        if not text:
            return EMPTY_CELL
        return cls(kind=CellKind.TEXT, text=text)

    @property
    def is_empty(self) -> bool:
        return self.kind == CellKind.EMPTY

    @property
    def is_number(self) -> bool:
        return self.kind == CellKind.NUMBER

    @property
    def is_text(self) -> bool:
        return self.kind == CellKind.TEXT

    def __str__(self) -> str:
        return self.text


EMPTY_CELL = Cell()

RawRow = Tuple[Cell, ...]


def make_row(values: Sequence[Any]) -> RawRow:
    """Build a row of cells from decoded values."""
    return tuple(Cell.of(v) for v in values)


def row_is_blank(row: RawRow) -> bool:
    return all(cell.is_empty for cell in row)


def cell_at(row: RawRow, index: Optional[int]) -> Cell:
    """Cell at index, EMPTY when the index is missing or out of range."""
    if index is None or index < 0 or index >= len(row):
        return EMPTY_CELL
    return row[index]


def _format_number(number: float) -> str:
    if number.is_integer():
        return str(int(number))
    return repr(number)
