"""
Export domain models.

Describes *what* to write: workbook metadata, sheets, columns, footers and
the closed set of cell values a driver accepts. Nothing in here knows how a
workbook is serialized.

All models except the registries live for exactly one ``generate`` call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, AsyncIterable, Awaitable, Callable, Dict, Iterable, Mapping, Optional, Union


# ============================================================================
# Enums
# ============================================================================


class ExcelMode(str, Enum):
    """Workbook generation strategy."""

    MEMORY = "memory"  # whole document buffered, returned as bytes
    STREAMING = "streaming"  # rows written incrementally to an output stream


class TotalsKind(str, Enum):
    """Aggregation a column footer *could* show. Descriptive only."""

    SUM = "sum"
    COUNT = "count"
    AVG = "avg"
    MAX = "max"
    MIN = "min"


# ============================================================================
# Styles and cell values
# ============================================================================

# Backend-agnostic presentation record: font, fill, alignment, border, num_fmt
Style = Dict[str, Any]
StyleRef = Union[str, Style, None]


@dataclass(frozen=True)
class RunFont:
    """Font overrides for one rich text run."""

    name: Optional[str] = None
    size: Optional[float] = None
    italic: Optional[bool] = None
    underline: Optional[bool] = None


@dataclass(frozen=True)
class RichTextRun:
    """A piece of text with its own formatting."""

    text: str
    bold: Optional[bool] = None
    color: Optional[str] = None
    font: Optional[RunFont] = None


@dataclass(frozen=True)
class RichText:
    """Cell value made of differently formatted runs."""

    runs: tuple[RichTextRun, ...] = ()

    @property
    def plain_text(self) -> str:
        return "".join(run.text for run in self.runs)


CellValue = Union[str, int, float, bool, datetime, date, time, RichText, None]


def normalize_cell_value(value: Any) -> CellValue:
    """
    Coerce an extracted value into the closed CellValue union.

    Decimals (typical for money columns coming out of a database) become
    floats, enums become their value, and anything unrecognised is
    rendered with ``str``.
    """
    if value is None or isinstance(value, (str, bool, int, float, datetime, date, time, RichText)):
        return value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return normalize_cell_value(value.value)
    return str(value)


# ============================================================================
# Workbook / sheet / column specifications
# ============================================================================


@dataclass(frozen=True)
class WorkbookSpec:
    """
    Workbook metadata.

    Attributes:
        filename: Suggested file name of the document
        creator: Author written into the document properties
        created: Creation timestamp (defaults to now)
        modified: Last-modified timestamp (defaults to now)
    """

    filename: str
    creator: Optional[str] = None
    created: Optional[datetime] = None
    modified: Optional[datetime] = None


@dataclass(frozen=True)
class TotalsSpec:
    """Footer aggregation metadata. Not computed by the engine."""

    kind: TotalsKind
    style: Optional[str] = None


@dataclass
class ColumnDef:
    """
    One exported column.

    Attributes:
        key: Stable identifier
        header: Header label written in row 1
        accessor: Function row -> value, takes precedence over ``path``
        path: Field name (mapping key or attribute) read from the row
        width: Column width in characters
        style: Registered style name or inline style for data cells
        num_fmt: Number format merged into the data cell style
        formatter: Name of a registered formatter applied to the raw value
        header_style: Registered style name or inline style for the header
        totals: Descriptive footer aggregation metadata
    """

    key: str
    header: str
    accessor: Optional[Callable[[Any], Any]] = None
    path: Optional[str] = None
    width: Optional[float] = None
    style: StyleRef = None
    num_fmt: Optional[str] = None
    formatter: Optional[str] = None
    header_style: StyleRef = None
    totals: Optional[TotalsSpec] = None

    def extract(self, row: Any) -> Any:
        """Read the raw value for this column; None when nothing is mapped."""
        if self.accessor is not None:
            return self.accessor(row)
        if self.path is not None:
            if isinstance(row, Mapping):
                return row.get(self.path)
            return getattr(row, self.path, None)
        return None


@dataclass(frozen=True)
class FreezeSpec:
    """Pane split: rows above ``row`` and columns left of ``col`` stay put."""

    row: Optional[int] = None
    col: Optional[int] = None


@dataclass(frozen=True)
class FooterSpec:
    """Footer row written after the data rows."""

    label: Optional[str] = None
    style: StyleRef = None


@dataclass(frozen=True)
class RowContext:
    """Passed to ``after_write_row``. ``row_index`` is zero-based."""

    row_index: int


BeforeWriteRow = Callable[[Any], Union[Any, Awaitable[Any]]]
AfterWriteRow = Callable[[RowContext], Union[None, Awaitable[None]]]


@dataclass
class SheetSpec:
    """
    One sheet of the workbook.

    Attributes:
        name: Sheet title
        columns: Column definitions, in output order
        freeze: Optional pane split
        auto_filter: Enable an auto-filter over the header row
        before_write_row: Row transform; a non-None result replaces the row
        after_write_row: Notification after each row is written
        footer: Optional footer row
    """

    name: str
    columns: list[ColumnDef] = field(default_factory=list)
    freeze: Optional[FreezeSpec] = None
    auto_filter: bool = False
    before_write_row: Optional[BeforeWriteRow] = None
    after_write_row: Optional[AfterWriteRow] = None
    footer: Optional[FooterSpec] = None


RowSource = Union[Iterable[Any], AsyncIterable[Any]]


@dataclass
class SheetData:
    """A sheet spec paired with its rows (sync iterable or async iterable)."""

    spec: SheetSpec
    rows: RowSource


@dataclass(frozen=True)
class SheetColumn:
    """Column as handed to a driver: styles already resolved."""

    key: str
    header: str
    width: Optional[float] = None
    style: Optional[Style] = None
    header_style: Optional[Style] = None
