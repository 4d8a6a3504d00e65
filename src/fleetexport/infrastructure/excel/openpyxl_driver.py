"""
openpyxl driver.

Production backend with two workbook writers:

    MemoryWorkbookWriter     - regular openpyxl Workbook, serialized into a
                               byte buffer by to_buffer()
    StreamingWorkbookWriter  - write-only Workbook; each sheet spills its
                               rows to a temporary file as they arrive and
                               the document is zipped into the output
                               stream on finalize()

Write-only sheets emit their <sheetView> and <cols> elements before the
first row, so the streaming sheet writer holds the header row back until
the first data row (or commit). That keeps freeze() valid right after
write_header() without buffering more than the header.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from datetime import datetime, timezone
from io import BytesIO
from typing import Any, BinaryIO, List, Optional, Sequence
from zipfile import ZIP_DEFLATED, ZipFile

from openpyxl import Workbook
from openpyxl.cell import WriteOnlyCell
from openpyxl.utils import get_column_letter
from openpyxl.writer.excel import ExcelWriter

from fleetexport.domain.exceptions import UnsupportedOperationError, WorkbookFinalizedError
from fleetexport.domain.models import CellValue, ExcelMode, SheetColumn, Style, WorkbookSpec
from fleetexport.domain.writers import DriverCapabilities, ExcelDriver, SheetWriter, WorkbookWriter
from fleetexport.infrastructure.excel.excel_styles import (
    CellStyleCache,
    autofilter_ref,
    freeze_ref,
    to_excel_value,
    to_naive_utc,
)

logger = logging.getLogger(__name__)

DEFAULT_CREATOR = "ExcelService"
DEFAULT_COLUMN_WIDTH = 15


def _bind(cell, value: CellValue) -> None:
    """Store a value; strings stay literal text even when they start with '='."""
    cell.value = to_excel_value(value)
    if isinstance(value, str) and cell.data_type == "f":
        cell.data_type = "s"


def _style_at(styles: Optional[Sequence[Optional[Style]]], index: int) -> Optional[Style]:
    if not styles or index >= len(styles):
        return None
    return styles[index]


# ============================================================================
# Driver
# ============================================================================


class OpenpyxlDriver(ExcelDriver):
    """
    Creates openpyxl-backed workbook writers.

    Args:
        stream: Binary output for streaming mode. When omitted, streaming
            workbooks spool to an anonymous temporary file.
        default_column_width: Width for columns that set none
        default_creator: Creator used when the workbook spec has none
    """

    def __init__(
        self,
        stream: Optional[BinaryIO] = None,
        default_column_width: float = DEFAULT_COLUMN_WIDTH,
        default_creator: str = DEFAULT_CREATOR,
    ):
        self.stream = stream
        self.default_column_width = default_column_width
        self.default_creator = default_creator

    async def create_workbook(self, meta: WorkbookSpec, mode: ExcelMode) -> WorkbookWriter:
        mode = ExcelMode(mode)
        if mode is ExcelMode.MEMORY:
            return MemoryWorkbookWriter(meta, self.default_column_width, self.default_creator)
        return StreamingWorkbookWriter(
            meta, self.stream, self.default_column_width, self.default_creator
        )


# ============================================================================
# Shared workbook plumbing
# ============================================================================


class _OpenpyxlWorkbookWriter(WorkbookWriter):
    """Workbook properties, sheet creation and saving shared by both modes."""

    write_only = False

    def __init__(
        self,
        meta: WorkbookSpec,
        mode: ExcelMode,
        default_column_width: float,
        default_creator: str,
    ):
        super().__init__(meta, mode)
        self.default_column_width = default_column_width
        self.workbook = Workbook(write_only=self.write_only)
        if not self.write_only:
            # Drop the implicit "Sheet"; sheets come from add_sheet only
            self.workbook.remove(self.workbook.active)

        now = datetime.now(tz=timezone.utc).replace(tzinfo=None)
        props = self.workbook.properties
        props.creator = meta.creator or default_creator
        props.created = to_naive_utc(meta.created) if meta.created else now
        props.modified = to_naive_utc(meta.modified) if meta.modified else now

        self.style_cache = CellStyleCache()
        self._finalized = False

    def _create_worksheet(self, name: str, columns: Sequence[SheetColumn]):
        if self._finalized:
            raise WorkbookFinalizedError(f"Cannot add sheet {name!r}: workbook already finalized")

        ws = self.workbook.create_sheet(title=name)
        for idx, column in enumerate(columns, start=1):
            width = column.width or self.default_column_width
            ws.column_dimensions[get_column_letter(idx)].width = width
        logger.debug("Added sheet %s with %d columns", name, len(columns))
        return ws

    def _save(self, target: BinaryIO) -> None:
        """
        Serialize the workbook into ``target``.

        Mirrors openpyxl's save_workbook() without overwriting the
        modified timestamp, so the metadata round-trips as given.
        """
        if not self.workbook.worksheets:
            # A document needs at least one visible sheet
            self.workbook.create_sheet()
        archive = ZipFile(target, "w", ZIP_DEFLATED, allowZip64=True)
        ExcelWriter(self.workbook, archive).save()


class _OpenpyxlSheetWriter(SheetWriter):
    def __init__(self, ws, columns: Sequence[SheetColumn], style_cache: CellStyleCache):
        self.ws = ws
        self.columns = list(columns)
        self.style_cache = style_cache
        self._committed = False

    def _ensure_open(self) -> None:
        if self._committed:
            raise WorkbookFinalizedError(f"Sheet {self.ws.title!r} already committed")

    async def enable_auto_filter(self) -> None:
        self._ensure_open()
        self.ws.auto_filter.ref = autofilter_ref(len(self.columns))


# ============================================================================
# Memory mode
# ============================================================================


class MemorySheetWriter(_OpenpyxlSheetWriter):
    """Writes cells straight into an in-memory worksheet."""

    def __init__(self, ws, columns: Sequence[SheetColumn], style_cache: CellStyleCache):
        super().__init__(ws, columns, style_cache)
        self._next_row = 1

    async def write_header(self) -> None:
        self._ensure_open()
        for idx, column in enumerate(self.columns, start=1):
            cell = self.ws.cell(row=1, column=idx)
            _bind(cell, column.header)
            cell_style = self.style_cache.get(column.header_style)
            if cell_style:
                cell_style.apply(cell)
        self._next_row = max(self._next_row, 2)

    def _write_cells(self, values: Sequence[CellValue], styles: List[Optional[Style]]) -> None:
        row = self._next_row
        for idx, value in enumerate(values, start=1):
            cell = self.ws.cell(row=row, column=idx)
            _bind(cell, value)
            cell_style = self.style_cache.get(_style_at(styles, idx - 1))
            if cell_style:
                cell_style.apply(cell)
        self._next_row += 1

    async def write_row(
        self,
        values: Sequence[CellValue],
        styles: Optional[Sequence[Optional[Style]]] = None,
    ) -> None:
        self._ensure_open()
        self._write_cells(values, list(styles or []))

    async def write_footer(self, values: Sequence[CellValue], style: Optional[Style] = None) -> None:
        self._ensure_open()
        self._write_cells(values, [style] * len(values))

    async def freeze(self, row: Optional[int] = None, col: Optional[int] = None) -> None:
        self._ensure_open()
        self.ws.freeze_panes = freeze_ref(row, col)

    async def commit(self) -> None:
        self._committed = True


class MemoryWorkbookWriter(_OpenpyxlWorkbookWriter):
    """Whole document in memory; to_buffer() returns the .xlsx bytes."""

    write_only = False

    def __init__(
        self,
        meta: WorkbookSpec,
        default_column_width: float = DEFAULT_COLUMN_WIDTH,
        default_creator: str = DEFAULT_CREATOR,
    ):
        super().__init__(meta, ExcelMode.MEMORY, default_column_width, default_creator)

    @property
    def capabilities(self) -> DriverCapabilities:
        return DriverCapabilities(footer=True, auto_filter=True, freeze=True, buffer=True)

    async def add_sheet(self, name: str, columns: Sequence[SheetColumn]) -> SheetWriter:
        ws = self._create_worksheet(name, columns)
        return MemorySheetWriter(ws, columns, self.style_cache)

    async def finalize(self) -> None:
        self._finalized = True

    async def to_buffer(self) -> bytes:
        buffer = BytesIO()
        await asyncio.to_thread(self._save, buffer)
        return buffer.getvalue()


# ============================================================================
# Streaming mode
# ============================================================================


class StreamingSheetWriter(_OpenpyxlSheetWriter):
    """Appends rows to a write-only worksheet as they arrive."""

    def __init__(self, ws, columns: Sequence[SheetColumn], style_cache: CellStyleCache):
        super().__init__(ws, columns, style_cache)
        self._header_pending = False
        self._rows_started = False

    def _cell(self, value: CellValue, style: Optional[Style]) -> WriteOnlyCell:
        cell = WriteOnlyCell(self.ws)
        _bind(cell, value)
        cell_style = self.style_cache.get(style)
        if cell_style:
            cell_style.apply(cell)
        return cell

    def _append(self, cells: List[Any]) -> None:
        self._flush_header()
        self.ws.append(cells)

    def _flush_header(self) -> None:
        if self._header_pending:
            self._header_pending = False
            self.ws.append(
                [self._cell(column.header, column.header_style) for column in self.columns]
            )
        self._rows_started = True

    async def write_header(self) -> None:
        self._ensure_open()
        if self._rows_started:
            raise UnsupportedOperationError("write_header after rows", type(self).__name__, "streaming")
        self._header_pending = True

    async def write_row(
        self,
        values: Sequence[CellValue],
        styles: Optional[Sequence[Optional[Style]]] = None,
    ) -> None:
        self._ensure_open()
        self._append([self._cell(value, _style_at(styles, idx)) for idx, value in enumerate(values)])

    async def write_footer(self, values: Sequence[CellValue], style: Optional[Style] = None) -> None:
        self._ensure_open()
        self._append([self._cell(value, style) for value in values])

    async def freeze(self, row: Optional[int] = None, col: Optional[int] = None) -> None:
        self._ensure_open()
        if self._rows_started:
            raise UnsupportedOperationError("freeze after rows", type(self).__name__, "streaming")
        self.ws.freeze_panes = freeze_ref(row, col)

    async def commit(self) -> None:
        if self._committed:
            return
        if self._header_pending:
            self._flush_header()
        self.ws.close()
        self._committed = True

    def discard(self) -> None:
        """Stop writing and delete the sheet's temporary file, if it has one."""
        self._committed = True
        self._header_pending = False
        rows = getattr(self.ws, "_rows", None)
        if rows is not None:
            rows.close()
        ws_writer = getattr(self.ws, "_writer", None)
        if ws_writer is None:
            return
        ws_writer.close()
        if os.path.exists(ws_writer.out):
            os.remove(ws_writer.out)
            logger.debug("Removed temporary file for sheet %s", self.ws.title)


class StreamingWorkbookWriter(_OpenpyxlWorkbookWriter):
    """
    Write-only workbook zipped into an output stream on finalize().

    Peak memory is bounded by one row per sheet; rows live in openpyxl's
    per-sheet temporary files until the archive is written. Nothing reaches
    the output stream before finalize(): the .xlsx container is a zip whose
    sheet entries can only be written once each sheet is complete, so
    callers serving the document over HTTP should start sending after
    finalize() rather than expect bytes to flow while rows are written.

    A failed export must call abort(), which deletes the temporary files
    and closes a self-owned spool file.
    """

    write_only = True

    def __init__(
        self,
        meta: WorkbookSpec,
        stream: Optional[BinaryIO] = None,
        default_column_width: float = DEFAULT_COLUMN_WIDTH,
        default_creator: str = DEFAULT_CREATOR,
    ):
        super().__init__(meta, ExcelMode.STREAMING, default_column_width, default_creator)
        self._owns_stream = stream is None
        self._stream: BinaryIO = stream if stream is not None else tempfile.TemporaryFile()
        self._sheets: List[StreamingSheetWriter] = []

    @property
    def capabilities(self) -> DriverCapabilities:
        return DriverCapabilities(footer=True, auto_filter=True, freeze=True, stream=True)

    async def add_sheet(self, name: str, columns: Sequence[SheetColumn]) -> SheetWriter:
        ws = self._create_worksheet(name, columns)
        sheet_writer = StreamingSheetWriter(ws, columns, self.style_cache)
        self._sheets.append(sheet_writer)
        return sheet_writer

    async def finalize(self) -> None:
        if self._finalized:
            return
        await asyncio.to_thread(self._save, self._stream)
        self._finalized = True
        logger.debug("Streaming workbook %s written", self.meta.filename)

    async def abort(self) -> None:
        for sheet_writer in self._sheets:
            sheet_writer.discard()
        self._sheets.clear()
        self._finalized = True
        if self._owns_stream and not self._stream.closed:
            self._stream.close()
        logger.debug("Streaming workbook %s aborted", self.meta.filename)

    async def get_stream(self) -> BinaryIO:
        """The output stream; a self-owned spool file is rewound for reading."""
        if self._owns_stream and self._finalized:
            self._stream.seek(0)
        return self._stream
