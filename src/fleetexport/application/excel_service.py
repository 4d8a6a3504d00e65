"""
Excel service - workbook generation orchestrator.

Drives an ``ExcelDriver`` through a fixed lifecycle:

    before_workbook hooks
    create_workbook
    for each sheet, in declaration order:
        before_sheet hooks
        add_sheet -> write_header -> [auto-filter] -> [freeze]
        write_row * n -> [write_footer] -> commit
        after_sheet hooks
    finalize
    after_workbook hooks
    to_buffer (memory mode)

Column values go through the formatter registry, styles through the style
registry. Only those two degrade on failure; anything else raised by an
accessor, row source, hook or the driver aborts the call; the workbook
writer is then told to abort() so it can release temporary files.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, List, Optional, Sequence, Union

from fleetexport.application.row_source import iterate_rows
from fleetexport.domain.models import (
    CellValue,
    ColumnDef,
    ExcelMode,
    RowContext,
    SheetColumn,
    SheetData,
    SheetSpec,
    Style,
    StyleRef,
    WorkbookSpec,
    normalize_cell_value,
)
from fleetexport.domain.writers import ExcelDriver, ExcelPlugin, SheetWriter, WorkbookWriter
from fleetexport.infrastructure.excel.formatter_registry import FormatterRegistry
from fleetexport.infrastructure.excel.style_registry import StyleRegistry

logger = logging.getLogger(__name__)


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class ExcelService:
    """
    Orchestrates workbook generation over a driver.

    Args:
        driver: Backend that creates workbook writers
        styles: Style registry; an empty one is used when omitted, so only
            inline styles apply
        formatters: Formatter registry; column formatters are skipped when
            omitted
        plugins: Lifecycle plugins, called in registration order
        default_header_style: Header style for columns that set none
    """

    def __init__(
        self,
        driver: ExcelDriver,
        styles: Optional[StyleRegistry] = None,
        formatters: Optional[FormatterRegistry] = None,
        plugins: Optional[Sequence[ExcelPlugin]] = None,
        default_header_style: StyleRef = None,
    ):
        self.driver = driver
        self.styles = styles if styles is not None else StyleRegistry()
        self.formatters = formatters
        self.plugins: List[ExcelPlugin] = list(plugins or [])
        self.default_header_style = default_header_style

    async def generate(
        self,
        workbook: WorkbookSpec,
        sheets: Sequence[SheetData],
        mode: Union[ExcelMode, str] = ExcelMode.MEMORY,
    ) -> Optional[bytes]:
        """
        Generate a workbook.

        Args:
            workbook: Workbook metadata
            sheets: Sheet specs with their rows, written in order
            mode: memory or streaming

        Returns:
            The serialized document in memory mode, otherwise None. In
            streaming mode the document goes to the driver's output stream.
        """
        mode = ExcelMode(mode)
        logger.info(
            "Generating workbook %s (%s mode, %d sheet(s))",
            workbook.filename, mode.value, len(sheets),
        )

        writer: Optional[WorkbookWriter] = None
        try:
            await self._run_hooks("before_workbook", workbook)

            writer = await self.driver.create_workbook(workbook, mode)

            for sheet in sheets:
                await self._run_hooks("before_sheet", sheet.spec)
                row_count = await self._process_sheet(writer, sheet)
                await self._run_hooks("after_sheet", sheet.spec)
                logger.debug("Sheet %s: %d row(s)", sheet.spec.name, row_count)

            await writer.finalize()
            await self._run_hooks("after_workbook", workbook)

            result = None
            if mode is ExcelMode.MEMORY and writer.capabilities.buffer:
                result = await writer.to_buffer()
        except Exception:
            logger.exception("Workbook generation failed: %s", workbook.filename)
            if writer is not None:
                await self._abort(writer)
            raise

        logger.info("Workbook %s generated", workbook.filename)
        return result

    # ========================================================================
    # Sheets and rows
    # ========================================================================

    async def _process_sheet(self, writer: WorkbookWriter, sheet: SheetData) -> int:
        spec = sheet.spec
        caps = writer.capabilities

        columns = [self._sheet_column(col) for col in spec.columns]
        sheet_writer = await writer.add_sheet(spec.name, columns)

        await sheet_writer.write_header()

        if spec.auto_filter:
            if caps.auto_filter:
                await sheet_writer.enable_auto_filter()
            else:
                logger.debug("Auto-filter not supported by %s, skipped", type(writer).__name__)

        if spec.freeze is not None:
            if caps.freeze:
                await sheet_writer.freeze(spec.freeze.row, spec.freeze.col)
            else:
                logger.debug("Freeze panes not supported by %s, skipped", type(writer).__name__)

        row_index = 0
        async for row in iterate_rows(sheet.rows):
            await self._process_row(sheet_writer, spec, row, row_index)
            row_index += 1

        if spec.footer is not None:
            if caps.footer:
                values = self._footer_values(spec.columns, spec.footer.label)
                await sheet_writer.write_footer(values, self._resolve_style(spec.footer.style))
            else:
                logger.debug("Footer not supported by %s, skipped", type(writer).__name__)

        await sheet_writer.commit()
        return row_index

    async def _process_row(
        self,
        sheet_writer: SheetWriter,
        spec: SheetSpec,
        row: Any,
        row_index: int,
    ) -> None:
        if spec.before_write_row is not None:
            replacement = await _maybe_await(spec.before_write_row(row))
            if replacement is not None:
                row = replacement

        values = [self._cell_value(col, row) for col in spec.columns]
        styles = [self._cell_style(col) for col in spec.columns]

        await sheet_writer.write_row(values, styles)

        if spec.after_write_row is not None:
            await _maybe_await(spec.after_write_row(RowContext(row_index=row_index)))

    def _cell_value(self, column: ColumnDef, row: Any) -> CellValue:
        value = column.extract(row)
        if column.formatter and self.formatters is not None:
            value = self.formatters.apply(column.formatter, value)
        return normalize_cell_value(value)

    def _cell_style(self, column: ColumnDef) -> Optional[Style]:
        extra = {"num_fmt": column.num_fmt} if column.num_fmt else None
        return self._resolve_style(column.style, extra)

    def _sheet_column(self, column: ColumnDef) -> SheetColumn:
        header_style = column.header_style
        if header_style is None:
            header_style = self.default_header_style
        return SheetColumn(
            key=column.key,
            header=column.header,
            width=column.width,
            style=self._resolve_style(column.style),
            header_style=self._resolve_style(header_style),
        )

    def _resolve_style(self, style: StyleRef, extra: Optional[Style] = None) -> Optional[Style]:
        return self.styles.resolve(style, extra)

    @staticmethod
    def _footer_values(columns: Sequence[ColumnDef], label: Optional[str]) -> List[CellValue]:
        values: List[CellValue] = [""] * len(columns)
        if label and columns:
            values[0] = label
        return values

    # ========================================================================
    # Plugins
    # ========================================================================

    async def _run_hooks(self, hook_name: str, arg: Any) -> None:
        for plugin in self.plugins:
            hook = getattr(plugin, hook_name, None)
            if hook is None:
                continue
            await _maybe_await(hook(arg))

    # ========================================================================
    # Failure cleanup
    # ========================================================================

    async def _abort(self, writer: WorkbookWriter) -> None:
        """Release the writer's resources; the generation error still propagates."""
        try:
            await writer.abort()
        except Exception:
            logger.warning("Could not clean up aborted workbook %s", writer.meta.filename, exc_info=True)
