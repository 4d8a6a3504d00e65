"""
Driver contracts.

The orchestrator programs against these abstract classes only. A concrete
backend supplies an ``ExcelDriver`` that creates ``WorkbookWriter`` objects,
which in turn hand out one ``SheetWriter`` per sheet.

Optional operations (footer, auto-filter, freeze, buffer, stream) are
advertised through ``DriverCapabilities`` rather than discovered by probing
for methods. Calling an operation that is not advertised raises
``UnsupportedOperationError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, BinaryIO, Optional, Sequence, Union

from fleetexport.domain.exceptions import UnsupportedOperationError
from fleetexport.domain.models import (
    CellValue,
    ExcelMode,
    SheetColumn,
    SheetSpec,
    Style,
    WorkbookSpec,
)


@dataclass(frozen=True)
class DriverCapabilities:
    """What a workbook writer (and its sheet writers) can do."""

    footer: bool = False
    auto_filter: bool = False
    freeze: bool = False
    buffer: bool = False  # to_buffer() available
    stream: bool = False  # get_stream() available


class SheetWriter(ABC):
    """Writes one sheet: header, rows, optional footer, then commit."""

    @abstractmethod
    async def write_header(self) -> None:
        """Write the header row (always row 1)."""

    @abstractmethod
    async def write_row(
        self,
        values: Sequence[CellValue],
        styles: Optional[Sequence[Optional[Style]]] = None,
    ) -> None:
        """Append a data row; ``styles`` is aligned with ``values``."""

    async def write_footer(self, values: Sequence[CellValue], style: Optional[Style] = None) -> None:
        raise UnsupportedOperationError("write_footer", type(self).__name__)

    async def enable_auto_filter(self) -> None:
        raise UnsupportedOperationError("enable_auto_filter", type(self).__name__)

    async def freeze(self, row: Optional[int] = None, col: Optional[int] = None) -> None:
        raise UnsupportedOperationError("freeze", type(self).__name__)

    @abstractmethod
    async def commit(self) -> None:
        """Flush and close the sheet. No writes are accepted afterwards."""


class WorkbookWriter(ABC):
    """A workbook being generated in one mode."""

    def __init__(self, meta: WorkbookSpec, mode: ExcelMode):
        self.meta = meta
        self.mode = mode

    @property
    @abstractmethod
    def capabilities(self) -> DriverCapabilities:
        """Capabilities of this writer and its sheet writers."""

    @abstractmethod
    async def add_sheet(self, name: str, columns: Sequence[SheetColumn]) -> SheetWriter:
        """Create the next sheet, in declaration order."""

    @abstractmethod
    async def finalize(self) -> None:
        """Close the workbook. Calling it again is a no-op."""

    async def abort(self) -> None:
        """
        Discard a workbook whose generation failed.

        Releases whatever the writer holds outside the process (temporary
        files, self-owned output). No writes are accepted afterwards.
        """

    async def to_buffer(self) -> bytes:
        """Serialized document (memory mode)."""
        raise UnsupportedOperationError("to_buffer", type(self).__name__, self.mode.value)

    async def get_stream(self) -> BinaryIO:
        """Output stream the document was written to (streaming mode)."""
        raise UnsupportedOperationError("get_stream", type(self).__name__, self.mode.value)


class ExcelDriver(ABC):
    """Factory for workbook writers of one backend."""

    @abstractmethod
    async def create_workbook(self, meta: WorkbookSpec, mode: ExcelMode) -> WorkbookWriter:
        """Start a new workbook in ``mode``."""


HookResult = Union[None, Awaitable[None]]


class ExcelPlugin:
    """
    Workbook/sheet lifecycle extension point.

    Subclass and override any of the four hooks; the defaults do nothing.
    Hooks may be plain methods or coroutines.
    """

    def before_workbook(self, meta: WorkbookSpec) -> HookResult:
        return None

    def before_sheet(self, sheet: SheetSpec) -> HookResult:
        return None

    def after_sheet(self, sheet: SheetSpec) -> HookResult:
        return None

    def after_workbook(self, meta: WorkbookSpec) -> HookResult:
        return None
