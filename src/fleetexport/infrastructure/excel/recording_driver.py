"""
Recording driver.

Performs no serialization. Every call made on the driver, its workbook
writers and sheet writers is appended to ``RecordingDriver.events`` as a
typed event, so tests can assert on orchestration order and on the exact
values/styles handed to the backend.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
from typing import BinaryIO, List, Optional, Sequence, Tuple, Union

from fleetexport.domain.exceptions import WorkbookFinalizedError
from fleetexport.domain.models import CellValue, ExcelMode, SheetColumn, Style, WorkbookSpec
from fleetexport.domain.writers import DriverCapabilities, ExcelDriver, SheetWriter, WorkbookWriter

FAKE_BUFFER = b"fake-excel-data"


# ============================================================================
# Events
# ============================================================================


@dataclass(frozen=True)
class CreateWorkbookEvent:
    meta: WorkbookSpec
    mode: ExcelMode
    type: str = field(default="create_workbook", init=False)


@dataclass(frozen=True)
class AddSheetEvent:
    name: str
    columns: Tuple[SheetColumn, ...]
    type: str = field(default="add_sheet", init=False)


@dataclass(frozen=True)
class WriteHeaderEvent:
    type: str = field(default="write_header", init=False)


@dataclass(frozen=True)
class WriteRowEvent:
    values: Tuple[CellValue, ...]
    styles: Optional[Tuple[Optional[Style], ...]] = None
    type: str = field(default="write_row", init=False)


@dataclass(frozen=True)
class WriteFooterEvent:
    values: Tuple[CellValue, ...]
    style: Optional[Style] = None
    type: str = field(default="write_footer", init=False)


@dataclass(frozen=True)
class EnableAutoFilterEvent:
    type: str = field(default="enable_auto_filter", init=False)


@dataclass(frozen=True)
class FreezeEvent:
    row: Optional[int] = None
    col: Optional[int] = None
    type: str = field(default="freeze", init=False)


@dataclass(frozen=True)
class CommitEvent:
    type: str = field(default="commit", init=False)


@dataclass(frozen=True)
class FinalizeEvent:
    type: str = field(default="finalize", init=False)


@dataclass(frozen=True)
class AbortEvent:
    type: str = field(default="abort", init=False)


ExcelEvent = Union[
    CreateWorkbookEvent,
    AddSheetEvent,
    WriteHeaderEvent,
    WriteRowEvent,
    WriteFooterEvent,
    EnableAutoFilterEvent,
    FreezeEvent,
    CommitEvent,
    FinalizeEvent,
    AbortEvent,
]


# ============================================================================
# Driver / writers
# ============================================================================


class RecordingDriver(ExcelDriver):
    """
    Event-log driver for tests.

    Args:
        capabilities: Override what created writers advertise. By default
            they behave like the production driver for the requested mode.
    """

    def __init__(self, capabilities: Optional[DriverCapabilities] = None):
        self.events: List[ExcelEvent] = []
        self.capabilities = capabilities

    async def create_workbook(self, meta: WorkbookSpec, mode: ExcelMode) -> WorkbookWriter:
        mode = ExcelMode(mode)
        self.events.append(CreateWorkbookEvent(meta=meta, mode=mode))
        return RecordingWorkbookWriter(meta, mode, self.events, self.capabilities)

    def event_types(self) -> List[str]:
        return [event.type for event in self.events]

    def of_type(self, event_type: str) -> List[ExcelEvent]:
        return [event for event in self.events if event.type == event_type]

    def clear(self) -> None:
        self.events.clear()


class RecordingWorkbookWriter(WorkbookWriter):
    def __init__(
        self,
        meta: WorkbookSpec,
        mode: ExcelMode,
        events: List[ExcelEvent],
        capabilities: Optional[DriverCapabilities] = None,
    ):
        super().__init__(meta, mode)
        self.events = events
        self._capabilities = capabilities
        self._finalized = False

    @property
    def capabilities(self) -> DriverCapabilities:
        if self._capabilities is not None:
            return self._capabilities
        memory = self.mode is ExcelMode.MEMORY
        return DriverCapabilities(
            footer=True,
            auto_filter=True,
            freeze=True,
            buffer=memory,
            stream=not memory,
        )

    async def add_sheet(self, name: str, columns: Sequence[SheetColumn]) -> SheetWriter:
        if self._finalized:
            raise WorkbookFinalizedError(f"Cannot add sheet {name!r}: workbook already finalized")
        self.events.append(AddSheetEvent(name=name, columns=tuple(columns)))
        return RecordingSheetWriter(self.events)

    async def finalize(self) -> None:
        self.events.append(FinalizeEvent())
        self._finalized = True

    async def abort(self) -> None:
        self.events.append(AbortEvent())
        self._finalized = True

    async def to_buffer(self) -> bytes:
        if not self.capabilities.buffer:
            return await super().to_buffer()
        return FAKE_BUFFER

    async def get_stream(self) -> BinaryIO:
        if not self.capabilities.stream:
            return await super().get_stream()
        return BytesIO(FAKE_BUFFER)


class RecordingSheetWriter(SheetWriter):
    def __init__(self, events: List[ExcelEvent]):
        self.events = events

    async def write_header(self) -> None:
        self.events.append(WriteHeaderEvent())

    async def write_row(
        self,
        values: Sequence[CellValue],
        styles: Optional[Sequence[Optional[Style]]] = None,
    ) -> None:
        self.events.append(
            WriteRowEvent(
                values=tuple(values),
                styles=tuple(styles) if styles is not None else None,
            )
        )

    async def write_footer(self, values: Sequence[CellValue], style: Optional[Style] = None) -> None:
        self.events.append(WriteFooterEvent(values=tuple(values), style=style))

    async def enable_auto_filter(self) -> None:
        self.events.append(EnableAutoFilterEvent())

    async def freeze(self, row: Optional[int] = None, col: Optional[int] = None) -> None:
        self.events.append(FreezeEvent(row=row, col=col))

    async def commit(self) -> None:
        self.events.append(CommitEvent())
