"""
Domain layer: export specifications, cell values, driver contracts and
the exception hierarchy. Pure Python, no I/O.
"""

from fleetexport.domain.exceptions import (
    EmptyExportError,
    ExportConfigError,
    FleetExportError,
    UnsupportedOperationError,
    WorkbookFinalizedError,
)
from fleetexport.domain.models import (
    CellValue,
    ColumnDef,
    ExcelMode,
    FooterSpec,
    FreezeSpec,
    RichText,
    RichTextRun,
    RowContext,
    RunFont,
    SheetColumn,
    SheetData,
    SheetSpec,
    Style,
    StyleRef,
    TotalsKind,
    TotalsSpec,
    WorkbookSpec,
    normalize_cell_value,
)
from fleetexport.domain.writers import (
    DriverCapabilities,
    ExcelDriver,
    ExcelPlugin,
    SheetWriter,
    WorkbookWriter,
)

__all__ = [
    # Exceptions
    "FleetExportError",
    "ExportConfigError",
    "UnsupportedOperationError",
    "WorkbookFinalizedError",
    "EmptyExportError",
    # Models
    "CellValue",
    "ColumnDef",
    "ExcelMode",
    "FooterSpec",
    "FreezeSpec",
    "RichText",
    "RichTextRun",
    "RowContext",
    "RunFont",
    "SheetColumn",
    "SheetData",
    "SheetSpec",
    "Style",
    "StyleRef",
    "TotalsKind",
    "TotalsSpec",
    "WorkbookSpec",
    "normalize_cell_value",
    # Contracts
    "DriverCapabilities",
    "ExcelDriver",
    "ExcelPlugin",
    "SheetWriter",
    "WorkbookWriter",
]
