"""
Record export use case.

Turns a list of flat records (one mapping per row) into a single-sheet
workbook: one column per key of the first record, sized by a keyword
heuristic, with the header row filtered and frozen.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, List, Mapping, Optional, Sequence

from fleetexport.application.excel_service import ExcelService
from fleetexport.domain.exceptions import EmptyExportError, FleetExportError
from fleetexport.domain.models import ColumnDef, ExcelMode, FreezeSpec, SheetData, SheetSpec, WorkbookSpec

logger = logging.getLogger(__name__)

DEFAULT_SHEET_NAME = "Dữ liệu"
DEFAULT_WIDTH = 20

# (keywords, width); first match wins, keys are compared lower-cased
WIDTH_RULES = [
    (("tên", "name"), 25),
    (("địa chỉ", "address"), 40),
    (("email",), 30),
    (("điện thoại", "phone"), 15),
    (("mã số", "tax"), 15),
    (("trạng thái", "status"), 15),
    (("ngày", "date"), 15),
    (("mô tả", "description"), 35),
]


def column_width_for(name: str) -> int:
    """Column width guessed from a column name."""
    lowered = name.lower()
    for keywords, width in WIDTH_RULES:
        if any(keyword in lowered for keyword in keywords):
            return width
    return DEFAULT_WIDTH


def columns_from_record(record: Mapping[str, Any]) -> List[ColumnDef]:
    """One column per key, header = key, in key order."""
    return [
        ColumnDef(key=str(key), header=str(key), path=key, width=column_width_for(str(key)))
        for key in record
    ]


def build_export_filename(prefix: str, on: Optional[date] = None, extension: str = "xlsx") -> str:
    """
    Dated download name, e.g. ``danh-sach-khach-hang-02-01-2024.xlsx``.

    Args:
        prefix: Leading part of the name
        on: Date stamped into the name (defaults to today)
        extension: File extension without the dot
    """
    if on is None:
        on = date.today()
    elif isinstance(on, datetime):
        on = on.date()
    return f"{prefix}-{on.strftime('%d-%m-%Y')}.{extension}"


async def export_records(
    service: ExcelService,
    records: Sequence[Mapping[str, Any]],
    filename: str,
    sheet_name: str = DEFAULT_SHEET_NAME,
    creator: Optional[str] = None,
    columns: Optional[List[ColumnDef]] = None,
    auto_filter: bool = True,
    freeze_header: bool = True,
) -> bytes:
    """
    Export records to an in-memory workbook.

    Args:
        service: Configured ExcelService
        records: Non-empty list of mappings
        filename: Workbook filename metadata
        sheet_name: Name of the single sheet
        creator: Workbook author
        columns: Explicit columns; derived from the first record when omitted
        auto_filter: Filter over the header row
        freeze_header: Keep the header row visible while scrolling

    Returns:
        The .xlsx document bytes

    Raises:
        EmptyExportError: No records were given
        FleetExportError: Generation failed
    """
    if not records:
        raise EmptyExportError()

    if columns is None:
        columns = columns_from_record(records[0])

    spec = SheetSpec(
        name=sheet_name,
        columns=columns,
        auto_filter=auto_filter,
        freeze=FreezeSpec(row=1) if freeze_header else None,
    )

    try:
        buffer = await service.generate(
            WorkbookSpec(filename=filename, creator=creator),
            [SheetData(spec=spec, rows=records)],
            ExcelMode.MEMORY,
        )
    except FleetExportError:
        raise
    except Exception as e:
        logger.error(
            "Excel export error: %s (file=%s, sheet=%s, rows=%d)",
            e, filename, sheet_name, len(records),
        )
        raise FleetExportError(
            "Failed to generate Excel file",
            cause=e,
            details={"filename": filename, "sheet": sheet_name, "rows": len(records)},
        ) from e

    if not buffer:
        raise FleetExportError("Failed to generate Excel buffer", details={"filename": filename})

    return buffer
