"""
Application layer: the ExcelService orchestrator and the use cases built
on it.
"""

from fleetexport.application.container import Container
from fleetexport.application.excel_service import ExcelService
from fleetexport.application.record_export import (
    build_export_filename,
    column_width_for,
    columns_from_record,
    export_records,
)
from fleetexport.application.row_source import iterate_rows

__all__ = [
    "Container",
    "ExcelService",
    "build_export_filename",
    "column_width_for",
    "columns_from_record",
    "export_records",
    "iterate_rows",
]
