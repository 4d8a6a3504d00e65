"""
Excel Export Package.

Registries, style translation and the two driver backends.

Usage:
    from fleetexport.infrastructure.excel import (
        FormatterRegistry, StyleRegistry, OpenpyxlDriver,
        default_formatters, default_styles,
    )

    styles = default_styles(StyleRegistry())
    formatters = default_formatters(FormatterRegistry())
    driver = OpenpyxlDriver()

Modules:
    formatter_registry.py - Named value formatters
    style_registry.py     - Named styles with deep-merge resolution
    excel_styles.py       - Style record -> openpyxl objects
    openpyxl_driver.py    - Production driver (memory + streaming)
    recording_driver.py   - Event-log driver for tests
"""

from fleetexport.infrastructure.excel.formatter_registry import (
    DEFAULT_FORMATTERS,
    FormatterRegistry,
    default_formatters,
)
from fleetexport.infrastructure.excel.openpyxl_driver import (
    MemoryWorkbookWriter,
    OpenpyxlDriver,
    StreamingWorkbookWriter,
)
from fleetexport.infrastructure.excel.recording_driver import RecordingDriver
from fleetexport.infrastructure.excel.style_registry import (
    DEFAULT_STYLES,
    StyleRegistry,
    deep_merge,
    default_styles,
)

__all__ = [
    # Registries
    "FormatterRegistry",
    "StyleRegistry",
    "DEFAULT_FORMATTERS",
    "DEFAULT_STYLES",
    "default_formatters",
    "default_styles",
    "deep_merge",
    # Drivers
    "OpenpyxlDriver",
    "MemoryWorkbookWriter",
    "StreamingWorkbookWriter",
    "RecordingDriver",
]
