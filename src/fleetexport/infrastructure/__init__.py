"""
Infrastructure layer package.

Contains the I/O side of the engine:
- Excel drivers, registries and style translation (excel/)
- Configuration file loading (config/)
- Logging setup
"""

from fleetexport.infrastructure.config import ExportSettings, SettingsRepository
from fleetexport.infrastructure.excel import (
    FormatterRegistry,
    OpenpyxlDriver,
    RecordingDriver,
    StyleRegistry,
    default_formatters,
    default_styles,
)
from fleetexport.infrastructure.logging_config import setup_logging

__all__ = [
    # Config
    "ExportSettings",
    "SettingsRepository",
    # Excel
    "FormatterRegistry",
    "StyleRegistry",
    "OpenpyxlDriver",
    "RecordingDriver",
    "default_formatters",
    "default_styles",
    # Logging
    "setup_logging",
]
