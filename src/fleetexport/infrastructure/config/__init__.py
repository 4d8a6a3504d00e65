"""Export configuration: settings model, column layouts and their repository."""

from fleetexport.infrastructure.config.models import ColumnConfig, ExportSettings
from fleetexport.infrastructure.config.repository import (
    SETTINGS_FILE,
    SettingsRepository,
    load_column_file,
    strip_json_comments,
)

__all__ = [
    "ColumnConfig",
    "ExportSettings",
    "SETTINGS_FILE",
    "SettingsRepository",
    "load_column_file",
    "strip_json_comments",
]
