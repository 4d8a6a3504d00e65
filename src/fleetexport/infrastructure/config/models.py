"""
Export configuration models.

``ExportSettings`` holds the engine-wide defaults read from
``export_settings.json``; ``ColumnConfig`` is one entry of a column layout
file used by the CLI.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fleetexport.domain.models import ColumnDef, ExcelMode

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ExportSettings(BaseModel):
    """
    Engine-wide export defaults.

    Unknown keys are kept so a settings file can carry host-specific
    entries alongside these.
    """

    model_config = ConfigDict(extra="allow")

    creator: str = Field(default="ExcelService", description="Author written into workbook properties")
    default_mode: ExcelMode = Field(default=ExcelMode.MEMORY, description="Generation mode when none is requested")
    default_column_width: float = Field(
        default=15,
        description="Width for columns that set none",
        ge=1,
        le=255,
    )
    default_header_style: Optional[str] = Field(
        default="header",
        description="Registered style applied to headers of columns without a header_style",
    )
    auto_filter: bool = Field(default=True, description="Filter the header row in record exports")
    freeze_header: bool = Field(default=True, description="Freeze the header row in record exports")
    log_level: str = Field(default="INFO", description="Console log level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept standard logging level names, case-insensitively."""
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)


StyleConfig = Union[str, Dict[str, Any], None]


class ColumnConfig(BaseModel):
    """One column of a layout file."""

    model_config = ConfigDict(extra="forbid")

    key: str = Field(..., min_length=1, description="Column identifier")
    header: Optional[str] = Field(None, description="Header label (defaults to key)")
    path: Optional[str] = Field(None, description="Record field to read (defaults to key)")
    width: Optional[float] = Field(None, ge=1, le=255, description="Column width")
    style: StyleConfig = Field(None, description="Style name or inline style for data cells")
    num_fmt: Optional[str] = Field(None, description="Number format merged into the data style")
    formatter: Optional[str] = Field(None, description="Registered formatter name")
    header_style: StyleConfig = Field(None, description="Style name or inline style for the header")

    def to_column_def(self) -> ColumnDef:
        return ColumnDef(
            key=self.key,
            header=self.header if self.header is not None else self.key,
            path=self.path if self.path is not None else self.key,
            width=self.width,
            style=self.style,
            num_fmt=self.num_fmt,
            formatter=self.formatter,
            header_style=self.header_style,
        )


def to_column_defs(configs: List[ColumnConfig]) -> List[ColumnDef]:
    return [config.to_column_def() for config in configs]
