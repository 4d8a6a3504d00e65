"""
Exception hierarchy for the export engine.

    FleetExportError (base)
    ├── ExportConfigError       - settings / column layout files
    ├── UnsupportedOperationError - writer asked for a capability it lacks
    ├── WorkbookFinalizedError  - write attempted after finalize()
    └── EmptyExportError        - record export received no records

Resolution problems inside the formatter and style registries are never
raised; they are logged and degrade to the unformatted / unstyled value.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class FleetExportError(Exception):
    """
    Base exception for the export engine.

    Attributes:
        message: Human readable error message
        cause: Underlying exception, if any
        details: Extra structured context
    """

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Return the error as a plain dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "details": self.details,
        }


class ExportConfigError(FleetExportError):
    """Settings or column layout could not be loaded or validated."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        details = {"path": path} if path else {}
        super().__init__(message, cause=cause, details=details)
        self.path = path


class UnsupportedOperationError(FleetExportError):
    """A writer was asked for an operation its capabilities do not include."""

    def __init__(self, operation: str, writer: str, mode: Optional[str] = None):
        message = f"{writer} does not support {operation}"
        if mode:
            message += f" in {mode} mode"
        super().__init__(message, details={"operation": operation, "writer": writer, "mode": mode})
        self.operation = operation


class WorkbookFinalizedError(FleetExportError):
    """The workbook has already been finalized and cannot be written to."""


class EmptyExportError(FleetExportError):
    """There is nothing to export."""

    def __init__(self, message: str = "No data to export"):
        super().__init__(message)
