"""
Shared test configuration.

Puts ``src`` on the import path and provides registries, the recording
driver and a service wired to it.
"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parents[1] / "src"))

from fleetexport.application.excel_service import ExcelService  # noqa: E402
from fleetexport.infrastructure.excel import (  # noqa: E402
    FormatterRegistry,
    RecordingDriver,
    StyleRegistry,
    default_formatters,
    default_styles,
)


@pytest.fixture
def styles() -> StyleRegistry:
    return default_styles(StyleRegistry())


@pytest.fixture
def formatters() -> FormatterRegistry:
    return default_formatters(FormatterRegistry())


@pytest.fixture
def recording_driver() -> RecordingDriver:
    return RecordingDriver()


@pytest.fixture
def service(recording_driver, styles, formatters) -> ExcelService:
    return ExcelService(driver=recording_driver, styles=styles, formatters=formatters)
