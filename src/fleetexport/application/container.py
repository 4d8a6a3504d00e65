"""
Dependency injection container for the application.

Builds the long-lived registries, the driver and the ExcelService once and
hands out the same instances afterwards.
"""

import logging
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence

from fleetexport.application.excel_service import ExcelService
from fleetexport.domain.writers import ExcelDriver, ExcelPlugin
from fleetexport.infrastructure.config import ExportSettings, SettingsRepository
from fleetexport.infrastructure.excel import (
    FormatterRegistry,
    OpenpyxlDriver,
    StyleRegistry,
    default_formatters,
    default_styles,
)

logger = logging.getLogger(__name__)


class Container:
    """
    Dependency injection container.

    Manages the creation and lifecycle of the export engine's components.
    """

    def __init__(
        self,
        config_dir: Optional[Path] = None,
        settings: Optional[ExportSettings] = None,
        stream: Optional[BinaryIO] = None,
        plugins: Optional[Sequence[ExcelPlugin]] = None,
    ):
        """
        Initialize the container.

        Args:
            config_dir: Directory holding export_settings.json
            settings: Settings override; loaded from config_dir when omitted
            stream: Output stream handed to the production driver
            plugins: Plugins registered on the service
        """
        self.config_dir = Path(config_dir) if config_dir else Path.cwd() / "config"
        self.stream = stream
        self.plugins: List[ExcelPlugin] = list(plugins or [])

        self._settings = settings
        self._settings_repository: Optional[SettingsRepository] = None
        self._styles: Optional[StyleRegistry] = None
        self._formatters: Optional[FormatterRegistry] = None
        self._driver: Optional[ExcelDriver] = None
        self._excel_service: Optional[ExcelService] = None

    @property
    def settings_repository(self) -> SettingsRepository:
        """Get the settings repository."""
        if self._settings_repository is None:
            self._settings_repository = SettingsRepository(self.config_dir)
        return self._settings_repository

    @property
    def settings(self) -> ExportSettings:
        """Get the export settings (file or defaults)."""
        if self._settings is None:
            self._settings = self.settings_repository.load_settings()
        return self._settings

    @property
    def styles(self) -> StyleRegistry:
        """Get the style registry with the default catalogue."""
        if self._styles is None:
            self._styles = default_styles(StyleRegistry())
        return self._styles

    @property
    def formatters(self) -> FormatterRegistry:
        """Get the formatter registry with the default formatters."""
        if self._formatters is None:
            self._formatters = default_formatters(FormatterRegistry())
        return self._formatters

    @property
    def driver(self) -> ExcelDriver:
        """Get the production openpyxl driver."""
        if self._driver is None:
            self._driver = OpenpyxlDriver(
                stream=self.stream,
                default_column_width=self.settings.default_column_width,
                default_creator=self.settings.creator,
            )
        return self._driver

    @property
    def excel_service(self) -> ExcelService:
        """Get the ExcelService wired to the registries and driver."""
        if self._excel_service is None:
            self._excel_service = ExcelService(
                driver=self.driver,
                styles=self.styles,
                formatters=self.formatters,
                plugins=self.plugins,
                default_header_style=self.settings.default_header_style,
            )
            logger.debug("ExcelService created with %d plugin(s)", len(self.plugins))
        return self._excel_service
