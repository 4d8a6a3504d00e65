"""
Settings repository for loading and saving export configuration files.

This module provides the infrastructure layer for configuration persistence.
It handles file I/O and converts parse / validation failures into
ExportConfigError.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from fleetexport.domain.exceptions import ExportConfigError
from fleetexport.domain.models import ColumnDef
from fleetexport.infrastructure.config.models import ColumnConfig, ExportSettings, to_column_defs

logger = logging.getLogger(__name__)

SETTINGS_FILE = "export_settings"

# Strings are matched first so comment markers inside them survive
_JSONC_TOKENS = re.compile(r'"(?:\\.|[^"\\])*"|//[^\n]*|/\*.*?\*/', re.DOTALL)


def strip_json_comments(content: str) -> str:
    """Remove // and /* */ comments from JSONC content."""
    return _JSONC_TOKENS.sub(
        lambda m: m.group(0) if m.group(0).startswith('"') else "",
        content,
    )


class SettingsRepository:
    """
    Repository for export configuration files.

    Handles loading and saving of ``export_settings`` with support for JSON
    and JSONC formats.
    """

    def __init__(self, config_dir: Path):
        """
        Initialize the settings repository.

        Args:
            config_dir: Directory holding the configuration files
        """
        self.config_dir = Path(config_dir)

    def load_json_file(self, filename: str, allow_jsonc: bool = True) -> Dict[str, Any]:
        """
        Load a JSON or JSONC file.

        Args:
            filename: Name of the file to load (without extension)
            allow_jsonc: Whether to look for a .jsonc file when no .json exists

        Returns:
            Parsed JSON data

        Raises:
            FileNotFoundError: If neither file exists
            ExportConfigError: If the file cannot be parsed
        """
        json_path = self.config_dir / f"{filename}.json"
        jsonc_path = self.config_dir / f"{filename}.jsonc"

        if json_path.exists():
            path, strip = json_path, False
        elif allow_jsonc and jsonc_path.exists():
            path, strip = jsonc_path, True
        else:
            raise FileNotFoundError(
                f"Config file '{filename}.json' or '{filename}.jsonc' not found in {self.config_dir}"
            )

        try:
            content = path.read_text(encoding="utf-8")
            return json.loads(strip_json_comments(content) if strip else content)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse config file %s: %s", path, e)
            raise ExportConfigError(f"Invalid JSON in {path}", path=str(path), cause=e) from e

    def save_json_file(self, filename: str, data: Dict[str, Any]) -> Path:
        """
        Save data to a JSON file, creating the config directory if needed.

        Args:
            filename: Name of the file to save (without extension)
            data: Data to save

        Returns:
            Path of the written file
        """
        self.config_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.config_dir / f"{filename}.json"
        filepath.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("Saved config file: %s", filepath)
        return filepath

    def load_settings(self) -> ExportSettings:
        """
        Load export settings; defaults when no settings file exists.

        Raises:
            ExportConfigError: If the file cannot be parsed or validated
        """
        try:
            data = self.load_json_file(SETTINGS_FILE)
        except FileNotFoundError:
            logger.debug("No %s file in %s, using defaults", SETTINGS_FILE, self.config_dir)
            return ExportSettings()

        if not isinstance(data, dict):
            raise ExportConfigError(f"{SETTINGS_FILE} must contain a JSON object")

        try:
            return ExportSettings(**data)
        except ValidationError as e:
            logger.error("Invalid export settings: %s", e)
            raise ExportConfigError("Invalid export settings", cause=e) from e

    def save_settings(self, settings: ExportSettings) -> Path:
        return self.save_json_file(SETTINGS_FILE, settings.model_dump(mode="json"))


def load_column_file(path: Union[str, Path]) -> List[ColumnDef]:
    """
    Load a column layout file.

    The file holds either a JSON array of column objects or an object with a
    ``columns`` array.

    Raises:
        ExportConfigError: If the file is missing, unparsable or invalid
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ExportConfigError(f"Column file not found: {path}", path=str(path), cause=e) from e
    except json.JSONDecodeError as e:
        raise ExportConfigError(f"Invalid JSON in {path}", path=str(path), cause=e) from e

    if isinstance(data, dict):
        data = data.get("columns")
    if not isinstance(data, list) or not data:
        raise ExportConfigError(
            "Column file must contain a non-empty 'columns' array or be an array",
            path=str(path),
        )

    configs = []
    for i, item in enumerate(data):
        try:
            configs.append(ColumnConfig.model_validate(item))
        except ValidationError as e:
            logger.error("Invalid column at index %d: %s", i, e)
            raise ExportConfigError(f"Invalid column at index {i}", path=str(path), cause=e) from e

    return to_column_defs(configs)
