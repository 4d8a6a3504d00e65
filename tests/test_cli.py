"""
Tests for the fleetexport CLI.
"""

import inspect
import json
import logging
import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

from openpyxl import load_workbook
from typer.testing import CliRunner

from fleetexport import __version__
from fleetexport.interface.cli import app
from fleetexport.interface.record_input import iter_json_lines

runner = CliRunner()

RECORDS = [
    {"Tên xe": "Xe tải 01", "Biển số": "29C-123.45", "Chi phí": 1500000},
    {"Tên xe": "Xe tải 02", "Biển số": "30A-678.90", "Chi phí": 250000},
]


class TestExportCommand:
    """Test cases for `fleetexport export`."""

    def setup_method(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.config_dir = self.temp_dir / "config"
        self.output = self.temp_dir / "out" / "vehicles.xlsx"
        self.logging_patch = patch("fleetexport.interface.cli.setup_logging")
        self.setup_logging = self.logging_patch.start()

    def teardown_method(self):
        self.logging_patch.stop()
        shutil.rmtree(self.temp_dir)

    def invoke(self, *args):
        return runner.invoke(app, ["export", *map(str, args), "--config-dir", str(self.config_dir)])

    def write_json(self, name, data):
        path = self.temp_dir / name
        path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        return path

    def write_jsonl(self, name, records):
        path = self.temp_dir / name
        path.write_text(
            "\n".join(json.dumps(r, ensure_ascii=False) for r in records) + "\n\n",
            encoding="utf-8",
        )
        return path

    def test_export_json_memory(self):
        source = self.write_json("vehicles.json", RECORDS)
        result = self.invoke(source, "-o", self.output, "--sheet", "Xe")

        assert result.exit_code == 0, result.output
        assert "Exported 2 row(s)" in result.output
        ws = load_workbook(self.output)["Xe"]
        assert [c.value for c in ws[1]] == ["Tên xe", "Biển số", "Chi phí"]
        assert ws["C3"].value == 250000
        assert ws.freeze_panes == "A2"
        self.setup_logging.assert_called_once_with("INFO", None)

    def test_export_jsonl_streaming(self):
        source = self.write_jsonl("vehicles.jsonl", RECORDS * 50)
        result = self.invoke(source, "-o", self.output, "--mode", "streaming", "--creator", "Ops")

        assert result.exit_code == 0, result.output
        wb = load_workbook(self.output)
        assert wb.properties.creator == "Ops"
        assert wb.active.max_row == 101
        assert wb.active.auto_filter.ref == "A1:C1"

    def test_export_with_columns_file(self):
        source = self.write_json("vehicles.json", RECORDS)
        columns = self.write_json(
            "columns.json",
            [
                {"key": "plate", "header": "Plate", "path": "Biển số"},
                {"key": "cost", "header": "Cost", "path": "Chi phí", "formatter": "vietnameseCurrency"},
            ],
        )
        result = self.invoke(source, "-o", self.output, "--columns", columns)

        assert result.exit_code == 0, result.output
        ws = load_workbook(self.output).active
        assert [c.value for c in ws[1]] == ["Plate", "Cost"]
        assert ws["B2"].value == "1.500.000\u00a0₫"

    def test_settings_file_used(self):
        self.config_dir.mkdir()
        (self.config_dir / "export_settings.json").write_text(
            json.dumps({"creator": "From Settings", "freeze_header": False, "log_level": "debug"}),
            encoding="utf-8",
        )
        source = self.write_json("vehicles.json", RECORDS)
        result = self.invoke(source, "-o", self.output)

        assert result.exit_code == 0, result.output
        wb = load_workbook(self.output)
        assert wb.properties.creator == "From Settings"
        assert wb.active.freeze_panes is None
        self.setup_logging.assert_called_once_with("DEBUG", None)

    def test_empty_input(self):
        source = self.write_json("empty.json", [])
        result = self.invoke(source, "-o", self.output)

        assert result.exit_code == 1
        assert "No data to export" in result.output
        assert not self.output.exists()

    def test_invalid_input(self):
        source = self.temp_dir / "broken.json"
        source.write_text("{oops", encoding="utf-8")
        result = self.invoke(source, "-o", self.output)

        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_invalid_jsonl_line_removes_output(self):
        source = self.temp_dir / "broken.jsonl"
        source.write_text(json.dumps(RECORDS[0]) + "\nnot json\n", encoding="utf-8")
        result = self.invoke(source, "-o", self.output, "--mode", "streaming")

        assert result.exit_code == 1
        assert "line 2" in result.output
        assert not self.output.exists()

    def test_error_logged_with_details(self, caplog):
        source = self.write_json("empty.json", [])
        with caplog.at_level(logging.ERROR, logger="fleetexport.interface.cli"):
            result = self.invoke(source, "-o", self.output)

        assert result.exit_code == 1
        messages = [r.getMessage() for r in caplog.records if r.name == "fleetexport.interface.cli"]
        assert any("'error_type': 'EmptyExportError'" in m for m in messages)

    def test_jsonl_rows_read_lazily(self):
        source = self.write_jsonl("vehicles.jsonl", RECORDS)
        rows = iter_json_lines(source)

        assert not inspect.isasyncgen(rows)
        assert next(rows) == RECORDS[0]
        assert list(rows) == RECORDS[1:]

    def test_missing_input(self):
        result = self.invoke(self.temp_dir / "missing.json", "-o", self.output)
        assert result.exit_code == 2


class TestListingCommands:
    def test_formatters(self):
        result = runner.invoke(app, ["formatters"])
        assert result.exit_code == 0
        assert "currency" in result.output
        assert "vietnamesePhone" in result.output

    def test_styles(self):
        result = runner.invoke(app, ["styles"])
        assert result.exit_code == 0
        assert "money" in result.output
        assert "#,##0.00" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
