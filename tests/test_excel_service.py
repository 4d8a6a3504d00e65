"""
Tests for the ExcelService orchestrator.

Runs generation against the recording driver and asserts on the event
log: lifecycle order, per-column values and styles, row hooks, plugins,
footers and capability handling.
"""

import asyncio
from decimal import Decimal
from unittest.mock import Mock

import pytest

from fleetexport.application.excel_service import ExcelService
from fleetexport.domain import (
    ColumnDef,
    DriverCapabilities,
    ExcelMode,
    ExcelPlugin,
    FooterSpec,
    FreezeSpec,
    SheetData,
    SheetSpec,
    UnsupportedOperationError,
    WorkbookSpec,
)
from fleetexport.infrastructure.excel import RecordingDriver
from fleetexport.infrastructure.excel.recording_driver import FAKE_BUFFER

ROWS = [
    {"name": "An", "amount": "1,000.50", "joined": "2024-01-02"},
    {"name": "Binh", "amount": "2,500", "joined": "2024-02-03"},
    {"name": "Chi", "amount": "", "joined": "bad"},
]


def columns():
    return [
        ColumnDef(key="name", header="Name", path="name"),
        ColumnDef(key="amount", header="Amount", path="amount", formatter="currency", style="money"),
        ColumnDef(key="joined", header="Joined", accessor=lambda r: r["joined"], formatter="isoDate"),
    ]


def generate(service, sheets, mode=ExcelMode.MEMORY, meta=None):
    return asyncio.run(service.generate(meta or WorkbookSpec(filename="test"), sheets, mode))


async def async_rows(rows):
    for row in rows:
        await asyncio.sleep(0)
        yield row


class TestLifecycle:
    """Event order for single and multi sheet workbooks."""

    def test_three_rows_no_footer(self, service, recording_driver):
        """Test the exact event sequence for a plain three row sheet."""
        result = generate(service, [SheetData(spec=SheetSpec(name="S", columns=columns()), rows=ROWS)])

        assert result == FAKE_BUFFER
        assert recording_driver.event_types() == [
            "create_workbook",
            "add_sheet",
            "write_header",
            "write_row",
            "write_row",
            "write_row",
            "commit",
            "finalize",
        ]

    def test_row_values(self, service, recording_driver):
        """Test values come from accessor / path and pass through formatters."""
        generate(service, [SheetData(spec=SheetSpec(name="S", columns=columns()), rows=ROWS)])

        rows = [event.values for event in recording_driver.of_type("write_row")]
        assert rows[0][0] == "An"
        assert rows[0][1] == 1000.5
        assert (rows[0][2].year, rows[0][2].month, rows[0][2].day) == (2024, 1, 2)
        assert rows[1][1] == 2500.0
        assert rows[2][1] is None
        assert rows[2][2] is None

    def test_unmapped_column_is_none(self, service, recording_driver):
        spec = SheetSpec(name="S", columns=[ColumnDef(key="x", header="X")])
        generate(service, [SheetData(spec=spec, rows=[{"x": 1}])])

        assert recording_driver.of_type("write_row")[0].values == (None,)

    def test_values_are_normalized(self, service, recording_driver):
        """Test Decimal and arbitrary objects are coerced to cell values."""
        spec = SheetSpec(
            name="S",
            columns=[
                ColumnDef(key="d", header="D", path="d"),
                ColumnDef(key="o", header="O", path="o"),
            ],
        )
        generate(service, [SheetData(spec=spec, rows=[{"d": Decimal("1.25"), "o": object}])])

        values = recording_driver.of_type("write_row")[0].values
        assert values[0] == 1.25
        assert isinstance(values[1], str)

    def test_create_workbook_receives_meta_and_mode(self, service, recording_driver):
        meta = WorkbookSpec(filename="report", creator="Tester")
        generate(service, [], ExcelMode.STREAMING, meta=meta)

        event = recording_driver.events[0]
        assert event.meta is meta
        assert event.mode is ExcelMode.STREAMING

    def test_streaming_returns_none(self, service):
        assert generate(service, [], "streaming") is None

    def test_sheets_in_declaration_order(self, service, recording_driver):
        sheets = [
            SheetData(spec=SheetSpec(name=name, columns=columns()), rows=ROWS[:1])
            for name in ("First", "Second", "Third")
        ]
        generate(service, sheets)

        assert [e.name for e in recording_driver.of_type("add_sheet")] == ["First", "Second", "Third"]
        assert recording_driver.event_types().count("commit") == 3
        assert recording_driver.event_types()[-1] == "finalize"


class TestStyles:
    """Header and data style resolution."""

    def test_add_sheet_columns_resolved(self, service, recording_driver, styles):
        generate(service, [SheetData(spec=SheetSpec(name="S", columns=columns()), rows=[])])

        sheet_columns = recording_driver.of_type("add_sheet")[0].columns
        assert [c.header for c in sheet_columns] == ["Name", "Amount", "Joined"]
        assert sheet_columns[1].style == styles.resolve("money")
        assert sheet_columns[0].style is None

    def test_row_styles_aligned_with_values(self, service, recording_driver, styles):
        """Test styles are one per column, None where a column has no style."""
        generate(service, [SheetData(spec=SheetSpec(name="S", columns=columns()), rows=ROWS[:1])])

        event = recording_driver.of_type("write_row")[0]
        assert len(event.styles) == len(event.values)
        assert event.styles[0] is None
        assert event.styles[1] == styles.resolve("money")
        assert event.styles[2] is None

    def test_num_fmt_merged_into_style(self, service, recording_driver):
        spec = SheetSpec(
            name="S",
            columns=[
                ColumnDef(key="a", header="A", path="a", style="money", num_fmt="0.0"),
                ColumnDef(key="b", header="B", path="b", num_fmt="@"),
            ],
        )
        generate(service, [SheetData(spec=spec, rows=[{"a": 1, "b": "x"}])])

        styles = recording_driver.of_type("write_row")[0].styles
        assert styles[0]["num_fmt"] == "0.0"
        assert styles[0]["font"]["name"] == "Calibri"
        assert styles[1] == {"num_fmt": "@"}

    def test_unknown_style_degrades(self, service, recording_driver):
        spec = SheetSpec(name="S", columns=[ColumnDef(key="a", header="A", path="a", style="nope")])
        generate(service, [SheetData(spec=spec, rows=[{"a": 1}])])

        assert recording_driver.of_type("write_row")[0].styles == (None,)

    def test_default_header_style(self, recording_driver, styles):
        """Test columns without a header style get the service default."""
        service = ExcelService(recording_driver, styles=styles, default_header_style="header")
        spec = SheetSpec(
            name="S",
            columns=[
                ColumnDef(key="a", header="A"),
                ColumnDef(key="b", header="B", header_style="bold"),
            ],
        )
        generate(service, [SheetData(spec=spec, rows=[])])

        sheet_columns = recording_driver.of_type("add_sheet")[0].columns
        assert sheet_columns[0].header_style == styles.resolve("header")
        assert sheet_columns[1].header_style == styles.resolve("bold")

    def test_inline_styles_without_registry(self, recording_driver):
        service = ExcelService(recording_driver)
        inline = {"font": {"bold": True}}
        spec = SheetSpec(name="S", columns=[ColumnDef(key="a", header="A", path="a", style=inline)])
        generate(service, [SheetData(spec=spec, rows=[{"a": 1}])])

        assert recording_driver.of_type("write_row")[0].styles == (inline,)

    def test_formatters_skipped_without_registry(self, recording_driver):
        service = ExcelService(recording_driver)
        spec = SheetSpec(name="S", columns=[ColumnDef(key="a", header="A", path="a", formatter="currency")])
        generate(service, [SheetData(spec=spec, rows=[{"a": "1,000"}])])

        assert recording_driver.of_type("write_row")[0].values == ("1,000",)


class TestRowHooks:
    """before_write_row / after_write_row."""

    def test_before_write_row_mutation_visible(self, service, recording_driver):
        def mark(row):
            return {**row, "processed": True}

        spec = SheetSpec(
            name="S",
            columns=columns() + [ColumnDef(key="processed", header="Processed", path="processed")],
            before_write_row=mark,
        )
        generate(service, [SheetData(spec=spec, rows=ROWS)])

        for event in recording_driver.of_type("write_row"):
            assert event.values[3] is True

    def test_before_write_row_none_keeps_row(self, service, recording_driver):
        spec = SheetSpec(name="S", columns=columns(), before_write_row=lambda row: None)
        generate(service, [SheetData(spec=spec, rows=ROWS[:1])])

        assert recording_driver.of_type("write_row")[0].values[0] == "An"

    def test_async_before_write_row(self, service, recording_driver):
        async def upper(row):
            return {**row, "name": row["name"].upper()}

        spec = SheetSpec(name="S", columns=columns(), before_write_row=upper)
        generate(service, [SheetData(spec=spec, rows=ROWS[:1])])

        assert recording_driver.of_type("write_row")[0].values[0] == "AN"

    def test_after_write_row_indices(self, service):
        hook = Mock(return_value=None)
        spec = SheetSpec(name="S", columns=columns(), after_write_row=hook)
        generate(service, [SheetData(spec=spec, rows=ROWS)])

        assert [call.args[0].row_index for call in hook.call_args_list] == [0, 1, 2]


class TestRowSources:
    """Sync and async row sources produce the same rows."""

    def test_async_source_matches_sync(self, styles, formatters):
        sync_driver, async_driver = RecordingDriver(), RecordingDriver()
        spec = SheetSpec(name="S", columns=columns())

        generate(ExcelService(sync_driver, styles, formatters), [SheetData(spec=spec, rows=ROWS)])
        generate(ExcelService(async_driver, styles, formatters), [SheetData(spec=spec, rows=async_rows(ROWS))])

        assert len(async_driver.of_type("write_row")) == len(ROWS)
        assert async_driver.of_type("write_row") == sync_driver.of_type("write_row")

    def test_generator_source(self, service, recording_driver):
        rows = (row for row in ROWS)
        generate(service, [SheetData(spec=SheetSpec(name="S", columns=columns()), rows=rows)])

        assert len(recording_driver.of_type("write_row")) == 3

    def test_empty_source(self, service, recording_driver):
        generate(service, [SheetData(spec=SheetSpec(name="S", columns=columns()), rows=[])])

        assert recording_driver.event_types() == [
            "create_workbook", "add_sheet", "write_header", "commit", "finalize",
        ]


class TestSheetOptions:
    """Auto-filter, freeze and footer."""

    def test_auto_filter_and_freeze(self, service, recording_driver):
        spec = SheetSpec(name="S", columns=columns(), auto_filter=True, freeze=FreezeSpec(row=1))
        generate(service, [SheetData(spec=spec, rows=ROWS[:1])])

        types = recording_driver.event_types()
        assert types[2:5] == ["write_header", "enable_auto_filter", "freeze"]
        freeze = recording_driver.of_type("freeze")[0]
        assert freeze.row == 1
        assert not freeze.col

    def test_no_filter_or_freeze_by_default(self, service, recording_driver):
        generate(service, [SheetData(spec=SheetSpec(name="S", columns=columns()), rows=ROWS)])

        assert not recording_driver.of_type("enable_auto_filter")
        assert not recording_driver.of_type("freeze")

    def test_footer(self, service, recording_driver, styles):
        spec = SheetSpec(name="S", columns=columns(), footer=FooterSpec(label="Total", style="bold"))
        generate(service, [SheetData(spec=spec, rows=ROWS)])

        types = recording_driver.event_types()
        assert types[-3:] == ["write_footer", "commit", "finalize"]
        footer = recording_driver.of_type("write_footer")[0]
        assert footer.values == ("Total", "", "")
        assert footer.style == styles.resolve("bold")

    def test_footer_without_label(self, service, recording_driver):
        spec = SheetSpec(name="S", columns=columns(), footer=FooterSpec())
        generate(service, [SheetData(spec=spec, rows=[])])

        assert recording_driver.of_type("write_footer")[0].values == ("", "", "")

    def test_capabilities_missing_skip_operations(self, styles):
        """Test optional operations are skipped when the writer lacks them."""
        driver = RecordingDriver(capabilities=DriverCapabilities())
        service = ExcelService(driver, styles)
        spec = SheetSpec(
            name="S",
            columns=columns(),
            auto_filter=True,
            freeze=FreezeSpec(row=1),
            footer=FooterSpec(label="Total"),
        )
        result = generate(service, [SheetData(spec=spec, rows=ROWS[:1])])

        assert result is None
        assert driver.event_types() == [
            "create_workbook", "add_sheet", "write_header", "write_row", "commit", "finalize",
        ]


class TestPlugins:
    """Plugin hook order and awaiting."""

    def test_hook_order(self, recording_driver):
        calls = []

        class Tracking(ExcelPlugin):
            def __init__(self, tag):
                self.tag = tag

            def before_workbook(self, meta):
                calls.append(("before_workbook", self.tag))

            async def before_sheet(self, sheet):
                calls.append(("before_sheet", self.tag))

            def after_sheet(self, sheet):
                calls.append(("after_sheet", self.tag))

            async def after_workbook(self, meta):
                calls.append(("after_workbook", self.tag))

        service = ExcelService(recording_driver, plugins=[Tracking("a"), Tracking("b")])
        generate(service, [SheetData(spec=SheetSpec(name="S", columns=columns()), rows=ROWS)])

        assert calls == [
            ("before_workbook", "a"),
            ("before_workbook", "b"),
            ("before_sheet", "a"),
            ("before_sheet", "b"),
            ("after_sheet", "a"),
            ("after_sheet", "b"),
            ("after_workbook", "a"),
            ("after_workbook", "b"),
        ]

    def test_partial_plugin(self, recording_driver):
        """Test a plugin overriding only one hook."""
        seen = []

        class OnlyAfter(ExcelPlugin):
            def after_workbook(self, meta):
                seen.append(meta.filename)

        service = ExcelService(recording_driver, plugins=[OnlyAfter()])
        generate(service, [], meta=WorkbookSpec(filename="wb"))

        assert seen == ["wb"]

    def test_hooks_around_driver_events(self, recording_driver):
        """Test before_sheet runs before add_sheet and after_sheet after commit."""
        snapshots = {}

        class Snapshot(ExcelPlugin):
            def before_sheet(self, sheet):
                snapshots["before"] = recording_driver.event_types()

            def after_sheet(self, sheet):
                snapshots["after"] = recording_driver.event_types()

        service = ExcelService(recording_driver, plugins=[Snapshot()])
        generate(service, [SheetData(spec=SheetSpec(name="S", columns=columns()), rows=[])])

        assert snapshots["before"] == ["create_workbook"]
        assert snapshots["after"][-1] == "commit"


class TestFailures:
    """Generation-fatal errors propagate."""

    def test_accessor_error_propagates(self, service, recording_driver):
        def broken(row):
            raise KeyError("missing")

        spec = SheetSpec(name="S", columns=[ColumnDef(key="a", header="A", accessor=broken)])
        with pytest.raises(KeyError):
            generate(service, [SheetData(spec=spec, rows=ROWS)])

        assert "finalize" not in recording_driver.event_types()
        assert recording_driver.event_types()[-1] == "abort"

    def test_row_source_error_propagates(self, service, recording_driver):
        async def failing():
            yield ROWS[0]
            raise RuntimeError("source failed")

        spec = SheetSpec(name="S", columns=columns())
        with pytest.raises(RuntimeError, match="source failed"):
            generate(service, [SheetData(spec=spec, rows=failing())])

        assert recording_driver.of_type("write_row")
        assert recording_driver.event_types()[-1] == "abort"

    def test_plugin_error_propagates(self, recording_driver):
        class Failing(ExcelPlugin):
            def before_sheet(self, sheet):
                raise ValueError("plugin failed")

        service = ExcelService(recording_driver, plugins=[Failing()])
        with pytest.raises(ValueError):
            generate(service, [SheetData(spec=SheetSpec(name="S", columns=columns()), rows=[])])

        assert recording_driver.event_types() == ["create_workbook", "abort"]

    def test_before_workbook_error_needs_no_abort(self, recording_driver):
        class Failing(ExcelPlugin):
            def before_workbook(self, meta):
                raise ValueError("plugin failed")

        service = ExcelService(recording_driver, plugins=[Failing()])
        with pytest.raises(ValueError):
            generate(service, [])

        assert recording_driver.events == []

    def test_abort_error_does_not_mask_failure(self, recording_driver):
        """Test the generation error surfaces even when cleanup fails too."""
        service = ExcelService(recording_driver)
        original = recording_driver.create_workbook

        async def create_workbook(meta, mode):
            writer = await original(meta, mode)
            writer.abort = Mock(side_effect=OSError("cleanup failed"))
            return writer

        recording_driver.create_workbook = create_workbook

        async def failing():
            raise RuntimeError("source failed")
            yield  # pragma: no cover

        spec = SheetSpec(name="S", columns=columns())
        with pytest.raises(RuntimeError, match="source failed"):
            generate(service, [SheetData(spec=spec, rows=failing())])

    def test_to_buffer_unsupported_in_streaming(self, recording_driver):
        async def run():
            writer = await recording_driver.create_workbook(WorkbookSpec(filename="x"), ExcelMode.STREAMING)
            return await writer.to_buffer()

        with pytest.raises(UnsupportedOperationError):
            asyncio.run(run())
