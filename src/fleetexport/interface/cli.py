"""
fleetexport CLI entry point.

Commands:
    export      Write a JSON / JSON Lines file of records to an .xlsx workbook
    formatters  List the default formatters
    styles      List the default styles
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from fleetexport import __version__
from fleetexport.application.container import Container
from fleetexport.application.record_export import DEFAULT_SHEET_NAME, columns_from_record
from fleetexport.domain.exceptions import EmptyExportError, FleetExportError
from fleetexport.domain.models import ColumnDef, ExcelMode, FreezeSpec, RowContext, SheetData, SheetSpec, WorkbookSpec
from fleetexport.infrastructure.config import load_column_file
from fleetexport.infrastructure.excel import DEFAULT_FORMATTERS, DEFAULT_STYLES
from fleetexport.infrastructure.logging_config import setup_logging
from fleetexport.interface.record_input import (
    first_json_line,
    is_json_lines,
    iter_json_lines,
    read_json_records,
)

logger = logging.getLogger(__name__)
console = Console()

app = typer.Typer(
    name="fleetexport",
    help="📊 Spreadsheet export engine - records to .xlsx",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"fleetexport {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit."
    ),
):
    """📊 fleetexport - driver-based .xlsx export engine"""


def _resolve_columns(input_path: Path, columns_file: Optional[Path], records: Optional[List[Any]]) -> List[ColumnDef]:
    if columns_file is not None:
        return load_column_file(columns_file)

    first = records[0] if records else None
    if records is None:
        first = first_json_line(input_path)
    if first is None:
        raise EmptyExportError()
    return columns_from_record(first)


@app.command("export")
def export_command(  # pylint: disable=too-many-arguments,too-many-locals
    input_path: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="JSON array or JSON Lines file of records."
    ),
    output: Path = typer.Option(..., "--output", "-o", help="Destination .xlsx file."),
    columns_file: Optional[Path] = typer.Option(
        None, "--columns", help="Column layout JSON file (default: keys of the first record)."
    ),
    sheet: str = typer.Option(DEFAULT_SHEET_NAME, "--sheet", help="Sheet name."),
    mode: Optional[ExcelMode] = typer.Option(
        None, "--mode", case_sensitive=False, help="memory or streaming (default from settings)."
    ),
    config_dir: Optional[Path] = typer.Option(
        None, "--config-dir", help="Directory holding export_settings.json."
    ),
    creator: Optional[str] = typer.Option(None, "--creator", help="Workbook author."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Console log level."),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also write a DEBUG log to this file."),
):
    """
    Export records to an Excel workbook.

    JSON Lines input is read lazily, so [bold]--mode streaming[/bold] keeps
    memory flat regardless of the number of records.
    """
    try:
        container = Container(config_dir=config_dir)
        settings = container.settings
        setup_logging(log_level or settings.log_level, str(log_file) if log_file else None)

        mode = mode or settings.default_mode
        records = None if is_json_lines(input_path) else read_json_records(input_path)
        columns = _resolve_columns(input_path, columns_file, records)

        written = 0

        def count_row(ctx: RowContext) -> None:
            nonlocal written
            written = ctx.row_index + 1

        spec = SheetSpec(
            name=sheet,
            columns=columns,
            auto_filter=settings.auto_filter,
            freeze=FreezeSpec(row=1) if settings.freeze_header else None,
            after_write_row=count_row,
        )
        rows = records if records is not None else iter_json_lines(input_path)
        meta = WorkbookSpec(filename=output.name, creator=creator or settings.creator)

        output.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(output, "wb") as stream:
                container.stream = stream
                service = container.excel_service
                buffer = asyncio.run(service.generate(meta, [SheetData(spec=spec, rows=rows)], mode))
                if buffer is not None:
                    stream.write(buffer)
        except BaseException:
            output.unlink(missing_ok=True)
            raise

        console.print(
            f"[green]✅ Exported {written} row(s) to[/green] {output} [dim]({mode.value} mode)[/dim]"
        )
    except FleetExportError as e:
        logger.error("Export command failed: %s", e.to_dict())
        console.print(f"[red]❌ Error:[/red] {e}")
        raise typer.Exit(1)
    except (OSError, ValueError) as e:
        logger.error("Export command failed: %s", e)
        console.print(f"[red]❌ Error:[/red] {e}")
        raise typer.Exit(1)


@app.command("formatters")
def formatters_command():
    """List the default formatters."""
    table = Table(title="Formatters")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Description")

    for name, fn in DEFAULT_FORMATTERS.items():
        doc = (fn.__doc__ or "").strip().splitlines()
        table.add_row(name, doc[0] if doc else "")

    console.print(table)


@app.command("styles")
def styles_command():
    """List the default styles."""
    table = Table(title="Styles")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Font", style="blue")
    table.add_column("Alignment", style="yellow")
    table.add_column("Number format", style="magenta")

    for name, style in DEFAULT_STYLES.items():
        font = style.get("font", {})
        font_desc = f"{font.get('name', '')} {font.get('size', '')}".strip()
        if font.get("bold"):
            font_desc += " bold"
        alignment = style.get("alignment", {})
        align_desc = "/".join(
            str(alignment[k]) for k in ("horizontal", "vertical") if alignment.get(k)
        )
        table.add_row(name, font_desc, align_desc, style.get("num_fmt", ""))

    console.print(table)


def main() -> None:
    """Console script entry point."""
    app()
