"""
openpyxl styling utilities.

Translates backend-agnostic style records (see ``style_registry``) into
openpyxl style objects and provides the worksheet helpers shared by the
memory and streaming writers:
- Font / fill / alignment / border / number format builders
- Rich text conversion
- Auto-filter and freeze pane references
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Any, Dict, Mapping, Optional

from openpyxl.cell.rich_text import CellRichText, TextBlock
from openpyxl.cell.text import InlineFont
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from fleetexport.domain.models import CellValue, RichText, Style


# "middle" is accepted as an alias for the OOXML "center"
_VERTICAL_ALIASES = {"middle": "center"}
_BORDER_SIDES = ("left", "right", "top", "bottom")


# ============================================================================
# Cell Style
# ============================================================================


@dataclass(frozen=True)
class CellStyle:
    """openpyxl objects for one resolved style record."""

    font: Optional[Font] = None
    fill: Optional[PatternFill] = None
    alignment: Optional[Alignment] = None
    border: Optional[Border] = None
    number_format: Optional[str] = None

    def apply(self, cell) -> None:
        """Assign every part that is set to an openpyxl cell."""
        if self.font is not None:
            cell.font = self.font
        if self.fill is not None:
            cell.fill = self.fill
        if self.alignment is not None:
            cell.alignment = self.alignment
        if self.border is not None:
            cell.border = self.border
        if self.number_format is not None:
            cell.number_format = self.number_format


def normalize_color(value: Any) -> Optional[str]:
    """
    Normalize a color to the hex form openpyxl accepts.

    Accepts "#RRGGBB", "RRGGBB", "AARRGGBB" or a mapping with an
    ``argb`` / ``rgb`` entry.
    """
    if value is None:
        return None
    if isinstance(value, Mapping):
        value = value.get("argb") or value.get("rgb")
        if value is None:
            return None
    return str(value).lstrip("#").upper()


def build_font(spec: Mapping[str, Any]) -> Font:
    underline = spec.get("underline")
    if underline is True:
        underline = "single"
    elif underline is False:
        underline = None
    return Font(
        name=spec.get("name"),
        size=spec.get("size"),
        bold=spec.get("bold"),
        italic=spec.get("italic"),
        underline=underline,
        strike=spec.get("strike"),
        color=normalize_color(spec.get("color")),
    )


def build_fill(spec: Mapping[str, Any]) -> PatternFill:
    fg_color = normalize_color(spec.get("fg_color"))
    bg_color = normalize_color(spec.get("bg_color")) or fg_color
    return PatternFill(
        fill_type=spec.get("pattern", "solid"),
        start_color=fg_color,
        end_color=bg_color,
    )


def build_alignment(spec: Mapping[str, Any]) -> Alignment:
    vertical = spec.get("vertical")
    return Alignment(
        horizontal=spec.get("horizontal"),
        vertical=_VERTICAL_ALIASES.get(vertical, vertical),
        wrap_text=spec.get("wrap_text"),
        indent=spec.get("indent", 0),
        text_rotation=spec.get("text_rotation", 0),
    )


def build_border(spec: Mapping[str, Any]) -> Border:
    sides: Dict[str, Side] = {}
    for name in _BORDER_SIDES:
        side = spec.get(name)
        if side:
            sides[name] = Side(style=side.get("style"), color=normalize_color(side.get("color")))
    return Border(**sides)


def build_cell_style(style: Optional[Style]) -> Optional[CellStyle]:
    """Translate a style record; None when there is nothing to apply."""
    if not style:
        return None
    return CellStyle(
        font=build_font(style["font"]) if style.get("font") else None,
        fill=build_fill(style["fill"]) if style.get("fill") else None,
        alignment=build_alignment(style["alignment"]) if style.get("alignment") else None,
        border=build_border(style["border"]) if style.get("border") else None,
        number_format=style.get("num_fmt"),
    )


class CellStyleCache:
    """
    Memoizes ``build_cell_style`` per distinct style record.

    Rows of one column usually resolve to identical records, so each record
    is translated once per workbook.
    """

    def __init__(self) -> None:
        self._cache: Dict[str, Optional[CellStyle]] = {}

    def get(self, style: Optional[Style]) -> Optional[CellStyle]:
        if not style:
            return None
        key = json.dumps(style, sort_keys=True, default=str)
        if key not in self._cache:
            self._cache[key] = build_cell_style(style)
        return self._cache[key]


# ============================================================================
# Values
# ============================================================================


def to_rich_text(value: RichText) -> CellRichText:
    blocks = []
    for run in value.runs:
        font = run.font
        inline = InlineFont(
            rFont=font.name if font else None,
            sz=font.size if font else None,
            i=font.italic if font else None,
            u="single" if font and font.underline else None,
            b=run.bold,
            color=normalize_color(run.color),
        )
        blocks.append(TextBlock(inline, run.text))
    return CellRichText(blocks)


def to_excel_value(value: CellValue) -> Any:
    """
    Convert a CellValue into something openpyxl can store.

    Timezone-aware datetimes become naive UTC; the file format has no
    timezone support.
    """
    if isinstance(value, RichText):
        return to_rich_text(value)
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    if isinstance(value, time) and value.tzinfo is not None:
        return value.replace(tzinfo=None)
    return value


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# ============================================================================
# Worksheet helpers
# ============================================================================


def autofilter_ref(column_count: int, header_row: int = 1) -> str:
    """
    Auto-filter range spanning the header row.

    Args:
        column_count: Number of columns
        header_row: Header row number
    """
    last_col = get_column_letter(max(column_count, 1))
    return f"A{header_row}:{last_col}{header_row}"


def freeze_ref(row: Optional[int] = None, col: Optional[int] = None) -> str:
    """
    Top-left unfrozen cell for a pane split.

    Args:
        row: Rows to keep frozen (defaults to 1, the header row)
        col: Columns to keep frozen (defaults to 0)
    """
    y_split = row or 1
    x_split = col or 0
    return f"{get_column_letter(x_split + 1)}{y_split + 1}"
