"""
Style registry.

Holds named, backend-agnostic presentation records and merges them with
ad-hoc overrides. A style record is a plain dictionary:

    {
        "font": {"name": "Calibri", "size": 10, "bold": True, "color": "FF000000"},
        "fill": {"pattern": "solid", "fg_color": "FFE6E6E6"},
        "alignment": {"horizontal": "center", "vertical": "middle", "wrap_text": True},
        "border": {"top": {"style": "thin", "color": "FF000000"}, ...},
        "num_fmt": "#,##0.00",
    }

Drivers translate these records into their own style objects.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from fleetexport.domain.models import Style

logger = logging.getLogger(__name__)


# Replaced wholesale on merge, never merged key by key
RICH_TEXT_KEY = "rich_text"


# ============================================================================
# Palette and number formats
# ============================================================================


class Colors:
    """Default palette (aRGB hex)."""

    HEADER_BG = "FFE6E6E6"  # Light gray
    BORDER = "FF000000"  # Black


class NumberFormats:
    """Number format codes used by the default catalogue."""

    MONEY = "#,##0.00"
    DATE = "yyyy-mm-dd"
    INTEGER = "#,##0"
    PERCENT = "0.00%"


DEFAULT_FONT_NAME = "Calibri"


class StyleRegistry:
    """
    Registry of named styles with deep-merge resolution.

    Constructed once by the host application and shared by every export.
    """

    def __init__(self) -> None:
        self._styles: Dict[str, Style] = {}

    def register(self, name: str, style: Mapping[str, Any]) -> None:
        """Store a shallow copy of ``style`` under ``name`` (overwrites)."""
        self._styles[name] = dict(style)

    def resolve(
        self,
        style: Union[str, Mapping[str, Any], None] = None,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Style]:
        """
        Resolve a style reference into a single style record.

        Args:
            style: Registered style name, inline style, or None
            extra: Overrides merged on top of the base style

        Returns:
            The merged style, ``extra`` alone when ``style`` names an unknown
            style, or None when there is nothing to apply.
        """
        base: Optional[Style] = None

        if isinstance(style, str):
            registered = self._styles.get(style)
            if registered is None:
                logger.warning("Style not found in registry: %s", style)
                return dict(extra) if extra else None
            base = copy.deepcopy(registered)
        elif style:
            base = copy.deepcopy(dict(style))

        if extra:
            if base is None:
                return copy.deepcopy(dict(extra))
            return deep_merge(base, extra)

        return base

    def get_registered_styles(self) -> List[str]:
        return list(self._styles)

    def clear(self) -> None:
        self._styles.clear()


def deep_merge(target: Mapping[str, Any], source: Mapping[str, Any]) -> Style:
    """
    Merge ``source`` into a copy of ``target``.

    Nested dictionaries merge key by key; lists, scalars and the rich text
    field replace whatever was there.
    """
    result = dict(target)
    for key, value in source.items():
        if isinstance(value, Mapping) and key != RICH_TEXT_KEY:
            current = result.get(key)
            result[key] = deep_merge(current if isinstance(current, Mapping) else {}, value)
        else:
            result[key] = value
    return result


def _thin_border(color: str = Colors.BORDER) -> Style:
    side = {"style": "thin", "color": color}
    return {"top": dict(side), "left": dict(side), "bottom": dict(side), "right": dict(side)}


def _font(size: float = 10, **extra: Any) -> Style:
    return {"name": DEFAULT_FONT_NAME, "size": size, **extra}


DEFAULT_STYLES: Dict[str, Style] = {
    "header": {
        "font": _font(size=11, bold=True),
        "fill": {"pattern": "solid", "fg_color": Colors.HEADER_BG},
        "alignment": {"horizontal": "center", "vertical": "middle", "wrap_text": True},
        "border": _thin_border(),
    },
    "text": {
        "font": _font(),
        "alignment": {"vertical": "top", "wrap_text": True},
    },
    "money": {
        "font": _font(),
        "alignment": {"horizontal": "right", "vertical": "middle"},
        "num_fmt": NumberFormats.MONEY,
    },
    "date": {
        "font": _font(),
        "alignment": {"horizontal": "center", "vertical": "middle"},
        "num_fmt": NumberFormats.DATE,
    },
    "number": {
        "font": _font(),
        "alignment": {"horizontal": "right", "vertical": "middle"},
        "num_fmt": NumberFormats.INTEGER,
    },
    "percent": {
        "font": _font(),
        "alignment": {"horizontal": "right", "vertical": "middle"},
        "num_fmt": NumberFormats.PERCENT,
    },
    "bold": {
        "font": _font(bold=True),
        "alignment": {"vertical": "middle"},
    },
    "center": {
        "font": _font(),
        "alignment": {"horizontal": "center", "vertical": "middle"},
    },
}


def default_styles(registry: StyleRegistry) -> StyleRegistry:
    """Register the default style catalogue on ``registry`` and return it."""
    for name, style in DEFAULT_STYLES.items():
        registry.register(name, copy.deepcopy(style))
    return registry
