"""
Formatter registry.

Named value transforms applied to a raw field value before it is written
to a cell. Formatters are pure; the registry guards every call so a
misbehaving formatter degrades to the original value instead of aborting
generation.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Formatter = Callable[[Any], Any]


class FormatterRegistry:
    """
    Registry of named formatter functions.

    Constructed once by the host application and shared by every export;
    it is only mutated through ``register`` and ``clear``.
    """

    def __init__(self) -> None:
        self._formatters: Dict[str, Formatter] = {}

    def register(self, name: str, fn: Formatter) -> None:
        """
        Register a formatter, replacing any previous one with that name.

        Args:
            name: Unique formatter name
            fn: Function value -> value
        """
        self._formatters[name] = fn

    def apply(self, name: str, value: Any) -> Any:
        """
        Apply the formatter ``name`` to ``value``.

        Args:
            name: Registered formatter name
            value: Raw value

        Returns:
            The formatted value, or ``value`` unchanged when the formatter
            is unknown or raises.
        """
        formatter = self._formatters.get(name)
        if formatter is None:
            logger.warning("Formatter not found in registry: %s", name)
            return value

        try:
            return formatter(value)
        except Exception:
            logger.exception("Error applying formatter %s to %r", name, value)
            return value

    def has(self, name: str) -> bool:
        return name in self._formatters

    def get_registered_formatters(self) -> List[str]:
        """Registered names, in registration order."""
        return list(self._formatters)

    def clear(self) -> None:
        self._formatters.clear()


# ============================================================================
# Parsing helpers
# ============================================================================

_CURRENCY_NOISE = re.compile(r"[$€£¥₫,\s]")
_FLOAT_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INT_PREFIX = re.compile(r"^[+-]?\d+")
_NON_DIGIT = re.compile(r"\D")

TRUE_WORDS = frozenset({"true", "yes", "1", "có"})
FALSE_WORDS = frozenset({"false", "no", "0", "không"})


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def _parse_float_prefix(text: str) -> Optional[float]:
    """Leading number of ``text`` ("12.5kg" -> 12.5), None if there is none."""
    match = _FLOAT_PREFIX.match(text.strip())
    return float(match.group(0)) if match else None


def _to_number(value: Any) -> Optional[float]:
    """Strict numeric conversion; blank strings count as zero."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _round_half_up(number: float) -> int:
    return math.floor(number + 0.5)


def _finite(number: Optional[float]) -> Optional[float]:
    if number is None or math.isnan(number) or math.isinf(number):
        return None
    return number


# ============================================================================
# Default formatters
# ============================================================================


def format_currency(value: Any) -> Optional[float]:
    """Money as a number: strips currency symbols, thousands separators and spaces."""
    if _is_blank(value):
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return None if math.isnan(value) else value
    if isinstance(value, str):
        parsed = _parse_float_prefix(_CURRENCY_NOISE.sub("", value))
        return None if parsed is None or math.isnan(parsed) else parsed
    number = _to_number(value)
    return None if number is None or math.isnan(number) else number


def format_iso_date(value: Any) -> Optional[datetime | date]:
    """Date/datetime from an ISO string or epoch milliseconds; None when invalid."""
    if _is_blank(value):
        return None
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    return None


def format_boolean(value: Any) -> Optional[bool]:
    """Boolean from booleans, numbers and yes/no words (English or Vietnamese)."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in TRUE_WORDS:
            return True
        if word in FALSE_WORDS:
            return False
    if isinstance(value, (int, float)):
        return value != 0
    return bool(value)


def format_string(value: Any) -> str:
    """Text; None becomes the empty string, dates their ISO form."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def format_integer(value: Any) -> Optional[int]:
    """Whole number, rounding half up; leading digits of strings."""
    if _is_blank(value):
        return None
    if isinstance(value, str):
        match = _INT_PREFIX.match(value.strip())
        return int(match.group(0)) if match else None
    number = _finite(_to_number(value))
    return None if number is None else _round_half_up(number)


def format_percentage(value: Any) -> Optional[float]:
    """
    Decimal fraction -> percentage (0.15 -> 15).

    Values above 1 are assumed to already be percentages and pass through,
    so 0.5 always becomes 50 even if 0.5% was meant.
    """
    if _is_blank(value):
        return None
    number = _to_number(value)
    if number is None or math.isnan(number):
        return None
    if number > 1:
        return number
    return number * 100


def format_vietnamese_phone(value: Any) -> Optional[str]:
    """0xxx xxx xxx grouping for 10-digit numbers (9 digits get the leading 0)."""
    if _is_blank(value):
        return None
    digits = _NON_DIGIT.sub("", str(value))
    if len(digits) == 10 and digits.startswith("0"):
        return f"{digits[:4]} {digits[4:7]} {digits[7:]}"
    if len(digits) == 9 and not digits.startswith("0"):
        return f"0{digits[:3]} {digits[3:6]} {digits[6:]}"
    return str(value)


def format_vietnamese_currency(value: Any) -> Optional[str]:
    """Amount rendered as VND, e.g. ``1.234.567 ₫`` (non-breaking space before the symbol)."""
    if _is_blank(value):
        return None
    number = _to_number(value)
    if number is None or math.isnan(number):
        return None
    amount = _round_half_up(abs(number))
    sign = "-" if number < 0 and amount else ""
    grouped = f"{amount:,}".replace(",", ".")
    return f"{sign}{grouped}\u00a0₫"


DEFAULT_FORMATTERS: Dict[str, Formatter] = {
    "currency": format_currency,
    "isoDate": format_iso_date,
    "boolean": format_boolean,
    "string": format_string,
    "integer": format_integer,
    "percentage": format_percentage,
    "vietnamesePhone": format_vietnamese_phone,
    "vietnameseCurrency": format_vietnamese_currency,
}


def default_formatters(registry: FormatterRegistry) -> FormatterRegistry:
    """Register the default formatter catalogue on ``registry`` and return it."""
    for name, fn in DEFAULT_FORMATTERS.items():
        registry.register(name, fn)
    return registry
