"""Free-text parsers for the calculation form and catalog ingestion.

All parsers are permissive: anything that does not contain a number parses
to 0, and a missing unit parses to ``"units"``. None of them raise.
"""
import re
from typing import Any, Optional, Tuple

DEFAULT_UNIT = "units"

_NUMBER_RE = re.compile(r"(\d+(?:\.\d+)?)")
_QUANTITY_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(mg|g|ml|L|units?)?", flags=re.IGNORECASE)
# optional sign, then an optional currency symbol: "-240", "-$240", "$-240"
_AMOUNT_RE = re.compile(r"(-)?\s*[$€£¥₹]?\s*(-)?(\d+(?:\.\d+)?)")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def parse_weeks(value: Any) -> float:
    """Return the first number in ``value`` ("12 weeks" -> 12, "8w" -> 8, "abc" -> 0)."""
    m = _NUMBER_RE.search(_text(value))
    if not m:
        return 0.0
    return float(m.group(1))


def parse_medication_amount(value: Any) -> Tuple[float, str]:
    """Return ``(amount, unit)`` from text such as "100mg" or "50 ml".

    The unit must directly follow the number (whitespace allowed) and is
    lower-cased; a bare "unit" is returned as "unit".
    """
    amount, unit = parse_typed_quantity(value)
    return amount, unit or DEFAULT_UNIT


def parse_typed_quantity(value: Any) -> Tuple[float, Optional[str]]:
    """Like ``parse_medication_amount`` but the unit is None when none was typed."""
    m = _QUANTITY_RE.search(_text(value))
    if not m:
        return 0.0, None
    unit = m.group(2)
    return float(m.group(1)), unit.lower() if unit else None


def parse_amount(value: Any) -> float:
    """Parse a currency-like value ("$1,200.50", 99, None) to a non-negative float.

    Negative amounts ("-240", -5) parse to 0.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        v = float(value)
        return v if v > 0 else 0.0
    s = _text(value).replace(",", "").strip()
    m = _AMOUNT_RE.search(s)
    if not m:
        return 0.0
    if m.group(1) or m.group(2):
        return 0.0
    return float(m.group(3))
