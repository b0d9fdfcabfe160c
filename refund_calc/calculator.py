"""Refund calculation.

``calculate_refund`` is the core: a prorated refund for weeks that were
paid for but not received, plus the per-week / per-unit cost figures shown
alongside it. Every ratio is 0 when its divisor is 0, so the function is
total over non-negative input and never raises.

The result id and timestamp come from injectable ``id_factory`` / ``clock``
callables; everything else depends only on the four numeric input fields.
"""
from __future__ import annotations

import random
import string
import time
from collections import Counter
from typing import Callable, Iterable, Optional

from refund_calc.models import (
    CalculationInput,
    CalculationResult,
    HistoryItem,
    SelectedMedication,
    Statistics,
)

Clock = Callable[[], int]
IdFactory = Callable[[], str]

_ID_ALPHABET = string.ascii_lowercase + string.digits

# currency code -> (symbol, symbol after amount, thousands sep, decimal sep)
CURRENCY_FORMATS = {
    "USD": ("$", False, ",", "."),
    "EUR": ("€", True, ".", ","),
    "GBP": ("£", False, ",", "."),
    "CAD": ("$", False, ",", "."),
    "AUD": ("$", False, ",", "."),
    "JPY": ("￥", False, ",", "."),
    "CNY": ("¥", False, ",", "."),
    "INR": ("₹", False, ",", "."),
    "BRL": ("R$", False, ".", ","),
    "MXN": ("$", False, ",", "."),
}
# grouped in lakh/crore: 1,23,456.00
_INDIAN_GROUPING = {"INR"}


def _group_indian(value: float) -> str:
    whole, frac = f"{value:.2f}".split(".")
    head, tail = whole[:-3], whole[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail]) + "." + frac


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def generate_id() -> str:
    """Millisecond timestamp followed by 9 random base-36 characters."""
    suffix = "".join(random.choice(_ID_ALPHABET) for _ in range(9))
    return f"{now_ms()}{suffix}"


def _ratio(numerator: float, divisor: float) -> float:
    return numerator / divisor if divisor > 0 else 0.0


def can_calculate(calc_input: CalculationInput) -> bool:
    """A calculation needs a positive amount paid and a positive number of weeks paid."""
    return calc_input.amount_paid > 0 and calc_input.weeks_paid > 0


def calculate_refund(
    calc_input: CalculationInput,
    clock: Clock = now_ms,
    id_factory: IdFactory = generate_id,
) -> CalculationResult:
    """Compute cost figures and the prorated refund for ``calc_input``.

    refund = (weeks_paid - weeks_received) * cost_per_week, or 0 once the
    full duration has been received. The refund is never negative.
    """
    amount_paid = calc_input.amount_paid
    dispensed = calc_input.medication_dispensed
    weeks_paid = calc_input.weeks_paid
    weeks_received = calc_input.weeks_received

    cost_per_week = _ratio(amount_paid, weeks_paid)
    cost_per_unit = _ratio(amount_paid, dispensed)
    medication_per_week = _ratio(dispensed, weeks_paid)
    weekly_cost_per_unit = _ratio(cost_per_week, medication_per_week)

    if weeks_received >= weeks_paid:
        refund_amount = 0.0
    else:
        refund_amount = (weeks_paid - weeks_received) * cost_per_week

    return CalculationResult(
        id=id_factory(),
        input=calc_input,
        cost_per_week=cost_per_week,
        cost_per_unit=cost_per_unit,
        medication_per_week=medication_per_week,
        weekly_cost_per_unit=weekly_cost_per_unit,
        refund_amount=max(0.0, refund_amount),
        timestamp=clock(),
    )


def calculate_statistics(
    history: Iterable[HistoryItem],
    medications: Iterable[SelectedMedication] = (),
) -> Statistics:
    refunds = [item.result.refund_amount for item in history]
    total = sum(refunds)
    names = Counter(m.medication.name for m in medications)
    most_used: Optional[str] = names.most_common(1)[0][0] if names else None
    return Statistics(
        total_refunds=total,
        average_refund=total / len(refunds) if refunds else 0.0,
        total_calculations=len(refunds),
        most_used_medication=most_used,
    )


def format_currency(amount: float, currency: str = "USD") -> str:
    """Render ``amount`` with two decimals in the conventions of ``currency``.

    >>> format_currency(1234.5)
    '$1,234.50'
    >>> format_currency(1234.5, 'EUR')
    '1.234,50 €'
    """
    try:
        v = float(amount or 0)
    except (TypeError, ValueError):
        v = 0.0
    code = (currency or "USD").upper()
    fmt = CURRENCY_FORMATS.get(code)
    body = _group_indian(abs(v)) if code in _INDIAN_GROUPING else f"{abs(v):,.2f}"
    sign = "-" if v < 0 else ""
    if fmt is None:
        return f"{sign}{code} {body}"
    symbol, suffix, thousands, decimal = fmt
    if (thousands, decimal) != (",", "."):
        body = body.replace(",", "\0").replace(".", decimal).replace("\0", thousands)
    if suffix:
        return f"{sign}{body} {symbol}"
    return f"{sign}{symbol}{body}"
