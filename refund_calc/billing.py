from typing import Dict, Optional

from refund_calc.models import Medication


def calculate_profit(amount_paid: float, cogs_total: float) -> float:
    """Amount paid minus cost of goods (may be negative)."""
    return amount_paid - cogs_total


def calculate_profit_margin(amount_paid: float, cogs_total: float) -> float:
    """Profit as a percentage of the amount paid.

    Returns 0 when nothing was paid, e.g.
    - (100, 40) -> 60.0
    - (0, 40)   -> 0
    """
    if amount_paid == 0:
        return 0.0
    return ((amount_paid - cogs_total) / amount_paid) * 100


def medication_profit(medication: Medication, amount_paid: Optional[float] = None) -> Optional[Dict[str, float]]:
    """Profit figures for a catalog entry, or None when it has no cost breakdown.

    ``amount_paid`` defaults to the entry's price.
    """
    if medication.costs is None:
        return None
    paid = medication.price if amount_paid is None else amount_paid
    paid = float(paid or 0)
    cogs = medication.costs.cogs_total
    return {
        "amount_paid": paid,
        "cogs_total": cogs,
        "profit": calculate_profit(paid, cogs),
        "profit_margin_percent": calculate_profit_margin(paid, cogs),
    }
