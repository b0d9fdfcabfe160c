"""Medication catalog (read-only reference data).

The catalog lives in data/medications.csv, either hand-maintained or
generated from the COGS spreadsheet by scripts/extract_cogs.py.
"""
import csv
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from refund_calc.config import CATALOG_CSV
from refund_calc.models import CalculationInput, CostBreakdown, Medication
from refund_calc.parsing import DEFAULT_UNIT

logger = logging.getLogger(__name__)

CATALOG_COLUMNS = [
    "id",
    "name",
    "category",
    "pharmacy",
    "treatment",
    "price",
    "unit",
    "quantity",
    "payment_term",
    "per_shipment_cost",
    "shipping",
    "dispensing",
    "total",
]
COST_COLUMNS = ("per_shipment_cost", "shipping", "dispensing", "total")


def _opt_float(raw) -> Optional[float]:
    s = (raw or "").strip().replace(",", "")
    if s == "":
        return None
    return float(s)


def medication_from_row(row: dict) -> Medication:
    """Build a Medication from one catalog CSV row. Raises ValueError on bad numbers."""
    mid = (row.get("id") or "").strip()
    name = (row.get("name") or "").strip()
    if not mid or not name:
        raise ValueError("catalog row needs both id and name")

    costs = None
    if any((row.get(c) or "").strip() for c in COST_COLUMNS):
        costs = CostBreakdown(
            per_shipment_cost=_opt_float(row.get("per_shipment_cost")) or 0.0,
            shipping=_opt_float(row.get("shipping")) or 0.0,
            dispensing=_opt_float(row.get("dispensing")) or 0.0,
            total=_opt_float(row.get("total")) or 0.0,
        )

    return Medication(
        id=mid,
        name=name,
        category=(row.get("category") or "").strip() or None,
        pharmacy=(row.get("pharmacy") or "").strip() or None,
        treatment=(row.get("treatment") or "").strip() or None,
        price=_opt_float(row.get("price")),
        unit=(row.get("unit") or "").strip() or None,
        quantity=_opt_float(row.get("quantity")),
        payment_term=(row.get("payment_term") or "").strip() or None,
        costs=costs,
    )


def medication_to_row(med: Medication) -> dict:
    costs = med.costs
    return {
        "id": med.id,
        "name": med.name,
        "category": med.category or "",
        "pharmacy": med.pharmacy or "",
        "treatment": med.treatment or "",
        "price": "" if med.price is None else med.price,
        "unit": med.unit or "",
        "quantity": "" if med.quantity is None else med.quantity,
        "payment_term": med.payment_term or "",
        "per_shipment_cost": costs.per_shipment_cost if costs else "",
        "shipping": costs.shipping if costs else "",
        "dispensing": costs.dispensing if costs else "",
        "total": costs.total if costs else "",
    }


def load_medications(path: Path = CATALOG_CSV) -> List[Medication]:
    """Load the catalog. A missing file is an empty catalog; malformed rows are skipped."""
    path = Path(path)
    meds: List[Medication] = []
    if not path.exists():
        logger.info("No medication catalog at %s", path)
        return meds
    with path.open(encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        for line_no, row in enumerate(reader, start=2):
            try:
                meds.append(medication_from_row(row))
            except ValueError as e:
                logger.warning("Skipping catalog row %d in %s: %s", line_no, path, e)
    return meds


def write_medications(meds: Iterable[Medication], path: Path) -> int:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=CATALOG_COLUMNS)
        writer.writeheader()
        for med in meds:
            writer.writerow(medication_to_row(med))
            count += 1
    return count


def filter_medications(meds: Iterable[Medication], query: str) -> List[Medication]:
    """Case-insensitive substring match on name, category, pharmacy and treatment."""
    q = (query or "").strip().lower()
    if not q:
        return list(meds)
    hits = []
    for med in meds:
        fields = (med.name, med.category, med.pharmacy, med.treatment)
        if any(q in f.lower() for f in fields if f):
            hits.append(med)
    return hits


def find_medication(meds: Iterable[Medication], medication_id: str) -> Optional[Medication]:
    for med in meds:
        if med.id == medication_id:
            return med
    return None


def input_from_medication(med: Medication) -> CalculationInput:
    """Pre-filled calculation input for a catalog entry (nothing received yet)."""
    if med.price is not None:
        amount = med.price
    elif med.costs is not None:
        amount = med.costs.cogs_total
    else:
        amount = 0.0
    return CalculationInput(
        amount_paid=float(amount),
        medication_dispensed=float(med.quantity or 0),
        medication_unit=med.unit or DEFAULT_UNIT,
        weeks_paid=med.weeks,
        weeks_received=0.0,
    )
