"""COGS spreadsheet -> medication catalog entries.

Offline step, run through scripts/extract_cogs.py. The workbook's
"NEW COGS" sheet has one row per treatment and payment term:

    Treatment | PAYMENT TERM | Rx Details | Pharmacy |
    Per Shipment Cost | Shipping | Dispensing | TOTAL

Rows missing either Treatment or PAYMENT TERM are dropped (section headers
and blank spacer rows). Cost cells that are not numbers count as 0.
"""
import logging
import numbers
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
from openpyxl import load_workbook

from refund_calc.config import COGS_SHEET
from refund_calc.models import CostBreakdown, Medication
from refund_calc.parsing import parse_medication_amount

logger = logging.getLogger(__name__)

TREATMENT_COL = "Treatment"
TERM_COL = "PAYMENT TERM"
RX_COL = "Rx Details"
PHARMACY_COL = "Pharmacy"
COST_COLS = {
    "per_shipment_cost": "Per Shipment Cost",
    "shipping": "Shipping",
    "dispensing": "Dispensing",
    "total": "TOTAL",
}
REQUIRED_COLS = [TREATMENT_COL, TERM_COL]


class IngestError(Exception):
    pass


def list_sheets(xlsx_path: Path) -> List[str]:
    wb = load_workbook(filename=str(xlsx_path), read_only=True, data_only=True)
    try:
        return list(wb.sheetnames)
    finally:
        wb.close()


def read_cogs_sheet(xlsx_path: Path, sheet: str = COGS_SHEET) -> pd.DataFrame:
    xlsx_path = Path(xlsx_path)
    if not xlsx_path.exists():
        raise IngestError(f"workbook not found: {xlsx_path}")
    sheets = list_sheets(xlsx_path)
    if sheet not in sheets:
        raise IngestError(f"sheet {sheet!r} not found in {xlsx_path.name} (sheets: {sheets})")
    df = pd.read_excel(xlsx_path, sheet_name=sheet, engine="openpyxl")
    df.columns = [str(c).strip() for c in df.columns]
    return df


def _text(value: Any) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def _cost(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return 0.0
    if pd.isna(value):
        return 0.0
    return float(value)


def cogs_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Cleaned COGS rows as plain dicts."""
    missing = [c for c in REQUIRED_COLS if c not in df.columns]
    if missing:
        raise IngestError(f"missing required columns: {missing}")

    records = []
    for row in df.to_dict(orient="records"):
        treatment = _text(row.get(TREATMENT_COL))
        term = _text(row.get(TERM_COL))
        if not treatment or not term:
            continue
        rec = {
            "treatment": treatment,
            "payment_term": term,
            "rx_details": _text(row.get(RX_COL)),
            "pharmacy": _text(row.get(PHARMACY_COL)),
        }
        for key, col in COST_COLS.items():
            rec[key] = _cost(row.get(col))
        records.append(rec)
    return records


def medications_from_cogs(df: pd.DataFrame) -> List[Medication]:
    meds = []
    for n, rec in enumerate(cogs_records(df), start=1):
        quantity, unit = parse_medication_amount(rec["rx_details"])
        meds.append(Medication(
            id=f"cogs-{n}",
            name=f"{rec['treatment']} ({rec['payment_term']})",
            category="COGS",
            pharmacy=rec["pharmacy"] or None,
            treatment=rec["treatment"],
            unit=unit,
            quantity=quantity or None,
            payment_term=rec["payment_term"],
            costs=CostBreakdown(
                per_shipment_cost=rec["per_shipment_cost"],
                shipping=rec["shipping"],
                dispensing=rec["dispensing"],
                total=rec["total"],
            ),
        ))
    logger.info("Built %d catalog entries from %d sheet rows", len(meds), len(df))
    return meds
