import pandas as pd
import pytest
from openpyxl import Workbook

from refund_calc.ingest import (
    IngestError,
    cogs_records,
    list_sheets,
    medications_from_cogs,
    read_cogs_sheet,
)

HEADER = ["Treatment", "PAYMENT TERM", "Rx Details", "Pharmacy",
          "Per Shipment Cost", "Shipping", "Dispensing", "TOTAL"]


def write_workbook(path, rows, sheet="NEW COGS"):
    wb = Workbook()
    ws = wb.active
    ws.title = "Summary"
    ws.append(["ignored"])
    cogs = wb.create_sheet(sheet)
    cogs.append(HEADER)
    for r in rows:
        cogs.append(r)
    wb.save(path)


def test_rows_without_treatment_or_term_are_dropped(tmp_path):
    path = tmp_path / "cogs.xlsx"
    write_workbook(path, [
        ["Semaglutide", "12WKS", "2.5mg weekly", "Rx One", 100, 15, 10, 125],
        ["GLP-1 PROGRAMS", None, None, None, None, None, None, None],
        [None, "4WKS", "10ml", "Rx Two", 50, 5, 5, 60],
        ["Tirzepatide", "4 weeks", "10 ml vial", "Rx Two", "TBD", 5, None, 80],
    ])
    assert list_sheets(path) == ["Summary", "NEW COGS"]

    df = read_cogs_sheet(path)
    recs = cogs_records(df)
    assert [r["treatment"] for r in recs] == ["Semaglutide", "Tirzepatide"]
    # non-numeric cost cells count as 0
    assert recs[1]["per_shipment_cost"] == 0
    assert recs[1]["dispensing"] == 0
    assert recs[1]["total"] == 80

    meds = medications_from_cogs(df)
    sema, tirz = meds
    assert sema.id == "cogs-1"
    assert sema.name == "Semaglutide (12WKS)"
    assert sema.unit == "mg" and sema.quantity == 2.5
    assert sema.weeks == 12
    assert sema.pharmacy == "Rx One"
    assert sema.costs.cogs_total == 125
    assert tirz.unit == "ml" and tirz.quantity == 10
    assert tirz.weeks == 4


def test_missing_sheet_or_file(tmp_path):
    path = tmp_path / "other.xlsx"
    write_workbook(path, [], sheet="OLD COGS")
    with pytest.raises(IngestError):
        read_cogs_sheet(path)
    with pytest.raises(IngestError):
        read_cogs_sheet(tmp_path / "missing.xlsx")


def test_missing_required_columns():
    df = pd.DataFrame({"Treatment": ["A"], "Rx Details": ["1mg"]})
    with pytest.raises(IngestError):
        cogs_records(df)


def test_rx_details_without_quantity():
    df = pd.DataFrame({"Treatment": ["Consult"], "PAYMENT TERM": ["1 month"], "TOTAL": [20.0]})
    (med,) = medications_from_cogs(df)
    assert med.quantity is None
    assert med.unit == "units"
    assert med.costs.total == 20.0
    assert med.pharmacy is None
