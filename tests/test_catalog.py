from refund_calc.catalog import (
    filter_medications,
    find_medication,
    input_from_medication,
    load_medications,
    write_medications,
)
from refund_calc.config import CATALOG_CSV
from refund_calc.models import CostBreakdown, Medication


def test_bundled_catalog_loads():
    meds = load_medications(CATALOG_CSV)
    names = [m.name for m in meds]
    assert "Medication A" in names
    a = find_medication(meds, "1")
    assert a.price == 100 and a.unit == "mg"
    assert a.costs is None


def test_missing_catalog_is_empty(tmp_path):
    assert load_medications(tmp_path / "nope.csv") == []


def test_write_and_load_round_trip_skips_bad_rows(tmp_path):
    path = tmp_path / "meds.csv"
    meds = [
        Medication(id="c1", name="Sema (12WKS)", pharmacy="Rx One", treatment="Sema", unit="mg",
                   quantity=2.5, payment_term="12WKS",
                   costs=CostBreakdown(per_shipment_cost=100, shipping=15, dispensing=10, total=125)),
        Medication(id="2", name="Plain", price=50),
    ]
    assert write_medications(meds, path) == 2
    with path.open("a", encoding="utf-8") as f:
        f.write("3,Broken,,,,not-a-price,,,,,,,\n")
        f.write(",No id,,,,,,,,,,,\n")
    loaded = load_medications(path)
    assert loaded == meds
    assert loaded[0].weeks == 12


def test_filter_medications():
    meds = [
        Medication(id="1", name="Medication A", category="Prescription", pharmacy="Pharmacy 1"),
        Medication(id="2", name="Medication B", category="Prescription", pharmacy="Pharmacy 2"),
        Medication(id="3", name="Medication C", category="OTC", pharmacy="Pharmacy 1"),
    ]
    assert [m.id for m in filter_medications(meds, "otc")] == ["3"]
    assert [m.id for m in filter_medications(meds, "pharmacy 1")] == ["1", "3"]
    assert [m.id for m in filter_medications(meds, "medication b")] == ["2"]
    assert len(filter_medications(meds, "")) == 3


def test_input_from_medication():
    priced = Medication(id="1", name="Medication A", price=100, unit="mg")
    inp = input_from_medication(priced)
    assert inp.amount_paid == 100
    assert inp.medication_unit == "mg"
    assert inp.weeks_paid == 0 and inp.weeks_received == 0

    cogs = Medication(id="c", name="Sema", quantity=4, payment_term="12WKS", costs=CostBreakdown(total=300))
    inp = input_from_medication(cogs)
    assert inp.amount_paid == 300
    assert inp.medication_dispensed == 4
    assert inp.medication_unit == "units"
    assert inp.weeks_paid == 12
