from refund_calc.parsing import parse_amount, parse_medication_amount, parse_typed_quantity, parse_weeks


def test_parse_weeks_examples():
    assert parse_weeks("12 weeks") == 12
    assert parse_weeks("8w") == 8
    assert parse_weeks("abc") == 0
    assert parse_weeks("3.5") == 3.5


def test_parse_weeks_takes_first_number_and_tolerates_junk():
    assert parse_weeks("12WKS") == 12
    assert parse_weeks("about 6 or 7 weeks") == 6
    assert parse_weeks("") == 0
    assert parse_weeks(None) == 0
    assert parse_weeks(4) == 4


def test_parse_medication_amount_examples():
    assert parse_medication_amount("100mg") == (100, "mg")
    assert parse_medication_amount("50 ml") == (50, "ml")
    assert parse_medication_amount("100") == (100, "units")
    assert parse_medication_amount("") == (0, "units")


def test_parse_medication_amount_units_are_case_insensitive():
    assert parse_medication_amount("2.5 MG") == (2.5, "mg")
    assert parse_medication_amount("1L") == (1, "l")
    assert parse_medication_amount("30 units") == (30, "units")
    assert parse_medication_amount("1 unit") == (1, "unit")


def test_parse_medication_amount_never_raises():
    # unknown unit falls back to the default, text without numbers to 0
    assert parse_medication_amount("4 tablets") == (4, "units")
    assert parse_medication_amount("none") == (0, "units")
    assert parse_medication_amount(None) == (0, "units")


def test_parse_amount():
    assert parse_amount("$1,200.50") == 1200.5
    assert parse_amount("240") == 240
    assert parse_amount(99) == 99
    assert parse_amount(-5) == 0
    assert parse_amount("-240") == 0
    assert parse_amount("-$240") == 0
    assert parse_amount("$-1,200") == 0
    assert parse_amount("n/a") == 0
    assert parse_amount(None) == 0


def test_parse_typed_quantity_tells_typed_default_from_missing():
    assert parse_typed_quantity("100 units") == (100, "units")
    assert parse_typed_quantity("100") == (100, None)
    assert parse_typed_quantity("") == (0, None)
