#!/usr/bin/env python3
"""
One-off refund calculation from the command line.

Usage:
  python run_calc.py --paid 240 --weeks-paid 12 --weeks-received 8 [--dispensed "100mg"] [--json]
"""
import argparse
import json
import sys

from refund_calc.calculator import calculate_refund, can_calculate, format_currency
from refund_calc.models import CalculationInput
from refund_calc.parsing import parse_amount, parse_medication_amount, parse_weeks


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Calculate a prorated medication refund")
    parser.add_argument("--paid", required=True, help='Amount paid, e.g. "240" or "$1,200.50"')
    parser.add_argument("--weeks-paid", required=True, help='Weeks paid for, e.g. "12 weeks"')
    parser.add_argument("--weeks-received", default="0", help='Weeks received, e.g. "8w"')
    parser.add_argument("--dispensed", default="", help='Medication dispensed, e.g. "100mg"')
    parser.add_argument("--currency", default="USD")
    parser.add_argument("--notes", default="")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    args = parser.parse_args(argv)

    dispensed, unit = parse_medication_amount(args.dispensed)
    calc_input = CalculationInput(
        amount_paid=parse_amount(args.paid),
        medication_dispensed=dispensed,
        medication_unit=unit,
        weeks_paid=parse_weeks(args.weeks_paid),
        weeks_received=parse_weeks(args.weeks_received),
        notes=args.notes,
    )
    if not can_calculate(calc_input):
        print("Amount paid and weeks paid must both be greater than 0.", file=sys.stderr)
        return 2

    result = calculate_refund(calc_input)
    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return 0

    print(f"Cost per week:        {format_currency(result.cost_per_week, args.currency)}")
    print(f"Cost per unit:        {format_currency(result.cost_per_unit, args.currency)}")
    print(f"Medication per week:  {result.medication_per_week:.2f} {calc_input.medication_unit}")
    print(f"Weekly cost per unit: {format_currency(result.weekly_cost_per_unit, args.currency)}")
    print(f"Refund amount:        {format_currency(result.refund_amount, args.currency)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
