#!/usr/bin/env python3
"""Build data/medications.csv from the COGS workbook.

Usage:
  python scripts/extract_cogs.py WORKBOOK.xlsx [--sheet "NEW COGS"] [--out data/medications.csv] [--append]

With --append the generated entries are added after the existing catalog
rows (entries with the same id are replaced); otherwise the catalog file
is overwritten.
"""
import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from refund_calc.catalog import load_medications, write_medications  # noqa: E402
from refund_calc.config import CATALOG_CSV, COGS_SHEET, setup_logging  # noqa: E402
from refund_calc.ingest import IngestError, cogs_records, medications_from_cogs, read_cogs_sheet  # noqa: E402

logger = logging.getLogger("extract_cogs")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Extract catalog entries from the COGS spreadsheet")
    parser.add_argument("workbook", type=Path)
    parser.add_argument("--sheet", default=COGS_SHEET)
    parser.add_argument("--out", type=Path, default=CATALOG_CSV)
    parser.add_argument("--append", action="store_true", help="Keep existing catalog rows")
    parser.add_argument("--dump", action="store_true", help="Print the cleaned rows as JSON and exit")
    args = parser.parse_args(argv)

    setup_logging()
    try:
        df = read_cogs_sheet(args.workbook, args.sheet)
        if args.dump:
            records = cogs_records(df)
            print(json.dumps(records, ensure_ascii=False, indent=2))
            print(f"\nTotal records: {len(records)}")
            return 0
        meds = medications_from_cogs(df)
    except IngestError as e:
        logger.error("%s", e)
        return 1

    if args.append:
        new_ids = {m.id for m in meds}
        existing = [m for m in load_medications(args.out) if m.id not in new_ids]
        meds = existing + meds

    count = write_medications(meds, args.out)
    logger.info("Wrote %d catalog entries to %s", count, args.out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
