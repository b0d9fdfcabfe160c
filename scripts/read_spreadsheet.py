#!/usr/bin/env python3
"""Print every sheet of a workbook: row count, column names and the first rows.

Usage:
  python scripts/read_spreadsheet.py WORKBOOK.xlsx [--rows 10]
"""
import sys
from pathlib import Path

from openpyxl import load_workbook


def main():
    if len(sys.argv) < 2:
        print('Usage: read_spreadsheet.py WORKBOOK.xlsx [--rows N]')
        return 1
    path = Path(sys.argv[1])
    n_rows = 10
    if '--rows' in sys.argv:
        try:
            n_rows = int(sys.argv[sys.argv.index('--rows') + 1])
        except (IndexError, ValueError):
            print('--rows needs an integer')
            return 1

    try:
        wb = load_workbook(filename=str(path), read_only=True, data_only=True)
    except (OSError, ValueError) as e:
        print(f'Error reading spreadsheet: {e}')
        return 1

    print('Sheet names:', wb.sheetnames)
    for sheet in wb.worksheets:
        print(f'\n=== Sheet: {sheet.title} ===')
        rows = sheet.iter_rows(values_only=True)
        try:
            header = [str(h).strip() if h is not None else '' for h in next(rows)]
        except StopIteration:
            print('Rows: 0')
            continue
        body = list(rows)
        print(f'Rows: {len(body)}')
        print('Columns:', header)
        print(f'\nFirst {n_rows} rows:')
        for row in body[:n_rows]:
            print(dict(zip(header, row)))
    wb.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
