#!/usr/bin/env python3
"""Generate messy spreadsheets for manual and performance testing.

The output looks like a human-made export:
- Title and note rows above the header
- Blank rows scattered through the data
- Amounts in mixed notations ("$1,234.56", "(45.00)", "1.234,56", plain numbers)
- Dates in mixed notations (ISO, DD/MM/YYYY, "15 Mar 2024", Excel serials in XLSX)
- A share of exact duplicates and rows with a blank amount

Suitable as input for `tabular-import FILE --inspect` or a full dry run.
"""
from __future__ import annotations

import argparse
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

KINDS = ("expenses", "income", "employees", "vendors")

_DESCRIPTIONS = ["Office rent", "Fuel", "Software licence", "Catering", "Consulting fee",
                 "Hardware", "Cleaning service", "Travel", "Marketing", "Insurance"]
_NAMES = ["Acme Corp", "Globex", "Initech", "Umbrella", "Hooli", "Vandelay Industries",
          "Stark Supplies", "Wayne Logistics", "Wonka Foods", "Tyrell Systems"]
_ROLES = ["Carpenter", "Electrician", "Painter", "Plumber", "Foreman", "Helper"]


def _money_text(rng: np.random.Generator, value: float) -> Any:
    style = rng.integers(0, 5)
    if style == 0:
        return f"${value:,.2f}"
    if style == 1:
        return f"({value:,.2f})"
    if style == 2:
        # 1.234,56
        return f"{value:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    if style == 3:
        return f"R$ {value:.2f}"
    return round(value, 2)


def _date_text(rng: np.random.Generator, day: date) -> Any:
    style = rng.integers(0, 4)
    if style == 0:
        return day.isoformat()
    if style == 1:
        return day.strftime("%d/%m/%Y")
    if style == 2:
        return day.strftime("%d %b %Y")
    return day


def generate_rows(kind: str, rows: int, seed: int = 42, dup_ratio: float = 0.05,
                  blank_ratio: float = 0.03) -> pd.DataFrame:
    """Header row plus rows of data for kind, with duplicates and gaps mixed in."""
    rng = np.random.default_rng(seed)
    start = date(2024, 1, 1)
    records: list[list[Any]] = []

    if kind in ("expenses", "income"):
        header = ["Date", "Description", "Amount", "Category",
                  "Vendor" if kind == "expenses" else "Client"]
        for _ in range(rows):
            day = start + timedelta(days=int(rng.integers(0, 365)))
            amount = float(np.round(rng.uniform(5, 5000), 2))
            records.append([
                _date_text(rng, day),
                str(rng.choice(_DESCRIPTIONS)),
                None if rng.random() < blank_ratio else _money_text(rng, amount),
                str(rng.choice(["Operations", "Payroll", "Admin", "Sales"])),
                str(rng.choice(_NAMES)),
            ])
    elif kind == "employees":
        header = ["Employee Name", "Role", "Email", "Hourly Wage"]
        for i in range(rows):
            records.append([
                None if rng.random() < blank_ratio else f"Worker {i:05d}",
                str(rng.choice(_ROLES)),
                f"worker{i:05d}@example.com",
                _money_text(rng, float(np.round(rng.uniform(15, 80), 2))),
            ])
    elif kind == "vendors":
        header = ["Supplier", "Contact", "Phone", "Service"]
        for i in range(rows):
            records.append([
                f"{rng.choice(_NAMES)} {i:05d}",
                f"Contact {i}",
                f"555-{int(rng.integers(1000, 9999))}",
                str(rng.choice(["Lumber", "Paint", "Tools", "Transport"])),
            ])
    else:
        raise ValueError(f"unknown kind '{kind}'")

    n_dups = int(rows * dup_ratio)
    if n_dups and records:
        picks = rng.integers(0, len(records), n_dups)
        records.extend(list(records[int(p)]) for p in picks)

    # Blank separator rows at random positions
    for pos in sorted(rng.integers(0, max(1, len(records)), max(1, rows // 100)), reverse=True):
        records.insert(int(pos), [None] * len(header))

    return pd.DataFrame([header, *records])


def create_file(output_path: Path, kind: str, rows: int, title: str, seed: int = 42) -> None:
    """Write a messy sheet: title row, note row, blank row, header, data."""
    body = generate_rows(kind, rows, seed)
    width = body.shape[1]
    preamble = pd.DataFrame([
        [title] + [None] * (width - 1),
        [f"Exported {date.today().isoformat()}"] + [None] * (width - 1),
        [None] * width,
    ])
    sheet = pd.concat([preamble, body], ignore_index=True)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    if output_path.suffix.lower() == ".csv":
        sheet.to_csv(output_path, header=False, index=False)
    else:
        with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
            sheet.to_excel(writer, sheet_name=kind.capitalize(), header=False, index=False)

    print(f"Created {output_path}")
    print(f"  Kind: {kind}")
    print(f"  Rows: {len(sheet)} (header at row {len(preamble)})")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate messy spreadsheets for import testing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s expenses.xlsx --kind expenses --rows 900
  %(prog)s staff.csv --kind employees --rows 50 --seed 7
        """
    )
    parser.add_argument("output", type=Path, help="Output .xlsx or .csv path")
    parser.add_argument("--kind", choices=KINDS, default="expenses", help="Dataset to imitate")
    parser.add_argument("--rows", type=int, default=900, help="Data rows before duplicates (default: 900)")
    parser.add_argument("--title", default="Monthly report", help="Title written above the header")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1

    create_file(args.output, args.kind, args.rows, args.title, args.seed)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
