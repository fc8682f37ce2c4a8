#!/usr/bin/env python3
"""
Sales Import Script for the commission report

Usage:
    python scripts/import_sales.py path/to/sales.csv

CSV columns expected (camelCase, as exported from the sales screens):
    - saleId
    - saleDate
    - accountNumber
    - stockNumber
    - vin
    - salesperson
    - salespersonSplit (optional, "Alex:50;Sam:50")
    - saleType
    - saleDownPayment / downPayment / salePrice
    - year, make, model, trim

Behavior:
    - Updates existing sales matched by saleId
    - Creates new sales otherwise
    - Skips rows whose sale date cannot be parsed
    - Idempotent: safe to run multiple times
"""

import csv
import sys
import os

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pydantic import ValidationError
from app.database import SessionLocal, init_db
from app.models import Sale
from app.schemas import SaleRecord
from app.services.commission_calendar import parse_sale_date


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def clean(value: str) -> str:
    """Clean string: strip whitespace, return None if empty."""
    if not value:
        return None
    cleaned = value.strip()
    return cleaned if cleaned else None


def parse_split(value: str) -> list:
    """
    Parse a split column into participant dicts.

    Examples:
        "Alex:50;Sam:50" -> [{"name": "Alex", "share": 50}, {"name": "Sam", "share": 50}]
        "Alex" -> [{"name": "Alex", "share": 100}]
        "" -> None
    """
    value = clean(value)
    if not value:
        return None

    participants = []
    for part in value.split(";"):
        name, _, share = part.partition(":")
        if not name.strip():
            continue
        participants.append({"name": name.strip(), "share": clean(share) or 100})
    return participants or None


def row_to_record(row: dict) -> SaleRecord:
    data = {key: clean(value) for key, value in row.items() if key}
    data["salespersonSplit"] = parse_split(row.get("salespersonSplit", ""))
    return SaleRecord.model_validate(data)


def apply_record(sale: Sale, record: SaleRecord) -> None:
    sale.sale_date = record.sale_date
    sale.account_number = record.account_number
    sale.stock_number = record.stock_number
    sale.vin = record.vin
    sale.vin_last4 = record.vin_last4
    sale.salesperson = record.salesperson
    sale.salesperson_split = (
        [{"name": p.name, "share": float(p.share or 0)} for p in record.salesperson_split]
        if record.salesperson_split
        else None
    )
    sale.sale_type = record.sale_type
    sale.sale_down_payment = record.sale_down_payment
    sale.down_payment = record.down_payment
    sale.sale_price = record.sale_price
    sale.year = record.year
    sale.make = record.make
    sale.model = record.model
    sale.trim = record.trim


# =============================================================================
# MAIN IMPORT LOGIC
# =============================================================================


def import_sales(csv_path: str):
    """
    Import sales from CSV file into database.

    Args:
        csv_path: Path to the CSV file
    """
    print("=" * 60)
    print("DEALER COMMISSIONS - SALES IMPORT")
    print("=" * 60)
    print(f"CSV File: {csv_path}")
    print()

    if not os.path.exists(csv_path):
        print(f"[ERROR] File not found: {csv_path}")
        sys.exit(1)

    rows_processed = 0
    created = 0
    updated = 0
    skipped_invalid = 0
    skipped_bad_date = 0

    init_db()
    db = SessionLocal()

    try:
        with open(csv_path, "r", encoding="utf-8-sig") as f:
            reader = csv.DictReader(f)

            for row in reader:
                rows_processed += 1

                try:
                    record = row_to_record(row)
                except ValidationError as e:
                    print(f"  [SKIP_INVALID] Row {rows_processed}: {e.error_count()} invalid field(s)")
                    skipped_invalid += 1
                    continue

                if parse_sale_date(record.sale_date) is None:
                    print(f"  [SKIP_BAD_DATE] Row {rows_processed}: Unparsable sale date '{record.sale_date}'")
                    skipped_bad_date += 1
                    continue

                existing = None
                if record.sale_id:
                    existing = db.query(Sale).filter(Sale.sale_id == record.sale_id).first()

                if existing:
                    apply_record(existing, record)
                    print(f"  [UPDATED] Row {rows_processed}: {record.sale_id} ({record.sale_date})")
                    updated += 1
                else:
                    sale = Sale(sale_id=record.sale_id)
                    apply_record(sale, record)
                    db.add(sale)
                    print(f"  [CREATED] Row {rows_processed}: {record.sale_id or '-'} ({record.sale_date})")
                    created += 1

        db.commit()

        print()
        print("=" * 60)
        print("IMPORT COMPLETE")
        print("=" * 60)
        print(f"Rows processed:        {rows_processed}")
        print(f"Sales created:         {created}")
        print(f"Sales updated:         {updated}")
        print(f"Skipped (invalid):     {skipped_invalid}")
        print(f"Skipped (bad date):    {skipped_bad_date}")
        print()

    except Exception as e:
        db.rollback()
        print(f"\n[ERROR] Import failed: {e}")
        raise

    finally:
        db.close()


# =============================================================================
# ENTRY POINT
# =============================================================================


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python scripts/import_sales.py <csv_file>")
        print("Example: python scripts/import_sales.py data/sales.csv")
        sys.exit(1)

    import_sales(sys.argv[1])
