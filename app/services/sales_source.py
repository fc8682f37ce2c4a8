"""Sales handed to the commission engine as plain in-memory records.

One malformed row never takes the report down: split shares that are not
numbers ("50%" is read as 50, "lots" as no share) are coerced, and a row
that still fails validation is skipped with a warning.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

from pydantic import ValidationError

from app.schemas import SaleRecord, SplitParticipant

logger = logging.getLogger(__name__)


class SalesSource:
    def list_sales(self) -> List[SaleRecord]:
        raise NotImplementedError


def _share(value) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip().rstrip("%").strip()
    try:
        share = Decimal(text)
    except InvalidOperation:
        logger.warning("Ignoring unparsable split share %r", value)
        return None
    return share if share.is_finite() else None


def sale_to_record(sale) -> SaleRecord:
    """Convert a Sale row to the engine's SaleRecord."""
    split = None
    if sale.salesperson_split:
        split = [
            SplitParticipant(
                name=str(item.get("name")) if item.get("name") is not None else None,
                share=_share(item.get("share")),
            )
            for item in sale.salesperson_split
            if isinstance(item, dict)
        ]
    return SaleRecord(
        sale_id=sale.sale_id,
        sale_date=sale.sale_date,
        account_number=sale.account_number,
        stock_number=sale.stock_number,
        vin=sale.vin,
        vin_last4=sale.vin_last4,
        salesperson=sale.salesperson,
        salesperson_split=split,
        sale_type=sale.sale_type,
        sale_down_payment=sale.sale_down_payment,
        down_payment=sale.down_payment,
        sale_price=sale.sale_price,
        year=sale.year,
        make=sale.make,
        model=sale.model,
        trim=sale.trim,
    )


def records_from_rows(rows: Iterable) -> List[SaleRecord]:
    """Convert Sale rows, skipping any that cannot be read."""
    records = []
    for row in rows:
        try:
            records.append(sale_to_record(row))
        except ValidationError as e:
            logger.warning(
                "Skipping sale %s (%s): %d invalid field(s)",
                getattr(row, "id", None),
                getattr(row, "sale_id", None),
                e.error_count(),
            )
    return records


class SqlSalesSource(SalesSource):
    def __init__(self, db):
        self.db = db

    def list_sales(self):
        from app.models import Sale

        return records_from_rows(self.db.query(Sale).order_by(Sale.id).all())
