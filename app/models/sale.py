"""
Sale Model

Read-only source of sale records for the commission report. Rows are written
by the sales entry screens; the commission engine only reads them.

sale_date is kept as free text because historical imports carry a mix of
ISO and M/D/Y strings; unparsable values are skipped by the report.
"""

from datetime import datetime
from sqlalchemy import Column, DateTime, Integer, JSON, Numeric, String
from app.database import Base


class Sale(Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True)
    sale_id = Column(String(100), nullable=True, index=True)
    sale_date = Column(String(40), nullable=True, index=True)
    account_number = Column(String(100), nullable=True)
    stock_number = Column(String(100), nullable=True)
    vin = Column(String(32), nullable=True)
    vin_last4 = Column(String(8), nullable=True)
    salesperson = Column(String(120), nullable=True)
    salesperson_split = Column(JSON, nullable=True)  # [{"name": ..., "share": ...}]
    sale_type = Column(String(40), nullable=True)
    sale_price = Column(Numeric(12, 2), nullable=True)
    sale_down_payment = Column(Numeric(12, 2), nullable=True)
    down_payment = Column(Numeric(12, 2), nullable=True)
    year = Column(Integer, nullable=True)
    make = Column(String(80), nullable=True)
    model = Column(String(80), nullable=True)
    trim = Column(String(80), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    SALE_TYPES = ["Sale", "Trade-in", "Name Change", "Cash Sale"]

    def __repr__(self):
        return f"<Sale {self.sale_id} ({self.sale_date})>"
