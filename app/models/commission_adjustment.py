"""
Commission Adjustment Models

Durable per-reporting-week adjustments made on the commission report:

- CommissionCollectionsBonus: the Key collections bonus and its lock flag
- CommissionManualOverride: hand-entered commission for cash, trade-in and
  name change rows, keyed by report row key
- CommissionRowNote: free-text notes per report row

week_key is the ISO date of the Friday that starts the reporting week.
"""

from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, Index, Integer, Numeric, String, Text
from app.database import Base


class CommissionCollectionsBonus(Base):
    __tablename__ = "commission_collections_bonus"

    week_key = Column(String(10), primary_key=True)
    collections_bonus = Column(Numeric(10, 2), nullable=False)
    locked = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        state = "locked" if self.locked else "open"
        return f"<CommissionCollectionsBonus {self.week_key} {self.collections_bonus} ({state})>"


class CommissionManualOverride(Base):
    __tablename__ = "commission_manual_overrides"

    id = Column(Integer, primary_key=True)
    week_key = Column(String(10), nullable=False, index=True)
    row_key = Column(String(500), nullable=False)
    value = Column(String(40), nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_commission_manual_overrides_week_row", "week_key", "row_key", unique=True),
    )

    def __repr__(self):
        return f"<CommissionManualOverride {self.week_key} {self.row_key}={self.value}>"


class CommissionRowNote(Base):
    __tablename__ = "commission_row_notes"

    id = Column(Integer, primary_key=True)
    week_key = Column(String(10), nullable=False, index=True)
    row_key = Column(String(500), nullable=False)
    notes = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_commission_row_notes_week_row", "week_key", "row_key", unique=True),
    )

    def __repr__(self):
        return f"<CommissionRowNote {self.week_key} {self.row_key}>"
