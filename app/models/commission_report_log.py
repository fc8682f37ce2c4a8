from datetime import datetime
from sqlalchemy import Column, Date, DateTime, Integer, JSON
from app.database import Base


class CommissionReportLog(Base):
    """A published commission report. payload is the frozen snapshot document."""

    __tablename__ = "commission_report_logs"

    id = Column(Integer, primary_key=True)
    report_date = Column(Date, nullable=False, index=True)  # period end (Thursday)
    logged_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    payload = Column(JSON, nullable=False)

    def __repr__(self):
        return f"<CommissionReportLog {self.id} {self.report_date}>"
