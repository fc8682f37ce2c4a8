"""
Commission Report Logs

Published commission reports are stored verbatim. A logged report is
replayed from its payload and is never rebuilt from live sales data.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from app.services.report_snapshot import CommissionReportSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoggedReport:
    id: int
    report_date: date
    logged_at: datetime
    snapshot: CommissionReportSnapshot


class ReportLogSink:
    """Destination for published snapshots."""

    def add_log(self, snapshot: CommissionReportSnapshot, report_date: Union[str, date]) -> bool:
        raise NotImplementedError

    def list_logs(self) -> List[LoggedReport]:
        raise NotImplementedError

    def get_log(self, log_id: int) -> Optional[LoggedReport]:
        raise NotImplementedError

    def delete_log(self, log_id: int) -> bool:
        raise NotImplementedError


def _to_report(record) -> LoggedReport:
    return LoggedReport(
        id=record.id,
        report_date=record.report_date,
        logged_at=record.logged_at,
        snapshot=CommissionReportSnapshot.from_dict(record.payload),
    )


class SqlReportLogSink(ReportLogSink):
    """Report log backed by the commission_report_logs table."""

    def __init__(self, db):
        self.db = db

    def add_log(self, snapshot, report_date):
        from app.models import CommissionReportLog

        if isinstance(report_date, str):
            report_date = date.fromisoformat(report_date)

        try:
            record = CommissionReportLog(
                report_date=report_date,
                logged_at=datetime.utcnow(),
                payload=snapshot.to_dict(),
            )
            self.db.add(record)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("Failed to log commission report for %s: %s", report_date, e)
            return False
        return True

    def list_logs(self):
        from app.models import CommissionReportLog

        records = (
            self.db.query(CommissionReportLog)
            .order_by(CommissionReportLog.report_date.desc(), CommissionReportLog.logged_at.desc())
            .all()
        )
        return [_to_report(record) for record in records]

    def get_log(self, log_id):
        from app.models import CommissionReportLog

        record = self.db.query(CommissionReportLog).filter(CommissionReportLog.id == log_id).first()
        return _to_report(record) if record else None

    def delete_log(self, log_id):
        from app.models import CommissionReportLog

        record = self.db.query(CommissionReportLog).filter(CommissionReportLog.id == log_id).first()
        if not record:
            return False
        self.db.delete(record)
        self.db.commit()
        return True
