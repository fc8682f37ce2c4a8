from app.models.sale import Sale
from app.models.commission_adjustment import (
    CommissionCollectionsBonus,
    CommissionManualOverride,
    CommissionRowNote,
)
from app.models.commission_report_log import CommissionReportLog

__all__ = [
    "Sale",
    "CommissionCollectionsBonus",
    "CommissionManualOverride",
    "CommissionRowNote",
    "CommissionReportLog",
]
