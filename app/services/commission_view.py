"""
Commission Report View

One rendering contract for both the live report (editable) and archived
logged reports (read-only). Templates render a ReportView and never look at
sales data.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Mapping, Optional, Sequence

from app.services.commission_calendar import bonus_window_of, format_week_label, parse_sale_date
from app.services.commission_rows import (
    MANUAL_COMMISSION_TYPES,
    SALE_TYPE_LABELS,
    classify_sale_type,
    is_key_role,
)
from app.services.report_snapshot import (
    CommissionReportRowSnapshot,
    CommissionReportSnapshot,
    CommissionSalespersonSnapshot,
)

STATUS_LOCKED = "Locked for this period"
STATUS_UNLOCKED = "Unlocked"
STATUS_MISSING = "No bonus selected"


@dataclass
class RowView:
    row: CommissionReportRowSnapshot
    sale_type_category: str
    sale_type_label: str
    manual_entry: bool
    manual_value: str = ""


@dataclass
class SalespersonView:
    snapshot: CommissionSalespersonSnapshot
    is_key: bool
    rows: List[RowView]
    collections_bonus: Decimal
    weekly_bonus: Decimal
    payout: Decimal
    collections_locked: bool = False
    collections_selected: bool = False
    collections_status: str = ""

    @property
    def collections_missing(self) -> bool:
        return self.is_key and not self.collections_selected

    @property
    def can_toggle_lock(self) -> bool:
        return self.is_key and (self.collections_locked or self.collections_selected)


@dataclass
class ReportView:
    snapshot: CommissionReportSnapshot
    editable: bool
    week_label: str
    bonus_window_label: str
    salespeople: List[SalespersonView]
    collections_options: Sequence[Decimal] = field(default_factory=tuple)
    week_key: Optional[str] = None

    @property
    def publish_blocked(self) -> bool:
        return not self.snapshot.totals.collections_complete


def _collections_status(locked: bool, selected: bool) -> str:
    if locked:
        return STATUS_LOCKED
    if selected:
        return STATUS_UNLOCKED
    return STATUS_MISSING


def build_report_view(
    snapshot: CommissionReportSnapshot,
    editable: bool,
    collections_locked: Optional[bool] = None,
    manual_overrides: Optional[Mapping[str, str]] = None,
    collections_options: Sequence = (),
    week_key: Optional[str] = None,
) -> ReportView:
    """
    Build the view model for a live or archived snapshot.

    Args:
        snapshot: Snapshot to render
        editable: True for the live report, False for logged reports
        collections_locked: Live lock flag; archived reports use the
            snapshot's collectionsComplete flag
        manual_overrides: Row key -> raw manual value (live report only)
        collections_options: Bonus tiers offered in the selector
        week_key: Reporting week key for edit actions
    """
    manual_overrides = manual_overrides or {}
    if collections_locked is None:
        collections_locked = snapshot.totals.collections_complete

    # Older logs may carry blank or non-ISO periods; those render without labels
    period_start = parse_sale_date(snapshot.period_start)
    period_end = parse_sale_date(snapshot.period_end)
    week_label = format_week_label(period_start, period_end) if period_start and period_end else ""
    bonus_window_label = ""
    if period_start is not None:
        bonus_window = bonus_window_of(period_start)
        bonus_window_label = format_week_label(bonus_window.start, bonus_window.end)

    people = []
    for person in snapshot.salespeople:
        is_key = is_key_role(person.salesperson)

        rows = []
        for row in person.rows:
            category = classify_sale_type(row.sale_type)
            manual = category in MANUAL_COMMISSION_TYPES
            rows.append(
                RowView(
                    row=row,
                    sale_type_category=category,
                    sale_type_label=SALE_TYPE_LABELS[category],
                    manual_entry=editable and manual,
                    manual_value=manual_overrides.get(row.key, "") if manual else "",
                )
            )

        collections_bonus = (person.collections_bonus or Decimal("0")) if is_key else Decimal("0")
        weekly_bonus = (person.weekly_sales_bonus or Decimal("0")) if is_key else Decimal("0")
        selected = is_key and person.collections_bonus is not None
        locked = is_key and bool(collections_locked)

        people.append(
            SalespersonView(
                snapshot=person,
                is_key=is_key,
                rows=rows,
                collections_bonus=collections_bonus,
                weekly_bonus=weekly_bonus,
                payout=person.total_adjusted_commission + collections_bonus + weekly_bonus,
                collections_locked=locked,
                collections_selected=selected,
                collections_status=_collections_status(locked, selected) if is_key else "",
            )
        )

    return ReportView(
        snapshot=snapshot,
        editable=editable,
        week_label=week_label,
        bonus_window_label=bonus_window_label,
        salespeople=people,
        collections_options=tuple(Decimal(str(option)) for option in collections_options),
        week_key=week_key,
    )
