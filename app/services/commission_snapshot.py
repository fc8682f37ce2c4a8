"""
Commission Snapshot Builder

Builds the immutable CommissionReportSnapshot for one reporting week.

The builder is a pure function of its inputs: the week's sales, the notes
map, the week boundaries and a SnapshotOptions value carrying every
adjustment (collections bonus selection and lock, the persisted bonus
fallback, manual overrides) plus the full sales history used by the weekly
bonus. It never reads storage itself.

Ordering:
- Rows per salesperson: account number (numeric when both parse as
  integers, numeric before non-numeric, otherwise text), then sale date;
  sequence numbers 1..N are assigned after sorting
- Salespeople: Key first, then alphabetical

Collections bonus precedence for Key (first match wins):
1. A numeric in-memory selection for the week
2. The persisted value, when the bonus is locked but the selection is missing
3. Unselected
"""

import functools
import logging
import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from app.services.commission_calendar import bonus_window_of
from app.services.commission_errors import PublishValidationError
from app.services.commission_math import CommissionPolicy, default_policy
from app.services.commission_rows import KEY_ROLE, build_rows_for_sale, normalize_name
from app.services.report_snapshot import (
    CommissionReportRowSnapshot,
    CommissionReportSnapshot,
    CommissionReportTotals,
    CommissionSalespersonSnapshot,
)
from app.services.weekly_bonus import compute_weekly_bonus

logger = logging.getLogger(__name__)

INTEGER_PATTERN = re.compile(r"^\s*-?\d+\s*$")


@dataclass(frozen=True)
class SnapshotOptions:
    collections_selections: Mapping[str, Any] = field(default_factory=dict)
    collections_locks: Mapping[str, bool] = field(default_factory=dict)
    persisted_collections_bonus: Optional[Decimal] = None
    manual_overrides: Mapping[str, Decimal] = field(default_factory=dict)
    all_sales: Optional[Iterable] = None


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, (int, float)):
        return Decimal(str(value)).is_finite()
    return False


def _normalized_lookup(values: Mapping[str, Any], prefer_numbers: bool = False) -> Dict[str, Any]:
    """Re-key a name mapping through normalize_name ("key", "KEY" -> "Key")."""
    normalized: Dict[str, Any] = {}
    for name, value in values.items():
        canonical = normalize_name(name)
        if prefer_numbers and canonical in normalized and _is_number(normalized[canonical]):
            continue
        normalized[canonical] = value
    return normalized


def resolve_collections_bonus(options: SnapshotOptions) -> Tuple[Optional[Decimal], bool]:
    """
    Resolve the Key collections bonus for a week.

    Returns:
        (value or None when unselected, locked flag)
    """
    selections = _normalized_lookup(options.collections_selections, prefer_numbers=True)
    locks = _normalized_lookup(options.collections_locks)
    locked = bool(locks.get(KEY_ROLE, False))

    selection = selections.get(KEY_ROLE)
    if _is_number(selection):
        return Decimal(str(selection)), locked

    if locked and _is_number(options.persisted_collections_bonus):
        logger.debug("Collections bonus recovered from storage for locked week")
        return Decimal(str(options.persisted_collections_bonus)), locked

    return None, locked


def _as_int(value: str) -> Optional[int]:
    if INTEGER_PATTERN.match(value):
        return int(value)
    return None


def _compare(left, right) -> int:
    return (left > right) - (left < right)


def compare_rows(a: CommissionReportRowSnapshot, b: CommissionReportRowSnapshot) -> int:
    account_a = a.account_number or ""
    account_b = b.account_number or ""
    if account_a != account_b:
        num_a = _as_int(account_a)
        num_b = _as_int(account_b)
        if num_a is not None and num_b is not None and num_a != num_b:
            return _compare(num_a, num_b)
        if num_a is not None and num_b is None:
            return -1
        if num_a is None and num_b is not None:
            return 1
        return _compare(account_a, account_b)

    if a.sale_date != b.sale_date:
        return _compare(a.sale_date, b.sale_date)
    return _compare(a.key, b.key)


def salesperson_sort_key(name: str) -> Tuple[bool, str, str]:
    return (name != KEY_ROLE, name.casefold(), name)


def _isoformat(value: Union[date, datetime, str]) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_snapshot(
    sales_in_week: Iterable,
    notes_map: Optional[Mapping[str, str]],
    week_start: Union[date, datetime],
    week_end: Union[date, datetime],
    options: Optional[SnapshotOptions] = None,
    policy: Optional[CommissionPolicy] = None,
    generated_at: Optional[str] = None,
) -> CommissionReportSnapshot:
    """
    Build the commission report for one reporting week.

    Args:
        sales_in_week: Sales whose date falls in the reporting week
        notes_map: Row key -> note text
        week_start: Friday starting the week
        week_end: Thursday ending the week
        options: Adjustments and the full sales history for the weekly bonus
        policy: Commission policy (defaults to the dealership pay plan)
        generated_at: Timestamp to stamp on the snapshot (defaults to now, UTC)

    Returns:
        CommissionReportSnapshot
    """
    options = options or SnapshotOptions()
    policy = policy or default_policy
    sales_in_week = list(sales_in_week)

    collections_value, collections_locked = resolve_collections_bonus(options)

    bonus_window = bonus_window_of(week_start)
    bonus_source = options.all_sales if options.all_sales is not None else sales_in_week
    weekly_bonus = compute_weekly_bonus(bonus_source, bonus_window)

    rows_by_salesperson: Dict[str, List[CommissionReportRowSnapshot]] = {}
    for sale in sales_in_week:
        for row in build_rows_for_sale(sale, notes_map, options.manual_overrides, policy):
            rows_by_salesperson.setdefault(row.salesperson, []).append(row)

    salespeople = []
    for name in sorted(rows_by_salesperson, key=salesperson_sort_key):
        rows = sorted(rows_by_salesperson[name], key=functools.cmp_to_key(compare_rows))
        numbered = tuple(replace(row, sequence=index) for index, row in enumerate(rows, start=1))
        total = sum((row.adjusted_commission for row in numbered), Decimal("0"))

        if name == KEY_ROLE:
            stats = weekly_bonus.organization
            salespeople.append(
                CommissionSalespersonSnapshot(
                    salesperson=name,
                    rows=numbered,
                    total_adjusted_commission=total,
                    collections_bonus=collections_value,
                    weekly_sales_count=stats.count,
                    weekly_sales_count_over_threshold=stats.over,
                    weekly_sales_bonus=stats.bonus,
                )
            )
        else:
            salespeople.append(
                CommissionSalespersonSnapshot(
                    salesperson=name, rows=numbered, total_adjusted_commission=total
                )
            )

    key_entry = next((person for person in salespeople if person.salesperson == KEY_ROLE), None)
    totals = CommissionReportTotals(
        total_commission=key_entry.total_adjusted_commission if key_entry else Decimal("0"),
        collections_bonus=collections_value if collections_value is not None else Decimal("0"),
        bonus_weekly_sales_count=key_entry.weekly_sales_count if key_entry else 0,
        bonus_weekly_sales_over_threshold=key_entry.weekly_sales_count_over_threshold if key_entry else 0,
        bonus_weekly_sales_dollars=key_entry.weekly_sales_bonus if key_entry else Decimal("0"),
        collections_complete=collections_value is not None and collections_locked,
    )

    logger.debug(
        "Built commission snapshot %s..%s: %d salespeople, %d deals in bonus window",
        _isoformat(week_start),
        _isoformat(week_end),
        len(salespeople),
        weekly_bonus.organization.count,
    )

    return CommissionReportSnapshot(
        period_start=_isoformat(week_start),
        period_end=_isoformat(week_end),
        generated_at=generated_at or utc_timestamp(),
        salespeople=tuple(salespeople),
        totals=totals,
    )


def validate_for_publish(snapshot: Optional[CommissionReportSnapshot]) -> None:
    """Raise PublishValidationError unless the snapshot may be logged or exported."""
    if snapshot is None or not snapshot.salespeople:
        raise PublishValidationError("No commission data available for this period.")
    if not snapshot.totals.collections_complete:
        raise PublishValidationError(
            "Select and lock a collections bonus for Key before logging or exporting the commission report."
        )


def publish_snapshot(snapshot: CommissionReportSnapshot, sink) -> bool:
    """
    Validate a snapshot and hand it to the report log.

    Args:
        snapshot: The live snapshot to freeze
        sink: Report log sink with add_log(snapshot, report_date)

    Returns:
        The sink's success flag

    Raises:
        PublishValidationError: collections bonus not locked or no salespeople
    """
    validate_for_publish(snapshot)
    published = sink.add_log(snapshot, snapshot.period_end)
    if published:
        logger.info("Commission report %s..%s logged", snapshot.period_start, snapshot.period_end)
    return published
