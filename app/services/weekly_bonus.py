"""
Weekly Sales Bonus Service

Counts deals inside a Monday-Sunday bonus window across the full sales
history, not just the reporting week being viewed.

Rules:
- Name Change sales never count
- A sale type that is present but not a recognized sale type does not count
- One physical deal counts once, however many salespeople share it
- Every unit over 5 pays 50, both organization-wide (Key) and per salesperson

Recomputed from scratch on each report build.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, Set

from app.schemas import SaleRecord
from app.services.commission_calendar import BonusWindow, parse_sale_date
from app.services.commission_rows import (
    DEAL_IDENTITY_FIELDS,
    NAME_CHANGE,
    classify_sale_type,
    first_present,
    normalize_name,
    normalize_sale_type,
    resolve_split,
    to_sale_record,
)

BONUS_THRESHOLD = 5
BONUS_PER_SALE = Decimal("50")

COUNTED_SALE_TYPES = frozenset({"sale", "trade", "trade-in", "tradein", "cashsale", "cash"})


@dataclass
class WeeklyBonusStats:
    deals: Set[str] = field(default_factory=set)

    @property
    def count(self) -> int:
        return len(self.deals)

    @property
    def over(self) -> int:
        return units_over_threshold(self.count)

    @property
    def bonus(self) -> Decimal:
        return bonus_dollars(self.count)


@dataclass
class WeeklyBonusBreakdown:
    window: BonusWindow
    per_salesperson: Dict[str, WeeklyBonusStats] = field(default_factory=dict)
    organization: WeeklyBonusStats = field(default_factory=WeeklyBonusStats)

    def for_salesperson(self, name: str) -> WeeklyBonusStats:
        return self.per_salesperson.get(normalize_name(name), WeeklyBonusStats())


def units_over_threshold(count: int) -> int:
    return max(count - BONUS_THRESHOLD, 0)


def bonus_dollars(count: int) -> Decimal:
    return units_over_threshold(count) * BONUS_PER_SALE


def is_bonus_eligible(sale: SaleRecord) -> bool:
    if classify_sale_type(sale.sale_type) == NAME_CHANGE:
        return False
    sale_type = normalize_sale_type(sale.sale_type)
    return not sale_type or sale_type in COUNTED_SALE_TYPES


def deal_identity(sale: SaleRecord, sale_day=None) -> str:
    """
    Deduplication key for one physical deal.

    saleId, else accountNumber, else stockNumber, else vin, else the sale
    date combined with the saleId.
    """
    identity = first_present(sale, DEAL_IDENTITY_FIELDS, skip_blank=True)
    if identity is not None:
        return str(identity)
    day = sale_day or parse_sale_date(sale.sale_date)
    return f"{day.isoformat() if day else ''}-{sale.sale_id or ''}"


def compute_weekly_bonus(sales: Iterable, window: BonusWindow) -> WeeklyBonusBreakdown:
    """
    Aggregate deal counts for the bonus window.

    Args:
        sales: Every known sale (records or mappings)
        window: Bonus window derived from the reporting week being viewed

    Returns:
        WeeklyBonusBreakdown with organization-wide and per-salesperson stats
    """
    breakdown = WeeklyBonusBreakdown(window=window)

    for raw in sales:
        sale = to_sale_record(raw)
        sale_day = parse_sale_date(sale.sale_date)
        if sale_day is None or not window.contains(sale_day):
            continue
        if not is_bonus_eligible(sale):
            continue

        deal_id = deal_identity(sale, sale_day)
        breakdown.organization.deals.add(deal_id)

        for name in {share.name for share in resolve_split(sale)}:
            breakdown.per_salesperson.setdefault(name, WeeklyBonusStats()).deals.add(deal_id)

    return breakdown

