"""
Commission report snapshot value objects.

A snapshot is the complete, immutable result of building one reporting
week's commission report. Live reports rebuild it on every change; a
published report stores ``to_dict()`` and is replayed with ``from_dict()``
without touching sales data again.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple


def _money_out(value: Optional[Decimal]) -> Optional[float]:
    return None if value is None else float(value)


def _money_in(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value))


@dataclass(frozen=True)
class CommissionReportRowSnapshot:
    key: str
    sequence: int
    sale_id: str
    sale_date: str
    sale_date_display: str
    account_number: str
    salesperson: str
    vehicle: str
    vin_last4: str
    true_down_payment: Decimal
    base_commission: Decimal
    adjusted_commission: Decimal
    override_applied: bool
    override_details: Optional[str]
    notes: str
    sale_type: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "sequence": self.sequence,
            "saleId": self.sale_id,
            "saleDate": self.sale_date,
            "saleDateDisplay": self.sale_date_display,
            "accountNumber": self.account_number,
            "salesperson": self.salesperson,
            "vehicle": self.vehicle,
            "vinLast4": self.vin_last4,
            "trueDownPayment": _money_out(self.true_down_payment),
            "baseCommission": _money_out(self.base_commission),
            "adjustedCommission": _money_out(self.adjusted_commission),
            "overrideApplied": self.override_applied,
            "overrideDetails": self.override_details,
            "notes": self.notes,
            "saleType": self.sale_type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CommissionReportRowSnapshot":
        return cls(
            key=data.get("key", ""),
            sequence=int(data.get("sequence") or 0),
            sale_id=data.get("saleId") or "",
            sale_date=data.get("saleDate") or "",
            sale_date_display=data.get("saleDateDisplay") or "",
            account_number=data.get("accountNumber") or "",
            salesperson=data.get("salesperson") or "",
            vehicle=data.get("vehicle") or "",
            vin_last4=data.get("vinLast4") or "",
            true_down_payment=_money_in(data.get("trueDownPayment")) or Decimal("0"),
            base_commission=_money_in(data.get("baseCommission")) or Decimal("0"),
            adjusted_commission=_money_in(data.get("adjustedCommission")) or Decimal("0"),
            override_applied=bool(data.get("overrideApplied")),
            override_details=data.get("overrideDetails"),
            notes=data.get("notes") or "",
            sale_type=data.get("saleType") or "",
        )


@dataclass(frozen=True)
class CommissionSalespersonSnapshot:
    salesperson: str
    rows: Tuple[CommissionReportRowSnapshot, ...]
    total_adjusted_commission: Decimal
    # Key role only
    collections_bonus: Optional[Decimal] = None
    weekly_sales_count: Optional[int] = None
    weekly_sales_count_over_threshold: Optional[int] = None
    weekly_sales_bonus: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "salesperson": self.salesperson,
            "rows": [row.to_dict() for row in self.rows],
            "totalAdjustedCommission": _money_out(self.total_adjusted_commission),
        }
        if self.collections_bonus is not None:
            data["collectionsBonus"] = _money_out(self.collections_bonus)
        if self.weekly_sales_count is not None:
            data["weeklySalesCount"] = self.weekly_sales_count
            data["weeklySalesCountOverThreshold"] = self.weekly_sales_count_over_threshold
            data["weeklySalesBonus"] = _money_out(self.weekly_sales_bonus)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CommissionSalespersonSnapshot":
        weekly_count = data.get("weeklySalesCount")
        weekly_over = data.get("weeklySalesCountOverThreshold")
        return cls(
            salesperson=data.get("salesperson") or "",
            rows=tuple(CommissionReportRowSnapshot.from_dict(row) for row in data.get("rows") or []),
            total_adjusted_commission=_money_in(data.get("totalAdjustedCommission")) or Decimal("0"),
            collections_bonus=_money_in(data.get("collectionsBonus")),
            weekly_sales_count=None if weekly_count is None else int(weekly_count),
            weekly_sales_count_over_threshold=None if weekly_over is None else int(weekly_over),
            weekly_sales_bonus=_money_in(data.get("weeklySalesBonus")),
        )


@dataclass(frozen=True)
class CommissionReportTotals:
    total_commission: Decimal = Decimal("0")
    collections_bonus: Decimal = Decimal("0")
    bonus_weekly_sales_count: int = 0
    bonus_weekly_sales_over_threshold: int = 0
    bonus_weekly_sales_dollars: Decimal = Decimal("0")
    collections_complete: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalCommission": _money_out(self.total_commission),
            "collectionsBonus": _money_out(self.collections_bonus),
            "bonusWeeklySalesCount": self.bonus_weekly_sales_count,
            "bonusWeeklySalesOverThreshold": self.bonus_weekly_sales_over_threshold,
            "bonusWeeklySalesDollars": _money_out(self.bonus_weekly_sales_dollars),
            "collectionsComplete": self.collections_complete,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CommissionReportTotals":
        # Reports logged before the threshold rename carry "bonusWeeklySalesOver5"
        over = data.get("bonusWeeklySalesOverThreshold", data.get("bonusWeeklySalesOver5"))
        return cls(
            total_commission=_money_in(data.get("totalCommission")) or Decimal("0"),
            collections_bonus=_money_in(data.get("collectionsBonus")) or Decimal("0"),
            bonus_weekly_sales_count=int(data.get("bonusWeeklySalesCount") or 0),
            bonus_weekly_sales_over_threshold=int(over or 0),
            bonus_weekly_sales_dollars=_money_in(data.get("bonusWeeklySalesDollars")) or Decimal("0"),
            collections_complete=bool(data.get("collectionsComplete")),
        )


@dataclass(frozen=True)
class CommissionReportSnapshot:
    period_start: str
    period_end: str
    generated_at: str
    salespeople: Tuple[CommissionSalespersonSnapshot, ...] = ()
    totals: CommissionReportTotals = field(default_factory=CommissionReportTotals)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "periodStart": self.period_start,
            "periodEnd": self.period_end,
            "generatedAt": self.generated_at,
            "salespeople": [person.to_dict() for person in self.salespeople],
            "totals": self.totals.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CommissionReportSnapshot":
        return cls(
            period_start=data.get("periodStart") or "",
            period_end=data.get("periodEnd") or "",
            generated_at=data.get("generatedAt") or "",
            salespeople=tuple(
                CommissionSalespersonSnapshot.from_dict(person)
                for person in data.get("salespeople") or []
            ),
            totals=CommissionReportTotals.from_dict(data.get("totals") or {}),
        )
