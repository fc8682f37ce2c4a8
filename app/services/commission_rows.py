"""
Commission Row Builder

Turns one sale into report rows, one per salesperson on the deal.

Rules:
- Commissionable amount = first present of sale_down_payment, down_payment,
  sale_price (else 0)
- Split shares are normalized to sum to 100 (rounded to 4 places)
- Cash, Trade-in and Name Change sales are paid by hand: the row amount is
  the manual value entered on the report, or 0 until one is entered
- Every other sale runs the policy's override on its share of the base
  commission; split deals are always flagged
"""

import re
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, List, Mapping, Optional, Union

from app.schemas import SaleRecord
from app.services.commission_calendar import parse_sale_date
from app.services.commission_math import CommissionPolicy, clamp_currency, default_policy
from app.services.report_snapshot import CommissionReportRowSnapshot

KEY_ROLE = "Key"
UNASSIGNED = "Unassigned"

SHARE_PLACES = Decimal("0.0001")
CENT = Decimal("0.01")

# Priority order for "first present value" lookups
COMMISSIONABLE_AMOUNT_FIELDS = ("sale_down_payment", "down_payment", "sale_price")
DEAL_IDENTITY_FIELDS = ("sale_id", "account_number", "stock_number", "vin")
ROW_KEY_FIELDS = ("sale_date", "account_number", "sale_id", "vin", "vin_last4")

# Sale type categories
SALE = "sale"
CASH = "cash"
TRADE = "trade"
NAME_CHANGE = "namechange"
OTHER = "other"

SALE_TYPE_LABELS = {
    SALE: "Sale",
    CASH: "Cash Sale",
    TRADE: "Trade-In",
    NAME_CHANGE: "Name Change",
    OTHER: "Other",
}

MANUAL_COMMISSION_TYPES = frozenset({CASH, TRADE, NAME_CHANGE})


@dataclass(frozen=True)
class SplitShare:
    name: str
    share: Decimal


def normalize_name(value: Optional[str]) -> str:
    """
    Canonical salesperson name used for grouping, storage and lookups.

    Blank names become "Unassigned"; any casing of the Key role ("key",
    " KEY ") becomes "Key".
    """
    trimmed = (value or "").strip()
    if not trimmed:
        return UNASSIGNED
    if trimmed.casefold() == KEY_ROLE.casefold():
        return KEY_ROLE
    return trimmed


def is_key_role(value: Optional[str]) -> bool:
    return normalize_name(value) == KEY_ROLE


def normalize_sale_type(value: Optional[str]) -> str:
    return re.sub(r"\s+", "", value or "").lower()


def classify_sale_type(value: Optional[str]) -> str:
    """Map free-text sale type to sale, cash, trade, namechange or other."""
    normalized = normalize_sale_type(value)
    if normalized in ("cashsale", "cash"):
        return CASH
    if normalized in ("trade", "tradein", "trade-in"):
        return TRADE
    if normalized in ("namechange", "name-change"):
        return NAME_CHANGE
    if normalized in ("sale", ""):
        return SALE
    return OTHER


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value.strip() == ""


def first_present(source: Any, fields: Iterable[str], default: Any = None, skip_blank: bool = False) -> Any:
    """
    Return the first present attribute of source in priority order.

    Args:
        source: Object (or mapping) to read from
        fields: Attribute names, highest priority first
        default: Returned when no field is present
        skip_blank: Also skip empty/whitespace strings (identifiers)
    """
    for name in fields:
        if isinstance(source, Mapping):
            value = source.get(name)
        else:
            value = getattr(source, name, None)
        if value is None:
            continue
        if skip_blank and _is_blank(value):
            continue
        return value
    return default


def to_sale_record(sale: Union[SaleRecord, Mapping[str, Any]]) -> SaleRecord:
    if isinstance(sale, SaleRecord):
        return sale
    return SaleRecord.model_validate(sale)


def commissionable_amount(sale: SaleRecord) -> Decimal:
    amount = first_present(sale, COMMISSIONABLE_AMOUNT_FIELDS, default=0)
    return Decimal(str(amount))


def resolve_split(sale: SaleRecord) -> List[SplitShare]:
    """
    Normalize the participants on a sale.

    Each share becomes raw / sum(raw) * 100 rounded to 4 places. A sale with
    no split list gets a single 100% entry for its salesperson. When the raw
    shares sum to zero every share is 0.
    """
    if sale.salesperson_split:
        raw = [(participant.name, participant.share) for participant in sale.salesperson_split]
    else:
        raw = [(sale.salesperson, Decimal("100"))]

    total = sum((Decimal(str(share or 0)) for _, share in raw), Decimal("0"))

    shares = []
    for name, share in raw:
        if total > 0:
            normalized = (Decimal(str(share or 0)) / total * 100).quantize(
                SHARE_PLACES, rounding=ROUND_HALF_UP
            )
        else:
            normalized = Decimal("0")
        display_name = name if not _is_blank(name) else sale.salesperson
        shares.append(SplitShare(name=normalize_name(display_name), share=normalized))
    return shares


def build_sale_key(sale: SaleRecord) -> str:
    parts = [getattr(sale, name, None) for name in ROW_KEY_FIELDS]
    return "|".join(str(part) for part in parts if not _is_blank(part))


def build_row_key(sale: SaleRecord, participant_name: str) -> str:
    """Stable join key for notes and manual overrides: sale identity + participant."""
    return f"{build_sale_key(sale)}|{participant_name}"


def split_summary(shares: List[SplitShare]) -> str:
    return " | ".join(
        f"{item.name} {item.share.quantize(Decimal('1'), rounding=ROUND_HALF_UP)}%" for item in shares
    )


def _vin_last4(sale: SaleRecord) -> str:
    raw = sale.vin_last4 or (sale.vin[-4:] if sale.vin and len(sale.vin) >= 4 else "")
    return str(raw).zfill(4)[-4:] if raw else ""


def _vehicle(sale: SaleRecord) -> str:
    return " ".join(str(part) for part in (sale.year, sale.make, sale.model) if part)


def build_rows_for_sale(
    sale: Union[SaleRecord, Mapping[str, Any]],
    notes_map: Optional[Mapping[str, str]] = None,
    manual_overrides: Optional[Mapping[str, Decimal]] = None,
    policy: Optional[CommissionPolicy] = None,
) -> List[CommissionReportRowSnapshot]:
    """
    Build the report rows for one sale.

    Args:
        sale: The sale record
        notes_map: Row key -> note text entered on the report
        manual_overrides: Row key -> hand-entered commission for manual types
        policy: Commission policy (defaults to the dealership pay plan)

    Returns:
        One row per normalized participant with sequence 0; the snapshot
        builder numbers rows after sorting. Empty if the sale date is unparsable.
    """
    sale = to_sale_record(sale)
    notes_map = notes_map or {}
    manual_overrides = manual_overrides or {}
    policy = policy or default_policy

    sale_day = parse_sale_date(sale.sale_date)
    if sale_day is None:
        return []

    true_down_payment = commissionable_amount(sale)
    shares = resolve_split(sale)
    is_split = len(shares) > 1
    category = classify_sale_type(sale.sale_type)
    uses_manual_commission = category in MANUAL_COMMISSION_TYPES
    default_notes = f"Commission split: {split_summary(shares)}" if is_split else ""

    rows = []
    for split in shares:
        row_key = build_row_key(sale, split.name)
        manual_note = notes_map.get(row_key) or ""

        if uses_manual_commission:
            commission_before_override = Decimal("0")
            manual_value = manual_overrides.get(row_key)
            adjusted = clamp_currency(manual_value) if manual_value is not None else Decimal("0.00")
            override_applied = True
            override_details = f"{SALE_TYPE_LABELS[category]} manual entry"
        else:
            base = policy.base(true_down_payment)
            commission_before_override = clamp_currency(base * split.share / 100)
            result = policy.apply_override(base * split.share / 100, manual_note or None)
            adjusted = result.amount
            override_applied = result.override_applied or is_split
            if is_split:
                override_details = f"Split share {split.share.quantize(CENT)}%"
            else:
                override_details = result.details

        rows.append(
            CommissionReportRowSnapshot(
                key=row_key,
                sequence=0,
                sale_id=sale.sale_id or row_key,
                sale_date=sale_day.isoformat(),
                sale_date_display=sale_day.strftime("%m/%d/%Y"),
                account_number=sale.account_number or sale.sale_id or "",
                salesperson=split.name,
                vehicle=_vehicle(sale),
                vin_last4=_vin_last4(sale),
                true_down_payment=true_down_payment,
                base_commission=commission_before_override,
                adjusted_commission=adjusted,
                override_applied=override_applied,
                override_details=override_details,
                notes=manual_note if manual_note.strip() else default_notes,
                sale_type=sale.sale_type or "",
            )
        )
    return rows
