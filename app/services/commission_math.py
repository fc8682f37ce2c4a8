"""
Commission Math

The base commission formula and the note-driven override are policy, not
engine logic: the report engine receives a CommissionPolicy and only relies
on its call contract. Both methods are pure and total over numeric input.

Default dealership policy:
- Down payment <= 0 => no commission
- Down payment <= 3000 => flat 100
- Otherwise => 5% of the down payment

Override notes (first match wins):
- Ratio "50/50 split" => first / (first + second) of the commission
- Percentage "pay 60%" => that percentage of the commission
- "override" or "payout" with an amount, e.g. "override $250" => fixed amount
"""

import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

CENT = Decimal("0.01")
FLAT_COMMISSION = Decimal("100")
FLAT_COMMISSION_CEILING = Decimal("3000")
COMMISSION_RATE = Decimal("0.05")
# Largest amount a report row can carry; anything above is treated as bad input
MAX_CURRENCY = Decimal("9999999999.99")

RATIO_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*/\s*(\d+(?:\.\d+)?)")
PERCENT_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*%")
AMOUNT_PATTERN = re.compile(r"\$?\s*(\d+(?:\.\d+)?)")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverrideResult:
    amount: Decimal
    override_applied: bool
    details: Optional[str] = None


def clamp_currency(value) -> Decimal:
    """
    Round to cents and clamp negatives to zero.

    Unparsable, non-finite and out-of-range amounts (above MAX_CURRENCY)
    resolve to 0.00.
    """
    try:
        amount = Decimal(str(value or 0))
    except InvalidOperation:
        logger.warning("Ignoring unparsable commission amount %r", value)
        return Decimal("0.00")
    if not amount.is_finite() or amount > MAX_CURRENCY:
        logger.warning("Ignoring out-of-range commission amount %r", value)
        return Decimal("0.00")
    if amount < 0:
        return Decimal("0.00")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def _format_number(value: Decimal) -> str:
    """Render 60 as "60" and 62.5 as "62.5"."""
    return format(value.normalize(), "f")


class CommissionPolicy:
    """Interface the report engine calls for commission amounts."""

    def base(self, amount: Decimal) -> Decimal:
        raise NotImplementedError

    def apply_override(self, amount: Decimal, note: Optional[str] = None) -> OverrideResult:
        raise NotImplementedError


class DefaultCommissionPolicy(CommissionPolicy):
    """The dealership's standard pay plan."""

    def base(self, amount: Decimal) -> Decimal:
        amount = Decimal(str(amount or 0))
        if amount <= 0:
            return Decimal("0")
        if amount <= FLAT_COMMISSION_CEILING:
            return FLAT_COMMISSION
        return amount * COMMISSION_RATE

    def apply_override(self, amount: Decimal, note: Optional[str] = None) -> OverrideResult:
        if not note:
            return OverrideResult(clamp_currency(amount), False, None)

        normalized = note.lower()

        ratio_match = RATIO_PATTERN.search(normalized)
        if ratio_match:
            first = Decimal(ratio_match.group(1))
            second = Decimal(ratio_match.group(2))
            if first >= 0 and second > 0:
                share = first / (first + second)
                percent = (share * 100).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)
                return OverrideResult(
                    clamp_currency(amount * share),
                    True,
                    f"Applied {_format_number(percent)}% from ratio "
                    f"{ratio_match.group(1)}/{ratio_match.group(2)}",
                )

        percent_match = PERCENT_PATTERN.search(normalized)
        if percent_match:
            percent = Decimal(percent_match.group(1))
            return OverrideResult(
                clamp_currency(amount * percent / 100),
                True,
                f"Applied {_format_number(percent)}% override",
            )

        if "override" in normalized or "payout" in normalized:
            amount_match = AMOUNT_PATTERN.search(normalized)
            if amount_match:
                override_value = Decimal(amount_match.group(1))
                if override_value <= MAX_CURRENCY:
                    return OverrideResult(
                        clamp_currency(override_value),
                        True,
                        f"Override amount {_format_number(override_value)}",
                    )

        return OverrideResult(clamp_currency(amount), False, None)


default_policy = DefaultCommissionPolicy()
