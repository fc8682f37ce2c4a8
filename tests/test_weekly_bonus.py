"""
Unit tests for the weekly sales bonus.

Tests:
- Threshold and per-unit dollars
- Deal deduplication across split participants
- Sale type eligibility
- Bonus window boundaries
"""

from datetime import date
from decimal import Decimal
from app.schemas import SaleRecord
from app.services.commission_calendar import bonus_window_of
from app.services.weekly_bonus import (
    bonus_dollars,
    compute_weekly_bonus,
    deal_identity,
    is_bonus_eligible,
    units_over_threshold,
)

# Reporting week 2024-03-01 counts deals from Mon 2024-02-26 to Sun 2024-03-03
WINDOW = bonus_window_of(date(2024, 3, 1))


def make_sales(count, salesperson="Alex", sale_type="Sale", sale_date="2024-02-27"):
    return [
        {
            "saleId": f"S{i}",
            "saleDate": sale_date,
            "salesperson": salesperson,
            "saleType": sale_type,
        }
        for i in range(count)
    ]


class TestThreshold:
    """Tests for units over threshold and dollars."""

    def test_at_threshold(self):
        assert units_over_threshold(5) == 0
        assert bonus_dollars(5) == Decimal("0")

    def test_over_threshold(self):
        assert units_over_threshold(7) == 2
        assert bonus_dollars(7) == Decimal("100")

    def test_under_threshold(self):
        assert units_over_threshold(0) == 0


class TestComputeWeeklyBonus:
    """Tests for bonus window aggregation."""

    def test_six_deals_pay_one_unit(self):
        breakdown = compute_weekly_bonus(make_sales(6), WINDOW)
        stats = breakdown.for_salesperson("Alex")
        assert stats.count == 6
        assert stats.over == 1
        assert stats.bonus == Decimal("50")
        assert breakdown.organization.bonus == Decimal("50")

    def test_five_deals_pay_nothing(self):
        stats = compute_weekly_bonus(make_sales(5), WINDOW).for_salesperson("Alex")
        assert stats.count == 5
        assert stats.over == 0
        assert stats.bonus == Decimal("0")

    def test_split_deal_counts_once(self):
        sale = {
            "saleId": "S1",
            "saleDate": "2024-02-27",
            "salespersonSplit": [{"name": "Alex", "share": 50}, {"name": "Sam", "share": 50}],
        }
        breakdown = compute_weekly_bonus([sale], WINDOW)
        assert breakdown.organization.count == 1
        assert breakdown.for_salesperson("Alex").count == 1
        assert breakdown.for_salesperson("Sam").count == 1

    def test_duplicate_sale_id_counts_once(self):
        sales = make_sales(1) + make_sales(1)
        assert compute_weekly_bonus(sales, WINDOW).organization.count == 1

    def test_name_change_excluded(self):
        breakdown = compute_weekly_bonus(make_sales(3, sale_type="Name Change"), WINDOW)
        assert breakdown.organization.count == 0

    def test_unknown_sale_type_excluded(self):
        breakdown = compute_weekly_bonus(make_sales(3, sale_type="Lease"), WINDOW)
        assert breakdown.organization.count == 0

    def test_blank_and_cash_and_trade_counted(self):
        sales = [
            {"saleId": "1", "saleDate": "2024-02-27", "salesperson": "Alex"},
            {"saleId": "2", "saleDate": "2024-02-27", "salesperson": "Alex", "saleType": "Cash Sale"},
            {"saleId": "3", "saleDate": "2024-02-27", "salesperson": "Alex", "saleType": "Trade-in"},
        ]
        assert compute_weekly_bonus(sales, WINDOW).organization.count == 3

    def test_window_boundaries(self):
        sales = [
            {"saleId": "before", "saleDate": "2024-02-25", "salesperson": "Alex"},
            {"saleId": "first", "saleDate": "2024-02-26", "salesperson": "Alex"},
            {"saleId": "last", "saleDate": "2024-03-03T22:00:00", "salesperson": "Alex"},
            {"saleId": "after", "saleDate": "2024-03-04", "salesperson": "Alex"},
        ]
        stats = compute_weekly_bonus(sales, WINDOW).organization
        assert stats.deals == {"first", "last"}

    def test_unparsable_dates_skipped(self):
        sales = [{"saleId": "1", "saleDate": "??", "salesperson": "Alex"}]
        assert compute_weekly_bonus(sales, WINDOW).organization.count == 0

    def test_unknown_salesperson_has_empty_stats(self):
        stats = compute_weekly_bonus(make_sales(6), WINDOW).for_salesperson("Nobody")
        assert stats.count == 0
        assert stats.bonus == Decimal("0")


class TestDealIdentity:
    """Tests for deal deduplication keys."""

    def test_prefers_sale_id(self):
        sale = SaleRecord(sale_id="S1", account_number="A1", vin="VIN1")
        assert deal_identity(sale) == "S1"

    def test_falls_back_in_order(self):
        assert deal_identity(SaleRecord(account_number="A1", stock_number="ST1")) == "A1"
        assert deal_identity(SaleRecord(stock_number="ST1", vin="VIN1")) == "ST1"
        assert deal_identity(SaleRecord(sale_id="  ", vin="VIN1")) == "VIN1"

    def test_date_fallback(self):
        sale = SaleRecord(sale_date="3/1/2024")
        assert deal_identity(sale) == "2024-03-01-"


class TestIsBonusEligible:
    """Tests for sale type eligibility."""

    def test_eligible_types(self):
        for sale_type in (None, "", "Sale", "Cash Sale", "cash", "Trade-in", "trade"):
            assert is_bonus_eligible(SaleRecord(sale_type=sale_type))

    def test_ineligible_types(self):
        for sale_type in ("Name Change", "Lease", "Wholesale"):
            assert not is_bonus_eligible(SaleRecord(sale_type=sale_type))
