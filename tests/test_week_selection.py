"""
Unit tests for reporting week buckets and the week picker.

Tests:
- Buckets sorted most recent first, current week always present
- First load, vanished selection, rollover behavior
"""

from datetime import date
from app.services.week_selection import (
    WeekSelectionController,
    build_week_buckets,
    find_bucket,
)

SALES = [
    {"saleId": "1", "saleDate": "2024-02-23", "salesperson": "Alex"},
    {"saleId": "2", "saleDate": "2024-03-01", "salesperson": "Alex"},
    {"saleId": "3", "saleDate": "2024-03-07", "salesperson": "Sam"},
    {"saleId": "4", "saleDate": "bad date", "salesperson": "Sam"},
]


class TestBuildWeekBuckets:
    """Tests for grouping sales by reporting week."""

    def test_grouped_and_sorted(self):
        buckets = build_week_buckets(SALES, date(2024, 3, 5))
        assert [b.key for b in buckets] == ["2024-03-01", "2024-02-23"]
        assert [s.sale_id for s in buckets[0].sales] == ["2", "3"]

    def test_current_week_always_present(self):
        buckets = build_week_buckets(SALES, date(2024, 3, 12))
        assert buckets[0].key == "2024-03-08"
        assert buckets[0].sales == []

    def test_no_sales(self):
        buckets = build_week_buckets([], date(2024, 3, 5))
        assert [b.key for b in buckets] == ["2024-03-01"]

    def test_label(self):
        bucket = build_week_buckets([], date(2024, 3, 5))[0]
        assert bucket.label == "Mar 01, 2024 → Mar 07, 2024"

    def test_find_bucket(self):
        buckets = build_week_buckets(SALES, date(2024, 3, 5))
        assert find_bucket(buckets, "2024-02-23").key == "2024-02-23"
        assert find_bucket(buckets, "2023-01-06") is None
        assert find_bucket(buckets, None) is None


class TestWeekSelectionController:
    """Tests for keeping the selection across rebuilds."""

    def test_first_load_selects_latest(self):
        controller = WeekSelectionController()
        buckets = build_week_buckets(SALES, date(2024, 3, 5))
        assert controller.reconcile(buckets) == "2024-03-01"

    def test_keeps_older_selection(self):
        controller = WeekSelectionController()
        buckets = build_week_buckets(SALES, date(2024, 3, 5))
        controller.reconcile(buckets)
        controller.select("2024-02-23")
        assert controller.reconcile(buckets) == "2024-02-23"

    def test_vanished_selection_falls_back(self):
        controller = WeekSelectionController()
        controller.select("2023-01-06")
        buckets = build_week_buckets(SALES, date(2024, 3, 5))
        assert controller.reconcile(buckets) == "2024-03-01"

    def test_rollover_advances_latest_viewer(self):
        controller = WeekSelectionController()
        controller.reconcile(build_week_buckets(SALES, date(2024, 3, 5)))
        assert controller.reconcile(build_week_buckets(SALES, date(2024, 3, 8))) == "2024-03-08"

    def test_rollover_keeps_older_viewer(self):
        controller = WeekSelectionController()
        controller.reconcile(build_week_buckets(SALES, date(2024, 3, 5)))
        controller.select("2024-02-23")
        assert controller.reconcile(build_week_buckets(SALES, date(2024, 3, 8))) == "2024-02-23"

    def test_empty_list(self):
        controller = WeekSelectionController()
        assert controller.reconcile([]) is None
        assert controller.current_week([]) is None

    def test_current_week(self):
        controller = WeekSelectionController()
        bucket = controller.current_week(build_week_buckets(SALES, date(2024, 3, 5)))
        assert bucket.key == "2024-03-01"

    def test_built_from_request_values(self):
        buckets = build_week_buckets(SALES, date(2024, 3, 8))
        assert WeekSelectionController("2024-02-23", "2024-03-01").reconcile(buckets) == "2024-02-23"
        assert WeekSelectionController("2024-03-01", "2024-03-01").reconcile(buckets) == "2024-03-08"
        assert WeekSelectionController("2024-03-01").reconcile(buckets) == "2024-03-01"

    def test_controllers_are_independent(self):
        buckets = build_week_buckets(SALES, date(2024, 3, 5))
        first = WeekSelectionController("2024-02-23")
        second = WeekSelectionController()
        assert first.reconcile(buckets) == "2024-02-23"
        assert second.reconcile(buckets) == "2024-03-01"
        assert first.reconcile(buckets) == "2024-02-23"
