"""
Week Selection

Groups sales into reporting-week buckets for the week picker and tracks
which week is selected as time moves on.

Rules:
- The current week always has a bucket, even before any sale posts
- First load selects the most recent week
- A selected week that disappears falls back to the most recent week
- When a new week starts, a user still viewing the previous most-recent
  week is moved forward; a user who picked an older week stays put
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Optional

from app.services.commission_calendar import format_week_label, reporting_week_of
from app.services.commission_rows import to_sale_record

logger = logging.getLogger(__name__)


@dataclass
class WeekBucket:
    key: str
    start: datetime
    end: datetime
    label: str
    sales: List = field(default_factory=list)


def build_week_buckets(sales: Iterable, today: date) -> List[WeekBucket]:
    """
    Bucket sales by reporting week, most recent first.

    Args:
        sales: Every known sale; unparsable dates are skipped
        today: Today's date, whose week is always present

    Returns:
        List of WeekBucket sorted by start descending
    """
    buckets = {}

    def bucket_for(week) -> WeekBucket:
        if week.key not in buckets:
            buckets[week.key] = WeekBucket(
                key=week.key,
                start=week.start,
                end=week.end,
                label=format_week_label(week.start, week.end),
            )
        return buckets[week.key]

    for raw in sales:
        sale = to_sale_record(raw)
        week = reporting_week_of(sale.sale_date)
        if week is None:
            continue
        bucket_for(week).sales.append(sale)

    bucket_for(reporting_week_of(today))

    return sorted(buckets.values(), key=lambda bucket: bucket.start, reverse=True)


def find_bucket(buckets: List[WeekBucket], key: Optional[str]) -> Optional[WeekBucket]:
    if not key:
        return None
    return next((bucket for bucket in buckets if bucket.key == key), None)


class WeekSelectionController:
    """
    Resolves the selected reporting week against the current bucket list.

    The controller holds one client's selection only. It is rebuilt for
    every request from the week the client asked for and the most recent
    week that client last saw, so clients never share a selection.
    """

    def __init__(self, selected_key: Optional[str] = None, latest_key: Optional[str] = None):
        self.selected_key = selected_key
        self._latest_key = latest_key

    def select(self, key: Optional[str]) -> None:
        """Record a week the user navigated to."""
        self.selected_key = key

    def reconcile(self, buckets: List[WeekBucket]) -> Optional[str]:
        """
        Reconcile the selection with the current bucket list.

        Returns:
            The selected week key, or None when there are no weeks
        """
        if not buckets:
            self._latest_key = None
            self.selected_key = None
            return None

        latest = buckets[0].key
        previous_latest = self._latest_key
        self._latest_key = latest

        if not self.selected_key or find_bucket(buckets, self.selected_key) is None:
            self.selected_key = latest
            return self.selected_key

        is_new_window = previous_latest is not None and previous_latest != latest
        if is_new_window and self.selected_key == previous_latest:
            logger.info("Reporting week rolled over from %s to %s", previous_latest, latest)
            self.selected_key = latest

        return self.selected_key

    def current_week(self, buckets: List[WeekBucket]) -> Optional[WeekBucket]:
        return find_bucket(buckets, self.reconcile(buckets))
