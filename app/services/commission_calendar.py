"""
Commission Calendar Service

Reporting weeks run Friday 00:00 through Thursday 23:59:59 and are keyed by
the ISO date of their Friday ("2024-03-01"). The weekly sales bonus is
counted over a separate Monday-Sunday window that starts 4 days before the
reporting week.

Only the calendar day of a sale matters; time of day is ignored for
bucketing. Sales whose date cannot be parsed are not reportable and are
skipped by every caller.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

FRIDAY = 4  # date.weekday(): Monday = 0
BONUS_WINDOW_OFFSET_DAYS = 4

ISO_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
MDY_DATE_PATTERN = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})$")

DateInput = Union[str, date, datetime, None]


@dataclass(frozen=True)
class ReportingWeek:
    key: str
    start: datetime
    end: datetime


@dataclass(frozen=True)
class BonusWindow:
    start: datetime
    end: datetime

    @property
    def key(self) -> str:
        """ISO date of the window's Monday."""
        return self.start.date().isoformat()

    def contains(self, day: date) -> bool:
        return self.start.date() <= day <= self.end.date()


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_sale_date(value: DateInput) -> Optional[date]:
    """
    Parse a sale date into a calendar date.

    Accepts date/datetime objects, ISO dates ("2024-03-01", optionally
    followed by a time part) and US dates ("3/1/2024", "03-01-24").
    Two-digit years >= 70 are 19xx, otherwise 20xx.

    Returns:
        The calendar date, or None when the value is blank or unparsable
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    trimmed = str(value).strip()
    if not trimmed:
        return None

    primary = re.split(r"[T ]", trimmed, maxsplit=1)[0]

    iso_match = ISO_DATE_PATTERN.match(primary)
    if iso_match:
        year, month, day = (int(part) for part in iso_match.groups())
        return _safe_date(year, month, day)

    mdy_match = MDY_DATE_PATTERN.match(primary)
    if mdy_match:
        month_str, day_str, year_str = mdy_match.groups()
        year = int(year_str)
        if len(year_str) == 2:
            year += 1900 if year >= 70 else 2000
        return _safe_date(year, int(month_str), int(day_str))

    return None


def get_commission_week_start(day: date) -> date:
    """Get the Friday on or before the given date."""
    days_since_friday = (day.weekday() - FRIDAY) % 7
    return day - timedelta(days=days_since_friday)


def reporting_week_of(value: DateInput) -> Optional[ReportingWeek]:
    """Get the reporting week enclosing a sale date, or None if unparsable."""
    day = parse_sale_date(value)
    if day is None:
        return None

    friday = get_commission_week_start(day)
    start = datetime.combine(friday, time.min)
    end = datetime.combine(friday + timedelta(days=6), time(23, 59, 59))
    return ReportingWeek(key=friday.isoformat(), start=start, end=end)


def week_key_of(value: DateInput) -> Optional[str]:
    week = reporting_week_of(value)
    return week.key if week else None


def bonus_window_of(reporting_week_start: Union[date, datetime]) -> BonusWindow:
    """
    Get the Monday-Sunday bonus window for a reporting week.

    Args:
        reporting_week_start: Start (Friday) of the reporting week

    Returns:
        BonusWindow starting 4 days earlier at 00:00:00 and ending six days
        after that at 23:59:59.999999
    """
    if isinstance(reporting_week_start, datetime):
        reporting_week_start = reporting_week_start.date()

    monday = reporting_week_start - timedelta(days=BONUS_WINDOW_OFFSET_DAYS)
    start = datetime.combine(monday, time.min)
    end = datetime.combine(monday + timedelta(days=6), time.max)
    return BonusWindow(start=start, end=end)


def format_week_label(start: Union[date, datetime], end: Union[date, datetime]) -> str:
    """Human label for a window, e.g. "Mar 01, 2024 → Mar 07, 2024"."""
    return f"{start.strftime('%b %d, %Y')} → {end.strftime('%b %d, %Y')}"
