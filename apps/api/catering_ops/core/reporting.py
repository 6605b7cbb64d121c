"""
Reporting-period and percentage helpers for sales and waste analytics.

Branches report on a Sunday-start week. Because yesterday is the most recent
complete day of data, the "current" reporting week always runs from the most
recent Sunday up to yesterday:

    Monday    -> Sunday .. Sunday (one day so far)
    Thursday  -> Sunday .. Wednesday
    Saturday  -> Sunday .. Friday
    Sunday    -> previous Sunday .. previous Friday (the week that just closed)

All "today" lookups happen in the business timezone, not server time.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional
import pytz


@dataclass(frozen=True)
class Period:
    """Inclusive date range."""
    start: date
    end: date

    def shift(self, days: int) -> "Period":
        return Period(self.start + timedelta(days=days), self.end + timedelta(days=days))

    def as_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def business_today(timezone_name: str, now: Optional[datetime] = None) -> date:
    """
    Today's date in the business timezone.

    Args:
        timezone_name: IANA timezone string (e.g. "Asia/Dubai")
        now: Override for the current instant (timezone-aware, or naive UTC)
    """
    tz = pytz.timezone(timezone_name)
    if now is None:
        return datetime.now(tz).date()
    if now.tzinfo is None:
        now = pytz.UTC.localize(now)
    return now.astimezone(tz).date()


def parse_iso_date(value) -> Optional[date]:
    """``YYYY-MM-DD`` to a date; None for anything else."""
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def reporting_week(today: date) -> Period:
    """
    The current Sunday-to-yesterday reporting week.

    Examples:
        >>> reporting_week(date(2025, 1, 16))   # Thursday
        Period(start=datetime.date(2025, 1, 12), end=datetime.date(2025, 1, 15))
        >>> reporting_week(date(2025, 1, 19))   # Sunday
        Period(start=datetime.date(2025, 1, 12), end=datetime.date(2025, 1, 17))
    """
    days_since_sunday = (today.weekday() + 1) % 7
    if days_since_sunday == 0:
        return Period(today - timedelta(days=7), today - timedelta(days=2))
    return Period(today - timedelta(days=days_since_sunday), today - timedelta(days=1))


def previous_reporting_week(today: date) -> Period:
    """The reporting week before `reporting_week(today)`, same weekday span."""
    return reporting_week(today).shift(-7)


def iso_week(today: date) -> Period:
    """Monday-start calendar week containing `today`, up to `today`."""
    return Period(today - timedelta(days=today.weekday()), today)


def previous_iso_week(today: date) -> Period:
    """The full Monday-to-Sunday week before the one containing `today`."""
    monday = today - timedelta(days=today.weekday())
    return Period(monday - timedelta(days=7), monday - timedelta(days=1))


def month_to_date(today: date) -> Period:
    return Period(today.replace(day=1), today)


def previous_month(today: date) -> Period:
    """The whole calendar month before the one containing `today`."""
    last_day = today.replace(day=1) - timedelta(days=1)
    return Period(last_day.replace(day=1), last_day)


def year_to_date(today: date) -> Period:
    return Period(today.replace(month=1, day=1), today)


def previous_year(today: date) -> Period:
    """The whole calendar year before the one containing `today`."""
    return Period(date(today.year - 1, 1, 1), date(today.year - 1, 12, 31))


def calc_change(current: float, previous: float) -> float:
    """
    Period-over-period percentage change, rounded to one decimal.

    A previous value of zero cannot be divided by: growth from nothing is
    reported as 100%, and nothing-to-nothing as 0%.

    Examples:
        >>> calc_change(110, 100)
        10.0
        >>> calc_change(5, 0)
        100
        >>> calc_change(0, 0)
        0
    """
    if not previous:
        return 100 if current > 0 else 0
    return round((current - previous) / previous * 100, 1)


def waste_percentage(waste_cost: float, cogs: float) -> float:
    """Waste as a percentage of COGS, two decimals, 0 when there is no COGS."""
    if not cogs:
        return 0
    return round(waste_cost / cogs * 100, 2)


def item_cogs(qty: float, revenue: float, recipe_cost: Optional[float], fallback_ratio: float) -> float:
    """
    Cost of goods sold for one sales line.

    Uses the recipe's total cost when one is known, otherwise a flat share of
    revenue.
    """
    if recipe_cost is not None and recipe_cost > 0:
        return float(qty or 0) * float(recipe_cost)
    return float(revenue or 0) * fallback_ratio


def average_order_value(revenue: float, orders: int) -> float:
    if not orders:
        return 0
    return round(revenue / orders, 2)


def revenue_share(part: float, whole: float) -> float:
    """``part`` as a percentage of ``whole``, one decimal, 0 when ``whole`` is 0."""
    if not whole:
        return 0
    return round(part / whole * 100, 1)
