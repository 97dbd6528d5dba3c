"""Reporting periods: trailing date windows and their cache TTLs."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum

from leada.data.cache_store import CACHE_TTL

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Period(str, Enum):
    WEEK = "week"
    MONTH = "month"
    THREE_MONTHS = "3months"
    SIX_MONTHS = "6months"
    ALL = "all"


PERIOD_DAYS: dict[Period, int] = {
    Period.WEEK: 7,
    Period.MONTH: 30,
    Period.THREE_MONTHS: 90,
    Period.SIX_MONTHS: 180,
}

PERIOD_LABELS: dict[Period, str] = {
    Period.WEEK: "letzten 7 Tage",
    Period.MONTH: "letzten Monat",
    Period.THREE_MONTHS: "letzten 3 Monate",
    Period.SIX_MONTHS: "letzten 6 Monate",
    Period.ALL: "Gesamtzeitraum",
}


def parse_period(value: str | Period) -> Period:
    """Raises ValueError for anything that is not a known period."""
    try:
        return Period(value)
    except ValueError:
        raise ValueError(
            f"Unknown period {value!r}; expected one of: {', '.join(p.value for p in Period)}"
        ) from None


def period_start(period: str | Period, now: datetime | None = None) -> datetime:
    """Start of the trailing window ending at `now`; the Unix epoch for "all"."""
    period = parse_period(period)
    if period is Period.ALL:
        return EPOCH
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=PERIOD_DAYS[period])


def ttl_for_period(period: str | Period) -> int:
    """Cache TTL in minutes: 1 h for a week, 6 h for a month, 24 h beyond."""
    period = parse_period(period)
    if period is Period.WEEK:
        return CACHE_TTL.DASHBOARD_WEEK
    if period is Period.MONTH:
        return CACHE_TTL.DASHBOARD_MONTH
    return CACHE_TTL.DASHBOARD_LONG
