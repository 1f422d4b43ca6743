# bakery/pickup.py
"""
Weekend pickup window rules.

Orders are picked up on Saturday or Sunday. Customers may edit or cancel an
order until the weekend starts: Saturday 00:00 local time is the cutoff for
both days of that weekend.
"""
from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

SATURDAY = 5
SUNDAY = 6

_YMD_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DateLike = date | str


def parse_ymd(value: DateLike) -> date:
    """Strict YYYY-MM-DD parsing. Raises ValueError on anything else."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = (value or "").strip()
    if not _YMD_RE.match(s):
        raise ValueError(f"Expected YYYY-MM-DD, got {value!r}")
    return date.fromisoformat(s)


def is_weekend_date(value: DateLike) -> bool:
    return parse_ymd(value).weekday() in (SATURDAY, SUNDAY)


def weekend_cutoff(value: DateLike, tz: ZoneInfo) -> datetime:
    d = parse_ymd(value)
    if d.weekday() not in (SATURDAY, SUNDAY):
        raise ValueError(f"{d.isoformat()} is not a weekend date")

    saturday = d - timedelta(days=1) if d.weekday() == SUNDAY else d
    return datetime.combine(saturday, time.min, tzinfo=tz)


def is_locked_by_cutoff(pickup_date: DateLike, now: datetime, tz: ZoneInfo) -> bool:
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    return now >= weekend_cutoff(pickup_date, tz)


def add_days(value: DateLike, days: int) -> str:
    return (parse_ymd(value) + timedelta(days=days)).isoformat()
