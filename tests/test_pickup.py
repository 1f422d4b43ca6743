from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from bakery.pickup import add_days, is_locked_by_cutoff, is_weekend_date, parse_ymd, weekend_cutoff

PARIS = ZoneInfo("Europe/Paris")

WEEKEND_DATES = ["2025-03-08", "2025-03-09", "2025-03-29", "2025-03-30", "2025-10-25", "2025-10-26", "2026-01-03"]


@pytest.mark.parametrize(
    "ymd,expected",
    [
        ("2025-03-08", True),
        ("2025-03-09", True),
        ("2025-03-07", False),
        ("2025-03-10", False),
        ("2025-03-05", False),
    ],
)
def test_is_weekend_date(ymd, expected):
    assert is_weekend_date(ymd) is expected
    assert is_weekend_date(date.fromisoformat(ymd)) is expected


def test_saturday_cutoff_is_its_own_midnight():
    assert weekend_cutoff("2025-03-08", PARIS) == datetime(2025, 3, 8, 0, 0, tzinfo=PARIS)


def test_sunday_cutoff_maps_back_to_saturday():
    assert weekend_cutoff("2025-03-09", PARIS) == datetime(2025, 3, 8, 0, 0, tzinfo=PARIS)


def test_cutoff_rejects_weekday():
    with pytest.raises(ValueError):
        weekend_cutoff("2025-03-07", PARIS)


@pytest.mark.parametrize("ymd", WEEKEND_DATES)
def test_lock_boundary_is_exactly_saturday_midnight(ymd):
    cutoff = weekend_cutoff(ymd, PARIS)
    assert is_locked_by_cutoff(ymd, cutoff, PARIS)
    assert not is_locked_by_cutoff(ymd, cutoff - timedelta(milliseconds=1), PARIS)


def test_lock_compares_instants_across_zones():
    # 23:30 UTC on Friday is already Saturday 00:30 in Paris (winter)
    now = datetime(2025, 3, 7, 23, 30, tzinfo=ZoneInfo("UTC"))
    assert is_locked_by_cutoff("2025-03-09", now, PARIS)


def test_naive_now_is_local_time():
    assert not is_locked_by_cutoff("2025-03-08", datetime(2025, 3, 7, 23, 59), PARIS)
    assert is_locked_by_cutoff("2025-03-08", datetime(2025, 3, 8, 0, 0), PARIS)


def test_add_days_crosses_month_and_year():
    assert add_days("2025-02-28", 1) == "2025-03-01"
    assert add_days("2025-12-31", 1) == "2026-01-01"
    assert add_days(date(2025, 3, 8), 1) == "2025-03-09"


@pytest.mark.parametrize("bad", ["2025-3-8", "08/03/2025", "", "2025-02-30"])
def test_parse_ymd_is_strict(bad):
    with pytest.raises(ValueError):
        parse_ymd(bad)
