from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

import pytest

from clubhouse.time_utils import (
    ClubClock,
    club_today,
    day_count,
    ensure_aware,
    format_club_date,
    iter_days,
    normalize_date,
    parse_time_slot,
    to_utc_z,
)
from clubhouse.validation import ValidationError


@pytest.mark.parametrize("value", [
    "2025-06-01",
    "2025-06-01T23:30:00",
    "2025-06-01 08:00",
    date(2025, 6, 1),
    datetime(2025, 6, 1, 12, 0),
])
def test_normalize_date_inputs(app, value):
    with app.app_context():
        assert normalize_date(value) == date(2025, 6, 1)


def test_normalize_date_is_idempotent(app):
    with app.app_context():
        for value in ["2025-02-28", "2024-02-29T10:00:00", datetime(2025, 12, 31, 23, 59)]:
            once = normalize_date(value)
            assert normalize_date(once) == once


def test_aware_datetime_uses_club_timezone(app):
    # 20:30 UTC on 31 May is already 1 June in Karachi (UTC+5)
    with app.app_context():
        value = datetime(2025, 5, 31, 20, 30, tzinfo=timezone.utc)
        assert normalize_date(value) == date(2025, 6, 1)


@pytest.mark.parametrize("value", ["", None, "not-a-date", "2025-13-01", "01/06/2025"])
def test_malformed_dates_raise(app, value):
    with app.app_context():
        with pytest.raises(ValidationError):
            normalize_date(value)


def test_club_today_follows_fixed_clock(app, db_session, set_now):
    assert club_today() == date(2025, 5, 20)
    set_now(datetime(2025, 5, 20, 23, 59, tzinfo=ZoneInfo("Asia/Karachi")))
    assert club_today() == date(2025, 5, 20)
    set_now(datetime(2025, 5, 20, 19, 30, tzinfo=timezone.utc))
    assert club_today() == date(2025, 5, 21)


def test_fixed_clock_localizes_naive_instant():
    clock = ClubClock.fixed("Asia/Karachi", datetime(2025, 1, 1, 0, 30))
    assert clock.today() == date(2025, 1, 1)
    assert clock.now().utcoffset().total_seconds() == 5 * 3600


def test_unknown_timezone_rejected():
    with pytest.raises(ValidationError):
        ClubClock("Mars/Olympus_Mons")


def test_day_ranges():
    start, end = date(2025, 6, 1), date(2025, 6, 3)
    assert list(iter_days(start, end, inclusive=False)) == [date(2025, 6, 1), date(2025, 6, 2)]
    assert len(list(iter_days(start, end, inclusive=True))) == 3
    assert day_count(start, end, inclusive=False) == 2
    assert day_count(start, start, inclusive=True) == 1


def test_parse_time_slot_forms():
    assert parse_time_slot("10:00") == time(10, 0)
    assert parse_time_slot("10:00:45") == time(10, 0)
    assert parse_time_slot("2025-06-01T14:30:00Z") == time(14, 30)
    with pytest.raises(ValidationError):
        parse_time_slot("ten o'clock")


def test_formatting_helpers():
    assert format_club_date(date(2025, 6, 1)) == "1 Jun 2025"
    naive = datetime(2025, 6, 1, 5, 0, 0, 123)
    assert ensure_aware(naive).tzinfo is timezone.utc
    assert to_utc_z(naive) == "2025-06-01T05:00:00Z"
