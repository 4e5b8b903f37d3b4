from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Iterator, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app

from .validation import ValidationError


class ClubClock:
    """
    The club's single source of "now".

    All date comparisons against "today" go through the clock installed on the
    Flask app, so tests can pin it to a fixed instant.
    """

    def __init__(self, tz_name: str, now_fn: Callable[[], datetime] | None = None):
        try:
            self.tz = ZoneInfo(tz_name)
        except ZoneInfoNotFoundError:
            raise ValidationError(f"Unknown club timezone: {tz_name}")
        self._now_fn = now_fn

    def now(self) -> datetime:
        """Current instant, aware, in the club timezone."""
        if self._now_fn is None:
            return datetime.now(self.tz)
        value = self._now_fn()
        if value.tzinfo is None:
            return value.replace(tzinfo=self.tz)
        return value.astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    @classmethod
    def fixed(cls, tz_name: str, instant: datetime) -> "ClubClock":
        return cls(tz_name, now_fn=lambda: instant)


def get_clock() -> ClubClock:
    return current_app.extensions["club_clock"]


def club_now() -> datetime:
    return get_clock().now()


def club_today() -> date:
    return get_clock().today()


def utcnow() -> datetime:
    """Server-side 'now' in UTC (aware), derived from the club clock."""
    return club_now().astimezone(timezone.utc)


def normalize_date(value) -> date:
    """
    Reduce a date-like input to a calendar day in the club timezone.

    - date -> unchanged
    - aware datetime -> converted to the club timezone, then its day
    - naive datetime -> its day
    - "YYYY-MM-DD" or "YYYY-MM-DDTHH:MM..." -> the part before "T"

    Malformed input raises ValidationError instead of silently becoming today.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(get_clock().tz).date()
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        raise ValidationError("Date is required")

    s = str(value).strip()
    if not s:
        raise ValidationError("Date is required")
    date_part = s.split("T", 1)[0].split(" ", 1)[0]
    try:
        return date.fromisoformat(date_part)
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD)")


def normalize_optional_date(value) -> Optional[date]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return normalize_date(value)


def iter_days(start: date, end: date, *, inclusive: bool) -> Iterator[date]:
    """Yield each calendar day in [start, end) or [start, end]."""
    last = end if inclusive else end - timedelta(days=1)
    day = start
    while day <= last:
        yield day
        day += timedelta(days=1)


def day_count(start: date, end: date, *, inclusive: bool) -> int:
    days = (end - start).days
    return days + 1 if inclusive else days


def parse_time_slot(value) -> time:
    """
    Parse a clock-time slot ("10:00", "10:00:00" or an ISO datetime).

    Returns the wall-clock start time of the slot.
    """
    if isinstance(value, datetime):
        return value.time().replace(second=0, microsecond=0)
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    s = str(value or "").strip()
    if "T" in s:
        s = s.split("T", 1)[1]
    for suffix in ("Z",):
        if s.endswith(suffix):
            s = s[: -len(suffix)]
    s = s.split("+", 1)[0]
    try:
        parsed = time.fromisoformat(s)
    except ValueError:
        raise ValidationError(f"Invalid time slot: {value!r} (expected HH:MM)")
    return parsed.replace(second=0, microsecond=0, tzinfo=None)


def format_time_slot(value: time) -> str:
    return value.strftime("%H:%M")


def format_club_date(value: date) -> str:
    """Human date used in voucher remarks, e.g. '1 Jun 2025'."""
    return f"{value.day} {value.strftime('%b %Y')}"


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string into an aware datetime.

    - None / "" -> None
    - naive values are interpreted in the club timezone
    - "...Z" or "...+/-HH:MM" keep their offset
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        raise ValidationError(f"Invalid datetime: {value!r}")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=get_clock().tz)
    return dt


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    dt_utc = ensure_aware(dt).astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def to_iso_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None
