# booking_engine/domain/departure.py

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from booking_engine import config


def parse_time_of_day(value: str) -> time:
    """
    Parses an "HH:MM" departure time.
    Raises ValueError on anything else.
    """
    hours, _, minutes = value.strip().partition(":")
    if not hours.isdigit() or not minutes.isdigit():
        raise ValueError(f"Invalid departure time: {value!r}")
    return time(hour=int(hours), minute=int(minutes))


def departure_instant(
    departure_date: date,
    departure_time: str,
    tz_name: str | None = None,
) -> datetime:
    """
    Combines the departure date with its time-of-day field into an
    aware instant in the configured departure timezone.
    """
    tz = ZoneInfo(tz_name or config.DEPARTURE_TIMEZONE)
    return datetime.combine(
        departure_date,
        parse_time_of_day(departure_time),
        tzinfo=tz,
    )


def is_expired(
    departure_date: date,
    departure_time: str,
    now: datetime | None = None,
) -> bool:
    # Evaluated against the clock on every call, never cached.
    current = now or datetime.now(timezone.utc)
    return departure_instant(departure_date, departure_time) < current
