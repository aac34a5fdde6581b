from datetime import date, datetime, timezone

import pytest

from booking_engine.domain.departure import departure_instant, is_expired, parse_time_of_day
from booking_engine.domain.value_objects import TicketSnapshot


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def test_parse_time_of_day():
    parsed = parse_time_of_day("07:05")
    assert (parsed.hour, parsed.minute) == (7, 5)


@pytest.mark.parametrize("value", ["", "7", "ab:cd", "25:00", "10:75"])
def test_parse_time_of_day_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_time_of_day(value)


def test_departure_instant_uses_given_timezone():
    instant = departure_instant(date(2026, 3, 10), "18:00", tz_name="Asia/Dhaka")
    assert instant.astimezone(timezone.utc).hour == 12


def test_departure_earlier_today_is_expired():
    assert is_expired(date(2026, 3, 10), "11:59", now=NOW)


def test_departure_later_today_is_not_expired():
    assert not is_expired(date(2026, 3, 10), "12:01", now=NOW)


def test_departure_on_a_later_day_is_not_expired():
    assert not is_expired(date(2026, 3, 11), "00:00", now=NOW)


def test_snapshot_expiry_follows_its_own_terms():
    snapshot = TicketSnapshot(
        title="Night coach",
        from_location="Dhaka",
        to_location="Sylhet",
        departure_date=date(2026, 3, 9),
        departure_time="23:00",
        transport_type="Bus",
        unit_price=700,
    )
    assert snapshot.is_expired(now=NOW)
