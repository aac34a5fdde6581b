# booking_engine/domain/value_objects.py

from dataclasses import dataclass
from enum import Enum
from datetime import date, datetime

from booking_engine.domain.departure import is_expired


@dataclass(frozen=True)
class TicketSnapshot:
    """
    Ticket terms frozen into a booking when it is created.
    Later edits or deletion of the live ticket never reach it.
    """

    title: str
    from_location: str
    to_location: str
    departure_date: date
    departure_time: str
    transport_type: str
    unit_price: int

    def is_expired(self, now: datetime | None = None) -> bool:
        return is_expired(self.departure_date, self.departure_time, now=now)


class UserRole(str, Enum):
    USER = "user"
    VENDOR = "vendor"
    ADMIN = "admin"
