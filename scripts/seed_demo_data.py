from datetime import date, timedelta

from sqlalchemy import select

from booking_engine.domain.state_machine import TicketApprovalStatus, TransportType
from booking_engine.infrastructure.db.models import Ticket
from booking_engine.infrastructure.db.session import Base, engine, get_db_session


DEMO_VENDOR_ID = "vendor-demo"


def _day(days_from_now: int) -> date:
    return date.today() + timedelta(days=days_from_now)


def seed_tickets(db) -> None:
    ticket_defs = [
        {
            "title": "Dhaka to Chittagong Express",
            "from_location": "Dhaka",
            "to_location": "Chittagong",
            "transport_type": TransportType.TRAIN,
            "unit_price": 850,
            "quantity": 120,
            "departure_date": _day(7),
            "departure_time": "07:30",
            "perks": ["AC", "Snacks"],
        },
        {
            "title": "Sylhet Night Coach",
            "from_location": "Dhaka",
            "to_location": "Sylhet",
            "transport_type": TransportType.BUS,
            "unit_price": 700,
            "quantity": 40,
            "departure_date": _day(3),
            "departure_time": "22:15",
            "perks": ["Reclining seats"],
        },
        {
            "title": "Barisal River Launch",
            "from_location": "Dhaka",
            "to_location": "Barisal",
            "transport_type": TransportType.LAUNCH,
            "unit_price": 1200,
            "quantity": 60,
            "departure_date": _day(5),
            "departure_time": "20:00",
            "perks": ["Cabin", "Dinner"],
        },
        {
            "title": "Cox's Bazar Morning Flight",
            "from_location": "Dhaka",
            "to_location": "Cox's Bazar",
            "transport_type": TransportType.PLANE,
            "unit_price": 6500,
            "quantity": 3,
            "departure_date": _day(10),
            "departure_time": "09:45",
            "perks": ["Checked bag"],
        },
    ]

    for item in ticket_defs:
        existing = db.execute(
            select(Ticket)
            .where(Ticket.title == item["title"])
            .where(Ticket.vendor_id == DEMO_VENDOR_ID)
        ).scalar_one_or_none()
        if existing:
            for field, value in item.items():
                setattr(existing, field, value)
            existing.approval_status = TicketApprovalStatus.APPROVED
            continue

        db.add(
            Ticket(
                vendor_id=DEMO_VENDOR_ID,
                approval_status=TicketApprovalStatus.APPROVED,
                **item,
            )
        )


def main() -> None:
    Base.metadata.create_all(bind=engine)
    with get_db_session() as db:
        seed_tickets(db)
    print(f"Seed complete: approved demo tickets added for {DEMO_VENDOR_ID}.")


if __name__ == "__main__":
    main()
