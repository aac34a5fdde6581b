# booking_engine/infrastructure/repositories/booking_repository.py

from sqlalchemy.orm import Session
from sqlalchemy import select

from booking_engine.infrastructure.db.models import Booking
from booking_engine.domain.state_machine import BookingStatus


class BookingRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(
        self,
        booking_id: str,
    ) -> Booking | None:

        stmt = select(Booking).where(Booking.id == booking_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def lock_by_id(self, booking_id: str) -> Booking | None:
        """
        SELECT ... FOR UPDATE
        Serializes concurrent confirmations of the same booking.
        """

        stmt = (
            select(Booking)
            .where(Booking.id == booking_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def list_by_buyer(self, buyer_id: str) -> list[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.buyer_id == buyer_id)
            .order_by(Booking.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_by_vendor(self, vendor_id: str) -> list[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.vendor_id == vendor_id)
            .order_by(Booking.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_all(self) -> list[Booking]:
        stmt = select(Booking).order_by(Booking.created_at.desc())
        return list(self.db.execute(stmt).scalars().all())

    def add(self, booking: Booking) -> Booking:
        self.db.add(booking)
        self.db.flush()
        return booking

    def delete(self, booking: Booking) -> None:
        self.db.delete(booking)
        self.db.flush()

    def update_status(
        self,
        booking: Booking,
        new_status: BookingStatus,
    ) -> None:

        booking.status = new_status
