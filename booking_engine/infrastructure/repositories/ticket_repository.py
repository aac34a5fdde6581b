# booking_engine/infrastructure/repositories/ticket_repository.py

from sqlalchemy.orm import Session
from sqlalchemy import select, update

from booking_engine.infrastructure.db.models import Booking, Ticket


class TicketRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, ticket_id: str) -> Ticket | None:
        stmt = select(Ticket).where(Ticket.id == ticket_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def lock_by_id(self, ticket_id: str) -> Ticket | None:
        """
        SELECT ... FOR UPDATE
        Serializes vendor edits with a capture decrementing the same row.
        """

        stmt = (
            select(Ticket)
            .where(Ticket.id == ticket_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def list_by_vendor(self, vendor_id: str) -> list[Ticket]:
        stmt = (
            select(Ticket)
            .where(Ticket.vendor_id == vendor_id)
            .order_by(Ticket.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_all(self) -> list[Ticket]:
        stmt = select(Ticket).order_by(Ticket.created_at.desc())
        return list(self.db.execute(stmt).scalars().all())

    def add(self, ticket: Ticket) -> Ticket:
        self.db.add(ticket)
        self.db.flush()
        return ticket

    def delete(self, ticket: Ticket) -> None:
        # Bookings keep their snapshot but lose the live reference.
        self.db.execute(
            update(Booking)
            .where(Booking.ticket_id == ticket.id)
            .values(ticket_id=None)
        )
        self.db.delete(ticket)
        self.db.flush()

    def decrement_quantity(
        self,
        ticket_id: str,
        quantity: int,
    ) -> bool:
        """
        Single conditional UPDATE ... WHERE quantity >= :quantity.
        Returns False when concurrent consumption already took the stock.
        """

        stmt = (
            update(Ticket)
            .where(
                Ticket.id == ticket_id,
                Ticket.quantity >= quantity,
            )
            .values(quantity=Ticket.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        return result.rowcount == 1
