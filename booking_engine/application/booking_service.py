import logging

from sqlalchemy.orm import Session

from booking_engine.application.inventory_ledger import InventoryLedger
from booking_engine.domain.exceptions import (
    ExpiredError,
    ForbiddenError,
    InvalidQuantityError,
    NotFoundError,
)
from booking_engine.domain.state_machine import (
    BookingAction,
    BookingStateMachine,
    BookingStatus,
    PaymentStatus,
)
from booking_engine.domain.value_objects import TicketSnapshot, UserRole
from booking_engine.infrastructure.db.models import Booking, Ticket
from booking_engine.infrastructure.repositories.booking_repository import BookingRepository


logger = logging.getLogger(__name__)


def snapshot_ticket(ticket: Ticket) -> TicketSnapshot:
    return TicketSnapshot(
        title=ticket.title,
        from_location=ticket.from_location,
        to_location=ticket.to_location,
        departure_date=ticket.departure_date,
        departure_time=ticket.departure_time,
        transport_type=ticket.transport_type.value,
        unit_price=ticket.unit_price,
    )


class BookingService:
    """Application service coordinating the booking request/approval workflow."""

    def __init__(self, db: Session):
        self.db = db
        self.booking_repository = BookingRepository(db)
        self.inventory = InventoryLedger(db)

    def create_booking(
        self,
        buyer_id: str,
        ticket_id: str,
        quantity: int,
    ) -> Booking:
        """
        Creates a pending booking with frozen ticket terms.

        Inventory is only checked here, never held: stock is consumed
        at payment capture, where availability is enforced atomically.
        """
        if quantity < 1:
            raise InvalidQuantityError("Booking quantity must be at least 1")

        ticket = self.inventory.get_ticket(ticket_id)
        self.inventory.ensure_bookable(ticket, quantity)

        booking = Booking(
            ticket_id=ticket.id,
            buyer_id=buyer_id,
            vendor_id=ticket.vendor_id,
            quantity=quantity,
            total_price=quantity * ticket.unit_price,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.UNPAID,
            ticket_snapshot=snapshot_ticket(ticket),
        )
        self.booking_repository.add(booking)

        logger.info(
            "Booking created. booking_id=%s ticket_id=%s buyer_id=%s quantity=%s total_price=%s",
            booking.id,
            ticket.id,
            buyer_id,
            quantity,
            booking.total_price,
        )
        return booking

    def accept_booking(self, vendor_id: str, booking_id: str) -> Booking:
        booking = self._get_for_vendor(vendor_id, booking_id, BookingAction.ACCEPT)
        next_status = BookingStateMachine.next_status(booking.status, BookingAction.ACCEPT)

        if booking.ticket_snapshot.is_expired():
            raise ExpiredError("Cannot accept booking for expired ticket")

        self._transition(booking, next_status)
        return booking

    def reject_booking(self, vendor_id: str, booking_id: str) -> Booking:
        booking = self._get_for_vendor(vendor_id, booking_id, BookingAction.REJECT)
        next_status = BookingStateMachine.next_status(booking.status, BookingAction.REJECT)
        self._transition(booking, next_status)
        return booking

    def cancel_booking(self, buyer_id: str, booking_id: str) -> None:
        booking = self.get_booking_or_404(booking_id)
        if booking.buyer_id != buyer_id:
            raise ForbiddenError("Not authorized to cancel this booking")

        # Cancel has no target status: the record goes away.
        BookingStateMachine.next_status(booking.status, BookingAction.CANCEL)
        self.booking_repository.delete(booking)
        logger.info("Booking cancelled. booking_id=%s buyer_id=%s", booking_id, buyer_id)

    def get_booking_or_404(self, booking_id: str) -> Booking:
        booking = self.booking_repository.get_by_id(booking_id)
        if not booking:
            raise NotFoundError("Booking", booking_id)
        return booking

    def get_booking(self, caller_id: str, role: UserRole, booking_id: str) -> Booking:
        booking = self.get_booking_or_404(booking_id)
        is_owner = booking.buyer_id == caller_id
        is_vendor = role is UserRole.VENDOR and booking.vendor_id == caller_id
        if not (is_owner or is_vendor or role is UserRole.ADMIN):
            raise ForbiddenError("Not authorized to view this booking")
        return booking

    def list_my_bookings(self, buyer_id: str) -> list[Booking]:
        return self.booking_repository.list_by_buyer(buyer_id)

    def list_vendor_requests(self, vendor_id: str) -> list[Booking]:
        return self.booking_repository.list_by_vendor(vendor_id)

    def list_all_bookings(self) -> list[Booking]:
        return self.booking_repository.list_all()

    def _get_for_vendor(
        self,
        vendor_id: str,
        booking_id: str,
        action: BookingAction,
    ) -> Booking:
        booking = self.get_booking_or_404(booking_id)
        if booking.vendor_id != vendor_id:
            raise ForbiddenError(f"Not authorized to {action.value} this booking")
        return booking

    def _transition(self, booking: Booking, to_status: BookingStatus) -> None:
        from_status = booking.status
        self.booking_repository.update_status(booking, to_status)
        self.db.flush()
        logger.info(
            "Booking transitioned. booking_id=%s from=%s to=%s",
            booking.id,
            from_status.value,
            to_status.value,
        )


def can_pay(booking: Booking) -> bool:
    allowed = BookingStateMachine.get_allowed_actions(booking.status)
    if BookingAction.CAPTURE not in allowed:
        return False
    if booking.payment_status is PaymentStatus.PAID:
        return False
    return not booking.ticket_snapshot.is_expired()
