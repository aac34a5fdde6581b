import logging
from datetime import date

from sqlalchemy.orm import Session

from booking_engine.domain.departure import is_expired, parse_time_of_day
from booking_engine.domain.exceptions import (
    ExpiredError,
    ForbiddenError,
    InsufficientInventoryError,
    NotFoundError,
    TicketNotApprovedError,
)
from booking_engine.domain.state_machine import (
    TicketApprovalStateMachine,
    TicketApprovalStatus,
    TransportType,
)
from booking_engine.infrastructure.db.models import Ticket
from booking_engine.infrastructure.repositories.ticket_repository import TicketRepository


logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = (
    "title",
    "image",
    "from_location",
    "to_location",
    "transport_type",
    "unit_price",
    "quantity",
    "departure_date",
    "departure_time",
    "perks",
)


class InventoryLedger:
    """
    Owns ticket records: remaining quantity, approval state and departure.

    Quantity changes only through decrement_quantity, which is a single
    conditional update, or through an explicit vendor edit.
    """

    def __init__(self, db: Session):
        self.db = db
        self.ticket_repository = TicketRepository(db)

    def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = self.ticket_repository.get_by_id(ticket_id)
        if not ticket:
            raise NotFoundError("Ticket", ticket_id)
        return ticket

    def ensure_bookable(self, ticket: Ticket, quantity: int) -> None:
        if ticket.approval_status is not TicketApprovalStatus.APPROVED:
            raise TicketNotApprovedError("This ticket is not available for booking")
        if is_expired(ticket.departure_date, ticket.departure_time):
            raise ExpiredError("This ticket has already departed")
        if quantity > ticket.quantity:
            raise InsufficientInventoryError(
                f"Only {ticket.quantity} tickets available"
            )

    def reserve_check(self, ticket_id: str, quantity: int) -> bool:
        ticket = self.ticket_repository.get_by_id(ticket_id)
        if not ticket:
            return False
        try:
            self.ensure_bookable(ticket, quantity)
        except (TicketNotApprovedError, ExpiredError, InsufficientInventoryError):
            return False
        return True

    def has_available(self, ticket_id: str, quantity: int) -> bool:
        ticket = self.ticket_repository.get_by_id(ticket_id)
        return ticket is not None and ticket.quantity >= quantity

    def decrement_quantity(self, ticket_id: str, quantity: int) -> None:
        if not self.ticket_repository.decrement_quantity(ticket_id, quantity):
            logger.warning(
                "Inventory decrement rejected. ticket_id=%s quantity=%s",
                ticket_id,
                quantity,
            )
            raise InsufficientInventoryError("Ticket no longer available")

    # -----------------------------
    # Vendor / admin listing management
    # -----------------------------
    def create_ticket(
        self,
        vendor_id: str,
        title: str,
        from_location: str,
        to_location: str,
        transport_type: TransportType,
        unit_price: int,
        quantity: int,
        departure_date: date,
        departure_time: str,
        image: str | None = None,
        perks: list[str] | None = None,
    ) -> Ticket:
        parse_time_of_day(departure_time)
        ticket = Ticket(
            vendor_id=vendor_id,
            title=title,
            image=image,
            from_location=from_location,
            to_location=to_location,
            transport_type=transport_type,
            unit_price=unit_price,
            quantity=quantity,
            departure_date=departure_date,
            departure_time=departure_time,
            perks=list(perks or []),
            approval_status=TicketApprovalStatus.PENDING,
        )
        self.ticket_repository.add(ticket)
        logger.info("Ticket created. ticket_id=%s vendor_id=%s", ticket.id, vendor_id)
        return ticket

    def update_ticket(self, vendor_id: str, ticket_id: str, changes: dict) -> Ticket:
        ticket = self._owned_editable_ticket(vendor_id, ticket_id, "update", lock=True)
        previous_quantity = ticket.quantity
        if changes.get("departure_time") is not None:
            parse_time_of_day(changes["departure_time"])

        for field in _EDITABLE_FIELDS:
            value = changes.get(field)
            if value is not None:
                setattr(ticket, field, value)

        self.db.flush()
        logger.info("Ticket updated. ticket_id=%s fields=%s", ticket.id, sorted(changes))
        if ticket.quantity != previous_quantity:
            # Quantity is the remaining stock, set as given.
            logger.info(
                "Ticket stock reset. ticket_id=%s from=%s to=%s",
                ticket.id,
                previous_quantity,
                ticket.quantity,
            )
        return ticket

    def delete_ticket(self, vendor_id: str, ticket_id: str) -> None:
        ticket = self._owned_editable_ticket(vendor_id, ticket_id, "delete")
        self.ticket_repository.delete(ticket)
        logger.info("Ticket deleted. ticket_id=%s vendor_id=%s", ticket_id, vendor_id)

    def approve_ticket(self, ticket_id: str) -> Ticket:
        return self._set_approval(ticket_id, TicketApprovalStatus.APPROVED)

    def reject_ticket(self, ticket_id: str) -> Ticket:
        return self._set_approval(ticket_id, TicketApprovalStatus.REJECTED)

    def list_vendor_tickets(self, vendor_id: str) -> list[Ticket]:
        return self.ticket_repository.list_by_vendor(vendor_id)

    def list_all_tickets(self) -> list[Ticket]:
        return self.ticket_repository.list_all()

    def _owned_editable_ticket(
        self, vendor_id: str, ticket_id: str, action: str, lock: bool = False
    ) -> Ticket:
        if lock:
            ticket = self.ticket_repository.lock_by_id(ticket_id)
            if not ticket:
                raise NotFoundError("Ticket", ticket_id)
        else:
            ticket = self.get_ticket(ticket_id)
        if ticket.vendor_id != vendor_id:
            raise ForbiddenError(f"Not authorized to {action} this ticket")
        if ticket.approval_status is TicketApprovalStatus.REJECTED:
            raise ForbiddenError(f"Cannot {action} rejected tickets")
        return ticket

    def _set_approval(self, ticket_id: str, to_status: TicketApprovalStatus) -> Ticket:
        ticket = self.get_ticket(ticket_id)
        TicketApprovalStateMachine.validate_transition(ticket.approval_status, to_status)
        ticket.approval_status = to_status
        self.db.flush()
        logger.info(
            "Ticket approval changed. ticket_id=%s approval_status=%s",
            ticket.id,
            to_status.value,
        )
        return ticket
