from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from booking_engine.api.deps import Identity, get_db, require_roles
from booking_engine.api.errors import http_error
from booking_engine.api.schemas.schemas import (
    MessageResponse,
    TicketCreate,
    TicketResponse,
    TicketUpdate,
)
from booking_engine.application.inventory_ledger import InventoryLedger
from booking_engine.domain.departure import is_expired
from booking_engine.domain.exceptions import BookingEngineError
from booking_engine.domain.value_objects import UserRole
from booking_engine.infrastructure.db.models import Ticket


router = APIRouter(prefix="/tickets", tags=["tickets"])


def ticket_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse(
        id=ticket.id,
        title=ticket.title,
        image=ticket.image,
        from_location=ticket.from_location,
        to_location=ticket.to_location,
        transport_type=ticket.transport_type.value,
        unit_price=ticket.unit_price,
        quantity=ticket.quantity,
        departure_date=ticket.departure_date.isoformat(),
        departure_time=ticket.departure_time,
        perks=list(ticket.perks or []),
        approval_status=ticket.approval_status.value,
        vendor_id=ticket.vendor_id,
        is_expired=is_expired(ticket.departure_date, ticket.departure_time),
    )


@router.post("", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
def create_ticket(
    request: TicketCreate,
    identity: Identity = Depends(require_roles(UserRole.VENDOR)),
    db: Session = Depends(get_db),
):
    ticket = InventoryLedger(db).create_ticket(
        vendor_id=identity.user_id,
        **request.model_dump(),
    )
    return ticket_response(ticket)


@router.get("/vendor/my-tickets", response_model=list[TicketResponse])
def list_my_tickets(
    identity: Identity = Depends(require_roles(UserRole.VENDOR)),
    db: Session = Depends(get_db),
):
    tickets = InventoryLedger(db).list_vendor_tickets(identity.user_id)
    return [ticket_response(ticket) for ticket in tickets]


@router.get("/admin/all", response_model=list[TicketResponse])
def list_all_tickets(
    identity: Identity = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    return [ticket_response(ticket) for ticket in InventoryLedger(db).list_all_tickets()]


@router.get("/{ticket_id}", response_model=TicketResponse)
def get_ticket(ticket_id: str, db: Session = Depends(get_db)):
    try:
        ticket = InventoryLedger(db).get_ticket(ticket_id)
    except BookingEngineError as exc:
        raise http_error(exc) from exc
    return ticket_response(ticket)


@router.put("/{ticket_id}", response_model=TicketResponse)
def update_ticket(
    ticket_id: str,
    request: TicketUpdate,
    identity: Identity = Depends(require_roles(UserRole.VENDOR)),
    db: Session = Depends(get_db),
):
    try:
        ticket = InventoryLedger(db).update_ticket(
            vendor_id=identity.user_id,
            ticket_id=ticket_id,
            changes=request.model_dump(exclude_unset=True),
        )
    except BookingEngineError as exc:
        raise http_error(exc) from exc
    return ticket_response(ticket)


@router.delete("/{ticket_id}", response_model=MessageResponse)
def delete_ticket(
    ticket_id: str,
    identity: Identity = Depends(require_roles(UserRole.VENDOR)),
    db: Session = Depends(get_db),
):
    try:
        InventoryLedger(db).delete_ticket(vendor_id=identity.user_id, ticket_id=ticket_id)
    except BookingEngineError as exc:
        raise http_error(exc) from exc
    return MessageResponse(message="Ticket deleted successfully")


@router.put("/{ticket_id}/approve", response_model=TicketResponse)
def approve_ticket(
    ticket_id: str,
    identity: Identity = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    try:
        ticket = InventoryLedger(db).approve_ticket(ticket_id)
    except BookingEngineError as exc:
        raise http_error(exc) from exc
    return ticket_response(ticket)


@router.put("/{ticket_id}/reject", response_model=TicketResponse)
def reject_ticket(
    ticket_id: str,
    identity: Identity = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    try:
        ticket = InventoryLedger(db).reject_ticket(ticket_id)
    except BookingEngineError as exc:
        raise http_error(exc) from exc
    return ticket_response(ticket)
