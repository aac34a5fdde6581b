from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from booking_engine.api.deps import Identity, get_current_identity, get_db, require_roles
from booking_engine.api.errors import http_error
from booking_engine.api.schemas.schemas import (
    BookingRequest,
    BookingResponse,
    MessageResponse,
    TicketSnapshotResponse,
)
from booking_engine.application.booking_service import BookingService, can_pay
from booking_engine.domain.exceptions import BookingEngineError
from booking_engine.domain.value_objects import UserRole
from booking_engine.infrastructure.db.models import Booking


router = APIRouter(prefix="/bookings", tags=["bookings"])


def booking_response(booking: Booking) -> BookingResponse:
    snapshot = booking.ticket_snapshot
    return BookingResponse(
        booking_id=booking.id,
        ticket_id=booking.ticket_id,
        buyer_id=booking.buyer_id,
        vendor_id=booking.vendor_id,
        quantity=booking.quantity,
        total_price=booking.total_price,
        status=booking.status.value,
        payment_status=booking.payment_status.value,
        payment_intent_id=booking.payment_intent_id,
        paid_at=booking.paid_at.isoformat() if booking.paid_at else None,
        created_at=booking.created_at.isoformat(),
        can_pay=can_pay(booking),
        ticket_snapshot=TicketSnapshotResponse(
            title=snapshot.title,
            from_location=snapshot.from_location,
            to_location=snapshot.to_location,
            departure_date=snapshot.departure_date.isoformat(),
            departure_time=snapshot.departure_time,
            transport_type=snapshot.transport_type,
            unit_price=snapshot.unit_price,
        ),
    )


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingRequest,
    identity: Identity = Depends(require_roles(UserRole.USER)),
    db: Session = Depends(get_db),
):
    try:
        booking = BookingService(db).create_booking(
            buyer_id=identity.user_id,
            ticket_id=request.ticket_id,
            quantity=request.quantity,
        )
    except BookingEngineError as exc:
        raise http_error(exc) from exc
    return booking_response(booking)


@router.get("/my-bookings", response_model=list[BookingResponse])
def list_my_bookings(
    identity: Identity = Depends(require_roles(UserRole.USER)),
    db: Session = Depends(get_db),
):
    bookings = BookingService(db).list_my_bookings(identity.user_id)
    return [booking_response(booking) for booking in bookings]


@router.get("/vendor/requests", response_model=list[BookingResponse])
def list_vendor_requests(
    identity: Identity = Depends(require_roles(UserRole.VENDOR)),
    db: Session = Depends(get_db),
):
    bookings = BookingService(db).list_vendor_requests(identity.user_id)
    return [booking_response(booking) for booking in bookings]


@router.get("/admin/all", response_model=list[BookingResponse])
def list_all_bookings(
    identity: Identity = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    return [booking_response(booking) for booking in BookingService(db).list_all_bookings()]


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    try:
        booking = BookingService(db).get_booking(
            caller_id=identity.user_id,
            role=identity.role,
            booking_id=booking_id,
        )
    except BookingEngineError as exc:
        raise http_error(exc) from exc
    return booking_response(booking)


@router.put("/{booking_id}/accept", response_model=BookingResponse)
def accept_booking(
    booking_id: str,
    identity: Identity = Depends(require_roles(UserRole.VENDOR)),
    db: Session = Depends(get_db),
):
    try:
        booking = BookingService(db).accept_booking(identity.user_id, booking_id)
    except BookingEngineError as exc:
        raise http_error(exc) from exc
    return booking_response(booking)


@router.put("/{booking_id}/reject", response_model=BookingResponse)
def reject_booking(
    booking_id: str,
    identity: Identity = Depends(require_roles(UserRole.VENDOR)),
    db: Session = Depends(get_db),
):
    try:
        booking = BookingService(db).reject_booking(identity.user_id, booking_id)
    except BookingEngineError as exc:
        raise http_error(exc) from exc
    return booking_response(booking)


@router.delete("/{booking_id}", response_model=MessageResponse)
def cancel_booking(
    booking_id: str,
    identity: Identity = Depends(require_roles(UserRole.USER)),
    db: Session = Depends(get_db),
):
    try:
        BookingService(db).cancel_booking(identity.user_id, booking_id)
    except BookingEngineError as exc:
        raise http_error(exc) from exc
    return MessageResponse(message="Booking cancelled successfully")
