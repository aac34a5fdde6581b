import threading
from dataclasses import replace
from datetime import date, timedelta

import pytest
from sqlalchemy import func, select

from booking_engine.application.booking_service import BookingService
from booking_engine.application.inventory_ledger import InventoryLedger
from booking_engine.application.payment_service import PaymentService
from booking_engine.domain.exceptions import (
    AlreadyPaidError,
    ExpiredError,
    ForbiddenError,
    InsufficientInventoryError,
    InvalidTransitionError,
    PaymentGatewayTimeoutError,
    PaymentNotCompletedError,
    UnconfirmedPaymentError,
)
from booking_engine.domain.state_machine import BookingStatus, PaymentStatus
from booking_engine.domain.value_objects import UserRole
from booking_engine.infrastructure.db.models import Booking, Ticket, Transaction
from booking_engine.infrastructure.db.session import SessionLocal
from booking_engine.infrastructure.repositories.transaction_repository import (
    TransactionRepository,
)


VENDOR = "vendor-1"
BUYER = "buyer-a"


def _accepted_booking(db, ticket, buyer=BUYER, quantity=1) -> Booking:
    service = BookingService(db)
    booking = service.create_booking(buyer, ticket.id, quantity)
    service.accept_booking(VENDOR, booking.id)
    db.commit()
    return booking


def _paid_intent(db, gateway, booking, buyer=BUYER) -> str:
    _, intent = PaymentService(db, gateway=gateway).create_intent(buyer, booking.id)
    gateway.succeed(intent.intent_id)
    db.commit()
    return intent.intent_id


def _transaction_count(db) -> int:
    return db.execute(select(func.count()).select_from(Transaction)).scalar_one()


# ---------------------
# CREATE INTENT
# ---------------------

def test_create_intent_charges_total_in_minor_units(db, gateway, make_ticket):
    ticket = make_ticket(unit_price=100, quantity=3)
    booking = _accepted_booking(db, ticket, quantity=2)

    booking, intent = PaymentService(db, gateway=gateway).create_intent(BUYER, booking.id)

    assert booking.payment_intent_id == intent.intent_id
    created = gateway.created[0]
    assert created["amount_minor"] == 20000
    assert created["currency"] == "INR"
    assert created["metadata"]["booking_id"] == booking.id
    assert created["metadata"]["buyer_id"] == BUYER


def test_create_intent_requires_accepted_booking(db, gateway, make_ticket):
    ticket = make_ticket()
    booking = BookingService(db).create_booking(BUYER, ticket.id, 1)
    db.commit()

    with pytest.raises(InvalidTransitionError):
        PaymentService(db, gateway=gateway).create_intent(BUYER, booking.id)
    assert gateway.created == []


def test_create_intent_for_someone_elses_booking(db, gateway, make_ticket):
    booking = _accepted_booking(db, make_ticket())

    with pytest.raises(ForbiddenError):
        PaymentService(db, gateway=gateway).create_intent("buyer-b", booking.id)


def test_create_intent_after_departure(db, gateway, make_ticket):
    booking = _accepted_booking(db, make_ticket())
    booking.ticket_snapshot = replace(
        booking.ticket_snapshot,
        departure_date=date.today() - timedelta(days=1),
    )
    db.commit()

    with pytest.raises(ExpiredError):
        PaymentService(db, gateway=gateway).create_intent(BUYER, booking.id)


def test_create_intent_when_stock_already_sold(db, gateway, make_ticket):
    ticket = make_ticket(quantity=2)
    booking = _accepted_booking(db, ticket, quantity=2)
    ticket.quantity = 1
    db.commit()

    with pytest.raises(InsufficientInventoryError):
        PaymentService(db, gateway=gateway).create_intent(BUYER, booking.id)


def test_create_intent_after_ticket_deleted(db, gateway, make_ticket):
    ticket = make_ticket()
    booking = _accepted_booking(db, ticket)
    InventoryLedger(db).delete_ticket(VENDOR, ticket.id)
    db.commit()

    with pytest.raises(InsufficientInventoryError):
        PaymentService(db, gateway=gateway).create_intent(BUYER, booking.id)


def test_gateway_timeout_propagates(db, gateway, make_ticket):
    booking = _accepted_booking(db, make_ticket())
    gateway.error = PaymentGatewayTimeoutError("Payment gateway did not respond in time.")

    with pytest.raises(PaymentGatewayTimeoutError):
        PaymentService(db, gateway=gateway).create_intent(BUYER, booking.id)


# ---------------------
# CONFIRM
# ---------------------

def test_confirm_captures_booking(db, gateway, make_ticket):
    ticket = make_ticket(unit_price=100, quantity=3)
    booking = _accepted_booking(db, ticket, quantity=2)
    intent_id = _paid_intent(db, gateway, booking)

    booking, transaction = PaymentService(db, gateway=gateway).confirm(
        BUYER, booking.id, intent_id
    )
    db.commit()

    assert booking.status is BookingStatus.PAID
    assert booking.payment_status is PaymentStatus.PAID
    assert booking.paid_at is not None
    assert transaction.charge_id == intent_id
    assert transaction.amount == 200
    assert transaction.booking_id == booking.id
    assert transaction.ticket_title == ticket.title
    assert TransactionRepository(db).get_by_booking_id(booking.id).id == transaction.id

    db.refresh(ticket)
    assert ticket.quantity == 1


def test_confirm_before_charge_succeeds(db, gateway, make_ticket):
    ticket = make_ticket(quantity=3)
    booking = _accepted_booking(db, ticket)
    booking, intent = PaymentService(db, gateway=gateway).create_intent(BUYER, booking.id)
    db.commit()

    with pytest.raises(PaymentNotCompletedError):
        PaymentService(db, gateway=gateway).confirm(BUYER, booking.id, intent.intent_id)

    db.refresh(ticket)
    assert ticket.quantity == 3
    assert _transaction_count(db) == 0


def test_new_intent_refused_while_earlier_charge_succeeded(db, gateway, make_ticket):
    booking = _accepted_booking(db, make_ticket())
    first_intent = _paid_intent(db, gateway, booking)

    with pytest.raises(UnconfirmedPaymentError) as exc_info:
        PaymentService(db, gateway=gateway).create_intent(BUYER, booking.id)

    assert exc_info.value.intent_id == first_intent
    assert len(gateway.created) == 1

    booking, _ = PaymentService(db, gateway=gateway).confirm(BUYER, booking.id, first_intent)
    assert booking.status is BookingStatus.PAID


def test_earlier_succeeded_intent_settles_booking(db, gateway, make_ticket):
    ticket = make_ticket(quantity=3)
    booking = _accepted_booking(db, ticket)
    service = PaymentService(db, gateway=gateway)
    _, first = service.create_intent(BUYER, booking.id)
    # The buyer abandons the first checkout and opens a second one.
    _, second = service.create_intent(BUYER, booking.id)
    db.commit()
    assert booking.payment_intent_id == second.intent_id

    # The first checkout completes after all.
    gateway.succeed(first.intent_id)
    booking, transaction = service.confirm(BUYER, booking.id, first.intent_id)
    db.commit()

    assert booking.status is BookingStatus.PAID
    assert booking.payment_intent_id == first.intent_id
    assert transaction.charge_id == first.intent_id
    db.refresh(ticket)
    assert ticket.quantity == 2


def test_confirm_with_charge_for_another_booking(db, gateway, make_ticket):
    ticket = make_ticket(quantity=3)
    mine = _accepted_booking(db, ticket)
    other = _accepted_booking(db, ticket, buyer="buyer-b")
    other_intent = _paid_intent(db, gateway, other, buyer="buyer-b")
    _paid_intent(db, gateway, mine)

    with pytest.raises(PaymentNotCompletedError, match="does not belong"):
        PaymentService(db, gateway=gateway).confirm(BUYER, mine.id, other_intent)


def test_double_confirm_is_already_paid(db, gateway, make_ticket):
    ticket = make_ticket(quantity=3)
    booking = _accepted_booking(db, ticket)
    intent_id = _paid_intent(db, gateway, booking)
    service = PaymentService(db, gateway=gateway)

    service.confirm(BUYER, booking.id, intent_id)
    db.commit()

    with pytest.raises(AlreadyPaidError):
        service.confirm(BUYER, booking.id, intent_id)

    assert _transaction_count(db) == 1
    db.refresh(ticket)
    assert ticket.quantity == 2


def test_losing_buyer_keeps_accepted_unpaid_booking(db, gateway, make_ticket):
    ticket = make_ticket(unit_price=100, quantity=3)
    first = _accepted_booking(db, ticket, buyer="buyer-a", quantity=2)
    second = _accepted_booking(db, ticket, buyer="buyer-b", quantity=2)
    # Both intents are created before either capture consumes stock.
    first_intent = _paid_intent(db, gateway, first, buyer="buyer-a")
    second_intent = _paid_intent(db, gateway, second, buyer="buyer-b")
    service = PaymentService(db, gateway=gateway)

    service.confirm("buyer-a", first.id, first_intent)
    db.commit()

    with pytest.raises(InsufficientInventoryError):
        service.confirm("buyer-b", second.id, second_intent)

    loser = db.get(Booking, second.id)
    assert loser.status is BookingStatus.ACCEPTED
    assert loser.payment_status is PaymentStatus.UNPAID
    db.refresh(ticket)
    assert ticket.quantity == 1
    assert _transaction_count(db) == 1


def test_confirm_after_ticket_deleted_does_not_capture(db, gateway, make_ticket):
    ticket = make_ticket()
    booking = _accepted_booking(db, ticket)
    intent_id = _paid_intent(db, gateway, booking)
    InventoryLedger(db).delete_ticket(VENDOR, ticket.id)
    db.commit()

    with pytest.raises(InsufficientInventoryError):
        PaymentService(db, gateway=gateway).confirm(BUYER, booking.id, intent_id)

    assert db.get(Booking, booking.id).payment_status is PaymentStatus.UNPAID


# ---------------------
# TRANSACTION QUERIES
# ---------------------

def test_transaction_visibility(db, gateway, make_ticket):
    booking = _accepted_booking(db, make_ticket())
    intent_id = _paid_intent(db, gateway, booking)
    service = PaymentService(db, gateway=gateway)
    _, transaction = service.confirm(BUYER, booking.id, intent_id)
    db.commit()

    assert [t.id for t in service.list_my_transactions(BUYER)] == [transaction.id]
    assert service.list_my_transactions("buyer-b") == []
    assert len(service.list_all_transactions()) == 1
    assert service.get_transaction("admin-1", UserRole.ADMIN, transaction.id).id == transaction.id
    with pytest.raises(ForbiddenError):
        service.get_transaction("buyer-b", UserRole.USER, transaction.id)


# ---------------------
# CONCURRENT CAPTURE
# ---------------------

def test_concurrent_captures_only_one_wins(db, gateway, make_ticket):
    ticket = make_ticket(unit_price=100, quantity=3)
    bookings = {
        buyer: _accepted_booking(db, ticket, buyer=buyer, quantity=2)
        for buyer in ("buyer-a", "buyer-b")
    }
    intents = {
        buyer: _paid_intent(db, gateway, booking, buyer=buyer)
        for buyer, booking in bookings.items()
    }
    barrier = threading.Barrier(len(bookings))
    results = {}

    def capture(buyer):
        session = SessionLocal()
        try:
            service = PaymentService(session, gateway=gateway)
            barrier.wait()
            service.confirm(buyer, bookings[buyer].id, intents[buyer])
            session.commit()
            results[buyer] = "ok"
        except InsufficientInventoryError:
            results[buyer] = "insufficient"
        finally:
            session.close()

    threads = [threading.Thread(target=capture, args=(buyer,)) for buyer in bookings]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(results.values()) == ["insufficient", "ok"]

    db.expire_all()
    assert db.get(Ticket, ticket.id).quantity == 1
    assert _transaction_count(db) == 1
    loser = next(buyer for buyer, outcome in results.items() if outcome == "insufficient")
    booking = db.get(Booking, bookings[loser].id)
    assert booking.status is BookingStatus.ACCEPTED
    assert booking.payment_status is PaymentStatus.UNPAID
