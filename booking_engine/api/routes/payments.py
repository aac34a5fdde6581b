from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from booking_engine import config
from booking_engine.api.deps import (
    Identity,
    get_current_identity,
    get_db,
    get_payment_gateway,
    require_roles,
)
from booking_engine.api.errors import http_error
from booking_engine.api.routes.bookings import booking_response
from booking_engine.api.schemas.schemas import (
    ConfirmPaymentRequest,
    ConfirmPaymentResponse,
    PaymentConfigResponse,
    PaymentIntentRequest,
    PaymentIntentResponse,
    TransactionResponse,
)
from booking_engine.application.payment_service import PaymentService, to_minor_units
from booking_engine.domain.exceptions import BookingEngineError
from booking_engine.domain.value_objects import UserRole
from booking_engine.infrastructure.db.models import Transaction
from booking_engine.infrastructure.payments.gateway import PaymentGateway


router = APIRouter(tags=["payments"])


def transaction_response(transaction: Transaction) -> TransactionResponse:
    return TransactionResponse(
        id=transaction.id,
        booking_id=transaction.booking_id,
        ticket_id=transaction.ticket_id,
        buyer_id=transaction.buyer_id,
        charge_id=transaction.charge_id,
        amount=transaction.amount,
        currency=transaction.currency,
        payment_method=transaction.payment_method,
        payment_status=transaction.payment_status,
        ticket_title=transaction.ticket_title,
        created_at=transaction.created_at.isoformat(),
    )


@router.get("/payments/config", response_model=PaymentConfigResponse)
def payment_config():
    key_id, _ = config.razorpay_credentials()
    return PaymentConfigResponse(key_id=key_id, currency=config.PAYMENT_CURRENCY)


@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
def create_payment_intent(
    request: PaymentIntentRequest,
    identity: Identity = Depends(require_roles(UserRole.USER)),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    db: Session = Depends(get_db),
):
    service = PaymentService(db, gateway=gateway)
    try:
        booking, intent = service.create_intent(identity.user_id, request.booking_id)
    except BookingEngineError as exc:
        raise http_error(exc) from exc

    return PaymentIntentResponse(
        booking_id=booking.id,
        payment_intent_id=intent.intent_id,
        client_secret=intent.client_secret,
        amount=to_minor_units(booking.total_price),
        currency=service.currency,
        key_id=getattr(gateway, "key_id", None),
    )


@router.post("/confirm-payment", response_model=ConfirmPaymentResponse)
def confirm_payment(
    request: ConfirmPaymentRequest,
    identity: Identity = Depends(require_roles(UserRole.USER)),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    db: Session = Depends(get_db),
):
    try:
        booking, transaction = PaymentService(db, gateway=gateway).confirm(
            buyer_id=identity.user_id,
            booking_id=request.booking_id,
            intent_id=request.payment_intent_id,
        )
    except BookingEngineError as exc:
        raise http_error(exc) from exc

    return ConfirmPaymentResponse(
        message="Payment successful",
        booking=booking_response(booking),
        transaction=transaction_response(transaction),
    )


@router.get("/transactions", response_model=list[TransactionResponse])
def list_my_transactions(
    identity: Identity = Depends(require_roles(UserRole.USER)),
    db: Session = Depends(get_db),
):
    transactions = PaymentService(db).list_my_transactions(identity.user_id)
    return [transaction_response(transaction) for transaction in transactions]


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    try:
        transaction = PaymentService(db).get_transaction(
            caller_id=identity.user_id,
            role=identity.role,
            transaction_id=transaction_id,
        )
    except BookingEngineError as exc:
        raise http_error(exc) from exc
    return transaction_response(transaction)


@router.get("/admin/transactions", response_model=list[TransactionResponse])
def list_all_transactions(
    identity: Identity = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    return [transaction_response(t) for t in PaymentService(db).list_all_transactions()]
