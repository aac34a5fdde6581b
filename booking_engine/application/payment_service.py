import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from booking_engine import config
from booking_engine.application.inventory_ledger import InventoryLedger
from booking_engine.domain.exceptions import (
    AlreadyPaidError,
    ExpiredError,
    ForbiddenError,
    InsufficientInventoryError,
    NotFoundError,
    PaymentNotCompletedError,
    UnconfirmedPaymentError,
)
from booking_engine.domain.state_machine import (
    BookingAction,
    BookingStateMachine,
    PaymentStatus,
)
from booking_engine.domain.value_objects import UserRole
from booking_engine.infrastructure.db.models import Booking, Transaction
from booking_engine.infrastructure.payments.gateway import (
    Charge,
    ChargeIntent,
    ChargeStatus,
    PaymentGateway,
)
from booking_engine.infrastructure.repositories.booking_repository import BookingRepository
from booking_engine.infrastructure.repositories.transaction_repository import (
    TransactionRepository,
)


logger = logging.getLogger(__name__)


def to_minor_units(amount: int) -> int:
    return amount * 100


class PaymentService:
    """
    Bridges an accepted booking to an external charge and finalizes it.

    The capture (booking paid, inventory decremented, transaction
    appended) commits as one unit or not at all.
    """

    def __init__(
        self,
        db: Session,
        gateway: PaymentGateway | None = None,
        currency: str = config.PAYMENT_CURRENCY,
    ):
        self.db = db
        self.gateway = gateway
        self.currency = currency
        self.booking_repository = BookingRepository(db)
        self.transaction_repository = TransactionRepository(db)
        self.inventory = InventoryLedger(db)

    def create_intent(
        self,
        buyer_id: str,
        booking_id: str,
    ) -> tuple[Booking, ChargeIntent]:
        booking = self._get_owned_booking(buyer_id, booking_id)

        BookingStateMachine.validate_transition(booking.status, BookingAction.CAPTURE)
        if booking.payment_status is PaymentStatus.PAID:
            raise AlreadyPaidError("This booking is already paid")
        if booking.ticket_snapshot.is_expired():
            raise ExpiredError("Cannot pay for expired ticket")

        # Stock may have been sold to other buyers since acceptance.
        if not booking.ticket_id or not self.inventory.has_available(
            booking.ticket_id, booking.quantity
        ):
            raise InsufficientInventoryError("Ticket no longer available")

        gateway = self._require_gateway()
        if booking.payment_intent_id:
            # A succeeded charge must be confirmed, never paid a second time.
            previous = gateway.retrieve_charge_status(booking.payment_intent_id)
            if previous is ChargeStatus.SUCCEEDED:
                raise UnconfirmedPaymentError(booking.payment_intent_id)

        intent = gateway.create_charge_intent(
            amount_minor=to_minor_units(booking.total_price),
            currency=self.currency,
            metadata={
                "booking_id": booking.id,
                "buyer_id": buyer_id,
                "ticket_id": booking.ticket_id or "",
            },
        )
        booking.payment_intent_id = intent.intent_id
        self.db.flush()

        logger.info(
            "Payment intent created. booking_id=%s intent_id=%s amount=%s currency=%s",
            booking.id,
            intent.intent_id,
            booking.total_price,
            self.currency,
        )
        return booking, intent

    def confirm(
        self,
        buyer_id: str,
        booking_id: str,
        intent_id: str,
    ) -> tuple[Booking, Transaction]:
        booking = self._get_owned_booking(buyer_id, booking_id)

        charge = self._require_gateway().retrieve_charge(intent_id)
        if charge.status is not ChargeStatus.SUCCEEDED:
            raise PaymentNotCompletedError("Payment not completed")

        # Row lock: a concurrent confirmation of this booking waits here
        # and then observes the paid state.
        booking = self.booking_repository.lock_by_id(booking_id)
        if not booking:
            raise NotFoundError("Booking", booking_id)
        if booking.payment_status is PaymentStatus.PAID:
            logger.warning(
                "Duplicate payment confirmation. booking_id=%s intent_id=%s",
                booking_id,
                intent_id,
            )
            raise AlreadyPaidError("Payment already processed")
        next_status = BookingStateMachine.next_status(booking.status, BookingAction.CAPTURE)
        if not self._charge_belongs_to(charge, booking):
            raise PaymentNotCompletedError("Payment intent does not belong to this booking")

        try:
            if not booking.ticket_id:
                raise InsufficientInventoryError("Ticket no longer available")
            self.inventory.decrement_quantity(booking.ticket_id, booking.quantity)

            booking.status = next_status
            booking.payment_intent_id = intent_id
            booking.payment_status = PaymentStatus.PAID
            booking.paid_at = datetime.now(timezone.utc)

            transaction = self.transaction_repository.append(
                Transaction(
                    booking_id=booking.id,
                    ticket_id=booking.ticket_id,
                    buyer_id=booking.buyer_id,
                    charge_id=intent_id,
                    amount=booking.total_price,
                    currency=self.currency,
                    payment_method="razorpay",
                    payment_status="completed",
                    ticket_title=booking.ticket_snapshot.title,
                )
            )
            self.db.flush()
        except IntegrityError as exc:
            # A concurrent confirmation already recorded this charge.
            self.db.rollback()
            raise AlreadyPaidError("Payment already processed") from exc
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Booking paid. booking_id=%s ticket_id=%s quantity=%s transaction_id=%s",
            booking.id,
            booking.ticket_id,
            booking.quantity,
            transaction.id,
        )
        return booking, transaction

    def list_my_transactions(self, buyer_id: str) -> list[Transaction]:
        return self.transaction_repository.list_by_buyer(buyer_id)

    def list_all_transactions(self) -> list[Transaction]:
        return self.transaction_repository.list_all()

    def get_transaction(
        self,
        caller_id: str,
        role: UserRole,
        transaction_id: str,
    ) -> Transaction:
        transaction = self.transaction_repository.get_by_id(transaction_id)
        if not transaction:
            raise NotFoundError("Transaction", transaction_id)
        if transaction.buyer_id != caller_id and role is not UserRole.ADMIN:
            raise ForbiddenError("Not authorized to view this transaction")
        return transaction

    def _get_owned_booking(self, buyer_id: str, booking_id: str) -> Booking:
        booking = self.booking_repository.get_by_id(booking_id)
        if not booking:
            raise NotFoundError("Booking", booking_id)
        if booking.buyer_id != buyer_id:
            raise ForbiddenError("Not authorized to pay for this booking")
        return booking

    @staticmethod
    def _charge_belongs_to(charge: Charge, booking: Booking) -> bool:
        # Any intent raised for this booking may settle it, not only the latest.
        if charge.booking_id:
            return charge.booking_id == booking.id
        return charge.intent_id == booking.payment_intent_id

    def _require_gateway(self) -> PaymentGateway:
        if self.gateway is None:
            raise RuntimeError("PaymentService was built without a payment gateway")
        return self.gateway
