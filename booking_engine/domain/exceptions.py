

class BookingEngineError(Exception):
    """
    Base exception for all domain-level errors
    inside the booking engine.
    """


class NotFoundError(BookingEngineError):
    """Raised when a referenced ticket, booking or transaction is absent."""

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found")


class ForbiddenError(BookingEngineError):
    """Raised when the caller does not own the resource it acts on."""


class InvalidTransitionError(BookingEngineError):
    """
    Raised when an illegal state transition is attempted.
    Carries the current status so callers can diagnose.
    """

    def __init__(self, from_state: str, action: str, subject: str = "booking"):
        self.from_state = from_state
        self.action = action
        self.subject = subject

        message = (
            f"Cannot {action} {subject} with status: {from_state}"
        )
        super().__init__(message)


class TicketNotApprovedError(BookingEngineError):
    """Raised when booking a ticket that is not approved."""


class ExpiredError(BookingEngineError):
    """Raised when the departure instant has already passed."""


class InsufficientInventoryError(BookingEngineError):
    """Raised when not enough tickets are available."""


class InvalidQuantityError(BookingEngineError):
    """Raised when a booking quantity is below one."""


class AlreadyPaidError(BookingEngineError):
    """Raised when a booking has already been paid for."""


class PaymentNotCompletedError(BookingEngineError):
    """Raised when the external charge has not succeeded."""


class PaymentGatewayError(BookingEngineError):
    """Raised when the external payment capability fails."""


class PaymentGatewayTimeoutError(PaymentGatewayError):
    """Raised when the external payment capability does not answer in time."""


class PaymentGatewayConfigError(PaymentGatewayError):
    """Raised when gateway credentials are missing."""


class UnconfirmedPaymentError(BookingEngineError):
    """Raised when a booking already has a succeeded charge waiting for confirmation."""

    def __init__(self, intent_id: str):
        self.intent_id = intent_id
        super().__init__(
            f"Payment {intent_id} already succeeded for this booking. Confirm it instead."
        )
