from datetime import date

from pydantic import BaseModel, Field, field_validator

from booking_engine.domain.departure import parse_time_of_day
from booking_engine.domain.state_machine import TransportType


def _validate_departure_time(value: str | None) -> str | None:
    if value is None:
        return value
    parsed = parse_time_of_day(value)
    return parsed.strftime("%H:%M")


class TicketCreate(BaseModel):
    title: str = Field(min_length=1, max_length=128)
    image: str | None = None
    from_location: str = Field(min_length=1, max_length=128)
    to_location: str = Field(min_length=1, max_length=128)
    transport_type: TransportType
    unit_price: int = Field(ge=0)
    quantity: int = Field(ge=0)
    departure_date: date
    departure_time: str
    perks: list[str] = Field(default_factory=list)

    @field_validator("departure_time")
    @classmethod
    def check_departure_time(cls, value: str | None) -> str | None:
        return _validate_departure_time(value)


class TicketUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=128)
    image: str | None = None
    from_location: str | None = Field(default=None, min_length=1, max_length=128)
    to_location: str | None = Field(default=None, min_length=1, max_length=128)
    transport_type: TransportType | None = None
    unit_price: int | None = Field(default=None, ge=0)
    quantity: int | None = Field(default=None, ge=0)
    departure_date: date | None = None
    departure_time: str | None = None
    perks: list[str] | None = None

    @field_validator("departure_time")
    @classmethod
    def check_departure_time(cls, value: str | None) -> str | None:
        return _validate_departure_time(value)


class TicketResponse(BaseModel):
    id: str
    title: str
    image: str | None
    from_location: str
    to_location: str
    transport_type: str
    unit_price: int
    quantity: int
    departure_date: str
    departure_time: str
    perks: list[str]
    approval_status: str
    vendor_id: str
    is_expired: bool


class TicketSnapshotResponse(BaseModel):
    title: str
    from_location: str
    to_location: str
    departure_date: str
    departure_time: str
    transport_type: str
    unit_price: int


class BookingRequest(BaseModel):
    ticket_id: str
    # Lower bound enforced by the booking engine (400, not 422).
    quantity: int


class BookingResponse(BaseModel):
    booking_id: str
    ticket_id: str | None
    buyer_id: str
    vendor_id: str
    quantity: int
    total_price: int
    status: str
    payment_status: str
    payment_intent_id: str | None = None
    paid_at: str | None = None
    created_at: str
    can_pay: bool
    ticket_snapshot: TicketSnapshotResponse


class PaymentIntentRequest(BaseModel):
    booking_id: str


class PaymentIntentResponse(BaseModel):
    booking_id: str
    payment_intent_id: str
    client_secret: str | None = None
    amount: int
    currency: str
    key_id: str | None = None


class ConfirmPaymentRequest(BaseModel):
    booking_id: str
    payment_intent_id: str


class TransactionResponse(BaseModel):
    id: str
    booking_id: str
    ticket_id: str | None
    buyer_id: str
    charge_id: str
    amount: int
    currency: str
    payment_method: str
    payment_status: str
    ticket_title: str
    created_at: str


class ConfirmPaymentResponse(BaseModel):
    message: str
    booking: BookingResponse
    transaction: TransactionResponse


class PaymentConfigResponse(BaseModel):
    key_id: str | None
    currency: str


class MessageResponse(BaseModel):
    message: str
