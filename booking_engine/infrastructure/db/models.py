# booking_engine/infrastructure/db/models.py

from sqlalchemy import (
    JSON,
    String,
    Integer,
    Date,
    DateTime,
    Enum,
    UniqueConstraint,
    CheckConstraint,
    ForeignKey,
    Index,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, composite
from datetime import date, datetime
from uuid import uuid4

from booking_engine.infrastructure.db.session import Base
from booking_engine.domain.state_machine import (
    BookingStatus,
    PaymentStatus,
    TicketApprovalStatus,
    TransportType,
)
from booking_engine.domain.value_objects import TicketSnapshot


class Ticket(Base):
    """
    Sellable inventory for one departure.
    quantity is the only authoritative count of remaining tickets.
    """

    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    image: Mapped[str | None] = mapped_column(String(512), nullable=True)
    from_location: Mapped[str] = mapped_column(String(128), nullable=False)
    to_location: Mapped[str] = mapped_column(String(128), nullable=False)
    transport_type: Mapped[TransportType] = mapped_column(
        Enum(TransportType, name="transport_type"),
        nullable=False,
    )
    unit_price: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    departure_date: Mapped[date] = mapped_column(Date, nullable=False)
    departure_time: Mapped[str] = mapped_column(String(5), nullable=False)
    perks: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    approval_status: Mapped[TicketApprovalStatus] = mapped_column(
        Enum(TicketApprovalStatus, name="ticket_approval_status"),
        nullable=False,
        default=TicketApprovalStatus.PENDING,
    )
    vendor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("unit_price >= 0", name="ck_ticket_price_nonnegative"),
        CheckConstraint("quantity >= 0", name="ck_ticket_quantity_nonnegative"),
        Index("ix_tickets_vendor_id", "vendor_id"),
    )


class Booking(Base):
    """
    Booking table reflecting domain state.
    Domain controls transitions.
    DB stores current state safely.
    """

    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    # Nulled when the live ticket is deleted; the snapshot keeps the terms.
    ticket_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("tickets.id", ondelete="SET NULL"),
        nullable=True,
    )
    buyer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    vendor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="booking_status"),
        nullable=False,
        default=BookingStatus.PENDING,
    )

    snapshot_title: Mapped[str] = mapped_column(String(128), nullable=False)
    snapshot_from_location: Mapped[str] = mapped_column(String(128), nullable=False)
    snapshot_to_location: Mapped[str] = mapped_column(String(128), nullable=False)
    snapshot_departure_date: Mapped[date] = mapped_column(Date, nullable=False)
    snapshot_departure_time: Mapped[str] = mapped_column(String(5), nullable=False)
    snapshot_transport_type: Mapped[str] = mapped_column(String(16), nullable=False)
    snapshot_unit_price: Mapped[int] = mapped_column(Integer, nullable=False)

    ticket_snapshot: Mapped[TicketSnapshot] = composite(
        TicketSnapshot,
        "snapshot_title",
        "snapshot_from_location",
        "snapshot_to_location",
        "snapshot_departure_date",
        "snapshot_departure_time",
        "snapshot_transport_type",
        "snapshot_unit_price",
    )

    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status"),
        nullable=False,
        default=PaymentStatus.UNPAID,
    )
    payment_intent_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "quantity > 0",
            name="ck_booking_quantity_positive",
        ),
        CheckConstraint(
            "total_price >= 0",
            name="ck_booking_total_price_nonnegative",
        ),
        Index("ix_bookings_buyer_status", "buyer_id", "status"),
        Index("ix_bookings_ticket_status", "ticket_id", "status"),
    )


class Transaction(Base):
    """Immutable record of one completed payment capture."""

    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    booking_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("bookings.id"),
        nullable=False,
    )
    ticket_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    buyer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    charge_id: Mapped[str] = mapped_column(String(128), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(16), nullable=False, default="razorpay")
    payment_status: Mapped[str] = mapped_column(String(16), nullable=False, default="completed")
    ticket_title: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("charge_id", name="uq_transaction_charge_id"),
        UniqueConstraint("booking_id", name="uq_transaction_booking_id"),
        CheckConstraint("amount >= 0", name="ck_transaction_amount_nonnegative"),
        Index("ix_transactions_buyer_id", "buyer_id"),
    )
