# booking_engine/domain/state_machine.py

from enum import Enum
from typing import Dict, Optional, Set

from booking_engine.domain.exceptions import InvalidTransitionError


class BookingStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    PAID = "paid"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"


class TicketApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TransportType(str, Enum):
    BUS = "Bus"
    TRAIN = "Train"
    LAUNCH = "Launch"
    PLANE = "Plane"


class BookingAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    CANCEL = "cancel"
    CAPTURE = "capture"


class BookingStateMachine:
    """
    Central lifecycle controller for booking transitions.

    Transitions are keyed by the action that drives them. A target of
    None means the booking record is deleted (cancel while pending).
    Anything not listed here is illegal.
    """

    _ALLOWED_TRANSITIONS: Dict[
        BookingStatus, Dict[BookingAction, Optional[BookingStatus]]
    ] = {
        BookingStatus.PENDING: {
            BookingAction.ACCEPT: BookingStatus.ACCEPTED,
            BookingAction.REJECT: BookingStatus.REJECTED,
            BookingAction.CANCEL: None,
        },
        BookingStatus.ACCEPTED: {
            BookingAction.CAPTURE: BookingStatus.PAID,
        },
        BookingStatus.REJECTED: {},
        BookingStatus.PAID: {},
    }

    @classmethod
    def can_transition(
        cls,
        from_status: BookingStatus,
        action: BookingAction,
    ) -> bool:
        """
        Returns True if the action is allowed from the current state.
        """
        cls._ensure_valid_status(from_status)
        cls._ensure_valid_action(action)

        return action in cls._ALLOWED_TRANSITIONS.get(from_status, {})

    @classmethod
    def next_status(
        cls,
        from_status: BookingStatus,
        action: BookingAction,
    ) -> Optional[BookingStatus]:
        """
        Returns the status reached by applying the action.
        Raises InvalidTransitionError if the action is illegal.
        """
        if not cls.can_transition(from_status, action):
            raise InvalidTransitionError(
                from_state=from_status.value,
                action=action.value,
            )
        return cls._ALLOWED_TRANSITIONS[from_status][action]

    @classmethod
    def validate_transition(
        cls,
        from_status: BookingStatus,
        action: BookingAction,
    ) -> None:
        """
        Raises InvalidTransitionError if the action is illegal.
        """
        cls.next_status(from_status, action)

    @classmethod
    def get_allowed_actions(
        cls, status: BookingStatus
    ) -> Set[BookingAction]:
        cls._ensure_valid_status(status)
        return set(cls._ALLOWED_TRANSITIONS.get(status, {}))

    @staticmethod
    def _ensure_valid_status(status: BookingStatus) -> None:
        if not isinstance(status, BookingStatus):
            raise TypeError(
                f"Expected BookingStatus, got {type(status)}"
            )

    @staticmethod
    def _ensure_valid_action(action: BookingAction) -> None:
        if not isinstance(action, BookingAction):
            raise TypeError(
                f"Expected BookingAction, got {type(action)}"
            )


class TicketApprovalStateMachine:
    """
    Admin review of a vendor's ticket listing.
    Rejected listings are final.
    """

    _ALLOWED_TRANSITIONS: Dict[TicketApprovalStatus, Set[TicketApprovalStatus]] = {
        TicketApprovalStatus.PENDING: {
            TicketApprovalStatus.APPROVED,
            TicketApprovalStatus.REJECTED,
        },
        TicketApprovalStatus.APPROVED: {
            TicketApprovalStatus.REJECTED,
        },
        TicketApprovalStatus.REJECTED: set(),
    }

    @classmethod
    def can_transition(
        cls,
        from_status: TicketApprovalStatus,
        to_status: TicketApprovalStatus,
    ) -> bool:
        if not isinstance(from_status, TicketApprovalStatus) or not isinstance(
            to_status, TicketApprovalStatus
        ):
            raise TypeError("Expected TicketApprovalStatus values")
        return to_status in cls._ALLOWED_TRANSITIONS.get(from_status, set())

    @classmethod
    def validate_transition(
        cls,
        from_status: TicketApprovalStatus,
        to_status: TicketApprovalStatus,
    ) -> None:
        if not cls.can_transition(from_status, to_status):
            action = "approve" if to_status is TicketApprovalStatus.APPROVED else "reject"
            raise InvalidTransitionError(
                from_state=from_status.value,
                action=action,
                subject="ticket",
            )
