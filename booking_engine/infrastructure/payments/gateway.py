# booking_engine/infrastructure/payments/gateway.py

from dataclasses import dataclass
from enum import Enum
from typing import Protocol
import logging

import razorpay
import requests

from booking_engine import config
from booking_engine.domain.exceptions import (
    PaymentGatewayConfigError,
    PaymentGatewayError,
    PaymentGatewayTimeoutError,
)


logger = logging.getLogger(__name__)


class ChargeStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ChargeIntent:
    intent_id: str
    client_secret: str | None = None


@dataclass(frozen=True)
class Charge:
    """A charge as the processor reports it, with the booking it was raised for."""

    intent_id: str
    status: ChargeStatus
    booking_id: str | None = None


class PaymentGateway(Protocol):
    """External card-payment capability consumed by the capture flow."""

    def create_charge_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: dict[str, str],
    ) -> ChargeIntent:
        ...

    def retrieve_charge(self, intent_id: str) -> Charge:
        ...

    def retrieve_charge_status(self, intent_id: str) -> ChargeStatus:
        ...


# Razorpay order states; an order turns "paid" once a payment is captured.
_ORDER_STATUS_MAP = {
    "created": ChargeStatus.PENDING,
    "attempted": ChargeStatus.PENDING,
    "paid": ChargeStatus.SUCCEEDED,
}


class RazorpayGateway:
    """
    Razorpay orders act as charge intents.
    Calls are bounded by a caller-side timeout and never retried here.
    """

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        timeout: float = config.PAYMENT_GATEWAY_TIMEOUT,
        client: razorpay.Client | None = None,
    ):
        self.key_id = key_id
        self.timeout = timeout
        self.client = client or razorpay.Client(auth=(key_id, key_secret))

    def create_charge_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: dict[str, str],
    ) -> ChargeIntent:
        order = self._call(
            "order.create",
            self.client.order.create,
            {
                "amount": amount_minor,
                "currency": currency,
                "receipt": metadata.get("booking_id", ""),
                "notes": metadata,
            },
            timeout=self.timeout,
        )
        order_id = order.get("id")
        if not order_id:
            raise PaymentGatewayError("Payment gateway returned no order id")
        return ChargeIntent(intent_id=order_id, client_secret=None)

    def retrieve_charge(self, intent_id: str) -> Charge:
        order = self._call(
            "order.fetch",
            self.client.order.fetch,
            intent_id,
            timeout=self.timeout,
        )
        notes = order.get("notes") or {}
        return Charge(
            intent_id=intent_id,
            status=_ORDER_STATUS_MAP.get(order.get("status"), ChargeStatus.PENDING),
            booking_id=notes.get("booking_id") or order.get("receipt") or None,
        )

    def retrieve_charge_status(self, intent_id: str) -> ChargeStatus:
        return self.retrieve_charge(intent_id).status

    def _call(self, operation: str, func, *args, **kwargs) -> dict:
        try:
            return func(*args, **kwargs)
        except requests.exceptions.Timeout as exc:
            logger.warning(
                "Payment gateway timed out. operation=%s timeout=%.1fs",
                operation,
                self.timeout,
            )
            raise PaymentGatewayTimeoutError(
                "Payment gateway did not respond in time. Please retry."
            ) from exc
        except (
            razorpay.errors.BadRequestError,
            razorpay.errors.GatewayError,
            razorpay.errors.ServerError,
            requests.exceptions.RequestException,
        ) as exc:
            logger.exception("Payment gateway call failed. operation=%s", operation)
            raise PaymentGatewayError(f"Payment gateway error: {exc}") from exc


def build_razorpay_gateway() -> RazorpayGateway:
    key_id, key_secret = config.razorpay_credentials()
    if not key_id or not key_secret:
        raise PaymentGatewayConfigError(
            "Razorpay keys not configured. Set RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET."
        )
    return RazorpayGateway(key_id=key_id, key_secret=key_secret)
