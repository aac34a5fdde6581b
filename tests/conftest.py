import os
import tempfile
from datetime import date, timedelta

# Must be set before booking_engine builds its engine.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="booking-engine-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}"
os.environ["DEPARTURE_TIMEZONE"] = "UTC"
os.environ["PAYMENT_CURRENCY"] = "INR"

import pytest
from fastapi.testclient import TestClient

from booking_engine.api.deps import get_payment_gateway
from booking_engine.domain.state_machine import TicketApprovalStatus, TransportType
from booking_engine.infrastructure.db.models import Ticket
from booking_engine.infrastructure.db.session import Base, SessionLocal, engine
from booking_engine.infrastructure.payments.gateway import Charge, ChargeIntent, ChargeStatus
from booking_engine.main import app


VENDOR_ID = "vendor-1"


class FakeGateway:
    """In-memory stand-in for the card processor."""

    key_id = "rzp_test_fake"

    def __init__(self):
        self.statuses: dict[str, ChargeStatus] = {}
        self.created: list[dict] = []
        self.error: Exception | None = None

    def create_charge_intent(self, amount_minor, currency, metadata):
        if self.error:
            raise self.error
        intent_id = f"order_test_{len(self.created) + 1}"
        self.created.append(
            {
                "intent_id": intent_id,
                "amount_minor": amount_minor,
                "currency": currency,
                "metadata": dict(metadata),
            }
        )
        self.statuses[intent_id] = ChargeStatus.PENDING
        return ChargeIntent(intent_id=intent_id)

    def retrieve_charge(self, intent_id):
        if self.error:
            raise self.error
        booking_ids = {c["intent_id"]: c["metadata"].get("booking_id") for c in self.created}
        return Charge(
            intent_id=intent_id,
            status=self.statuses.get(intent_id, ChargeStatus.FAILED),
            booking_id=booking_ids.get(intent_id),
        )

    def retrieve_charge_status(self, intent_id):
        return self.retrieve_charge(intent_id).status

    def succeed(self, intent_id):
        self.statuses[intent_id] = ChargeStatus.SUCCEEDED


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(gateway):
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def headers():
    def build(role: str, user_id: str) -> dict[str, str]:
        return {"X-User-Id": user_id, "X-User-Role": role}
    return build


@pytest.fixture
def make_ticket(db):
    """Persists an approved ticket departing in the future unless overridden."""

    def build(**overrides) -> Ticket:
        values = {
            "title": "Dhaka to Sylhet",
            "from_location": "Dhaka",
            "to_location": "Sylhet",
            "transport_type": TransportType.BUS,
            "unit_price": 100,
            "quantity": 3,
            "departure_date": date.today() + timedelta(days=5),
            "departure_time": "10:00",
            "perks": [],
            "approval_status": TicketApprovalStatus.APPROVED,
            "vendor_id": VENDOR_ID,
        }
        values.update(overrides)
        ticket = Ticket(**values)
        db.add(ticket)
        db.commit()
        return ticket

    return build
