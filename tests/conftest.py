"""
Pytest configuration and fixtures
Every test gets its own in-memory SQLite database and fake gateways
"""
import hashlib
import hmac
import json
import os
from decimal import Decimal
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing
os.environ["ENV"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"

from fyw_pay.app import create_app
from fyw_pay.config import Config
from fyw_pay.db import Package, build_engine, build_session_factory, init_db
from fyw_pay.db.base import utcnow
from fyw_pay.exceptions import InviteGenerationError, PaymentGatewayError
from fyw_pay.services.invite_service import InviteArtifact
from fyw_pay.services.notification_service import PaymentNotifier
from fyw_pay.services.payment_gateway import (
    GATEWAY_PENDING,
    GATEWAY_SUCCESS,
    FlutterwaveGateway,
    GatewayCheckout,
    GatewayTransaction,
    PaystackGateway,
)
from fyw_pay.services.reconciliation_service import PaymentReconciliationService
from fyw_pay.services.student_service import StudentService

TEST_JWT_SECRET = "test-jwt-secret-for-unit-tests-only-000000"
ADMIN_EMAIL = "admin@fywpay.com"
ADMIN_PASSWORD = "correct-horse-battery"
PAYSTACK_SECRET = "sk_test_paystack_secret"
FLUTTERWAVE_SECRET = "FLWSECK_TEST-secret"
FLUTTERWAVE_HASH = "flw-webhook-hash"

MATRIC = "ENG/2019/001"


# ============================================================================
# Fakes
# ============================================================================

class FakeGatewayMixin:
    """
    Replaces the HTTP calls of a real gateway with in-memory state

    Webhook parsing and signature checks stay real.
    """

    def _setup_fake(self):
        self.initialized: List[Dict] = []
        self.verify_calls: List[str] = []
        self.results: Dict[str, GatewayTransaction] = {}
        self.fail_initialize = False

    def initialize_transaction(self, reference, amount, email, metadata, callback_url) -> GatewayCheckout:
        if self.fail_initialize:
            raise PaymentGatewayError("Failed to initialize payment")
        self.initialized.append({
            "reference": reference,
            "amount": amount,
            "email": email,
            "metadata": metadata,
            "callback_url": callback_url,
        })
        return GatewayCheckout(
            redirect_url=f"https://checkout.test/{reference}",
            reference=reference,
            access_code=f"AC-{reference}",
        )

    def set_result(self, reference: str, status: str, amount=None):
        self.results[reference] = GatewayTransaction(
            reference=reference,
            status=status,
            amount=Decimal(str(amount)) if amount is not None else None,
            paid_at=utcnow() if status == GATEWAY_SUCCESS else None,
            raw={"reference": reference, "status": status},
            gateway_status=status,
        )

    def verify_transaction(self, reference: str) -> GatewayTransaction:
        self.verify_calls.append(reference)
        if reference in self.results:
            return self.results[reference]
        return GatewayTransaction(
            reference=reference,
            status=GATEWAY_PENDING,
            amount=None,
            paid_at=None,
            gateway_status="ongoing",
        )


class FakePaystackGateway(FakeGatewayMixin, PaystackGateway):
    def __init__(self):
        super().__init__(PAYSTACK_SECRET)
        self._setup_fake()


class FakeFlutterwaveGateway(FakeGatewayMixin, FlutterwaveGateway):
    def __init__(self):
        super().__init__(FLUTTERWAVE_SECRET, FLUTTERWAVE_HASH)
        self._setup_fake()


class RecordingInviteGenerator:
    """Invite generator that remembers who it rendered for"""

    def __init__(self):
        self.generated: List[str] = []
        self.fail = False

    def generate(self, student, package) -> InviteArtifact:
        if self.fail:
            raise InviteGenerationError("Failed to generate invite")
        self.generated.append(student.matric_number)
        key = student.matric_number.replace("/", "-")
        return InviteArtifact(
            image_url=f"http://testserver/storage/invites/invite-{key}.svg",
            generated_at=utcnow().replace(microsecond=0),
        )


def paystack_event(
    reference: Optional[str],
    amount,
    event: str = "charge.success",
    status: str = "success",
    transaction_id: int = 1001,
) -> dict:
    """A Paystack webhook body; amount in naira"""
    data = {
        "id": transaction_id,
        "status": status,
        "amount": int(Decimal(str(amount)) * 100),
        "paid_at": "2026-10-18T09:30:00.000Z",
        "currency": "NGN",
    }
    if reference is not None:
        data["reference"] = reference
    return {"event": event, "data": data}


def paystack_signature(body: bytes, secret: str = PAYSTACK_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()


def signed_paystack_request(payload: dict):
    """(body, headers) ready for client.post"""
    body = json.dumps(payload).encode()
    return body, {"x-paystack-signature": paystack_signature(body), "Content-Type": "application/json"}


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        ENV="test",
        DATABASE_URL="sqlite://",
        JWT_SECRET=TEST_JWT_SECRET,
        ADMIN_EMAIL=ADMIN_EMAIL,
        ADMIN_PASSWORD=ADMIN_PASSWORD,
        ADMIN_PASSWORD_HASH=None,
        PAYMENT_PROVIDER="paystack",
        PAYSTACK_SECRET_KEY=PAYSTACK_SECRET,
        FLUTTERWAVE_SECRET_KEY=FLUTTERWAVE_SECRET,
        FLUTTERWAVE_SECRET_HASH=FLUTTERWAVE_HASH,
        FRONTEND_URL="http://localhost:3000",
        PUBLIC_BASE_URL="http://testserver",
        STORAGE_PROVIDER="local",
        STORAGE_PATH=str(tmp_path / "storage"),
        SMTP_HOST=None,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def engine(config):
    engine = build_engine(config)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def packages(db) -> Dict[str, Package]:
    """A and B at 25,000, C at 40,000, F at 60,000"""
    rows = [
        Package(code="A", name="Two Day Alpha", package_type="TWO_DAY", price=Decimal("25000"),
                benefits=["Two event days", "Entry invite"]),
        Package(code="B", name="Two Day Beta", package_type="TWO_DAY", price=Decimal("25000"),
                benefits=["Two event days"]),
        Package(code="C", name="Corporate & Owambe", package_type="CORPORATE_OWAMBE", price=Decimal("40000"),
                benefits=["Corporate Day", "Owambe"]),
        Package(code="F", name="Full Experience", package_type="FULL", price=Decimal("60000"),
                benefits=["All five days"]),
    ]
    db.add_all(rows)
    db.commit()
    return {row.code: row for row in rows}


@pytest.fixture
def student(db, packages):
    """A registered student on package A with no payments"""
    student, _ = StudentService(db).identify_student(
        matric_number=MATRIC,
        full_name="Ada Obi",
        package_code="A",
        email="ada@example.com",
        phone="08030000000",
        selected_days=["monday", "friday"],
    )
    return student


@pytest.fixture
def paystack():
    return FakePaystackGateway()


@pytest.fixture
def flutterwave():
    return FakeFlutterwaveGateway()


@pytest.fixture
def gateways(paystack, flutterwave):
    return {"paystack": paystack, "flutterwave": flutterwave}


@pytest.fixture
def invite_generator():
    return RecordingInviteGenerator()


@pytest.fixture
def notifier():
    notifier = MagicMock(spec=PaymentNotifier)
    notifier.send_partial_payment_notice.return_value = True
    notifier.send_completion_notice.return_value = True
    notifier.resend_invite.return_value = True
    return notifier


@pytest.fixture
def reconciliation(db, gateways, invite_generator, notifier, config):
    return PaymentReconciliationService(db, gateways, invite_generator, notifier, config)


@pytest.fixture
def app(config, gateways, invite_generator, notifier, session_factory):
    return create_app(
        config,
        gateways=gateways,
        invite_generator=invite_generator,
        notifier=notifier,
        session_factory=session_factory,
    )


@pytest.fixture
def client(app):
    """Create test client"""
    return TestClient(app)


@pytest.fixture
def auth_headers(client):
    """Admin bearer token from the login endpoint"""
    response = client.post("/api/admin/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['data']['token']}"}
