import hashlib
import hmac
import os
import tempfile
from datetime import timedelta

# Settings are read at import time
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="booking-logs-"))
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "s3cret")
os.environ.setdefault("RAZORPAY_WEBHOOK_SECRET", "whsec_test")
os.environ["SMTP_HOST"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.dependencies import get_db, get_notification_dispatcher, get_payment_gateway
from app.core.jwt import create_access_token
from app.db.base import Base
from app.main import app
from app.models.activity import Activity
from app.models.booking import Booking
from app.models.enums import BookingStatus, ContactKind, PaymentRecordStatus, PaymentStatus
from app.models.payment import Payment
from app.models.place import Place
from app.models.user import User
from app.utils.razorpay_client import RazorpayGateway
from app.utils.time_utils import utcnow

KEY_SECRET = "s3cret"
WEBHOOK_SECRET = "whsec_test"


def sign(message: str, secret: str = KEY_SECRET) -> str:
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


def sign_payment(order_id: str, payment_id: str) -> str:
    return sign(f"{order_id}|{payment_id}")


def sign_body(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


# ---------------- COLLABORATOR DOUBLES ----------------
class FakeGateway(RazorpayGateway):
    """Real signature checks, canned order creation."""

    def __init__(self, webhook_secret: str = WEBHOOK_SECRET):
        super().__init__("rzp_test_key", KEY_SECRET, webhook_secret=webhook_secret)
        self.orders = []
        self.error = None

    def create_order(self, amount_minor: int, currency: str, receipt: str) -> dict:
        if self.error is not None:
            raise self.error
        order = {
            "id": f"order_{len(self.orders) + 1}",
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
        }
        self.orders.append(order)
        return order


class RecordingNotifier:

    def __init__(self, result: bool = True):
        self.result = result
        self.sent = []

    def dispatch(self, kind, booking, user=None, item=None, background_tasks=None):
        self.sent.append((kind, booking.id, user.email if user else None))
        return self.result

    def kinds(self):
        return [kind for kind, _, _ in self.sent]


# ---------------- DATABASE ----------------
@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


# ---------------- FACTORIES ----------------
@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role="traveller", name=None, email=None, phone="9999999999"):
        counter["n"] += 1
        user = User(
            name=name or f"User {counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            phone=phone,
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def traveller(make_user):
    return make_user(name="Asha Traveller", email="asha@example.com")


@pytest.fixture
def other_user(make_user):
    return make_user(name="Ravi Other", email="ravi@example.com")


@pytest.fixture
def admin(make_user):
    return make_user(role="admin", name="Admin", email="admin@example.com")


@pytest.fixture
def activity(db):
    item = Activity(title="Sunrise Trek", city="Manali", location="Old Manali", price=1000)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@pytest.fixture
def unpriced_place(db):
    item = Place(name="Hidden Lake", city="Manali", location="Solang")
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@pytest.fixture
def make_booking(db):
    def _make(user, **overrides):
        values = {
            "user_id": user.id,
            "date": utcnow() + timedelta(days=3),
            "time": "09:00",
            "participants": 2,
            "people_count": 2,
            "contact_kind": ContactKind.SNAPSHOT.value,
            "contact": {"customer": {"name": user.name, "email": user.email, "phone": ""}},
            "total_amount": 2460,
            "pricing": {"basePrice": 1000, "subtotal": 2000, "tax": 360, "serviceFee": 100,
                        "promoOff": 0, "total": 2460},
            "status": BookingStatus.CONFIRMED.value,
            "payment_status": PaymentStatus.PENDING.value,
        }
        values.update(overrides)
        booking = Booking(**values)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make


@pytest.fixture
def make_payment(db):
    def _make(booking, order_id="order_1", status=PaymentRecordStatus.CREATED.value, **meta):
        payment = Payment(
            amount=booking.total_amount,
            currency="INR",
            status=status,
            provider_ref=order_id,
            meta={"bookingId": booking.id, "razorpayOrderId": order_id, **meta},
        )
        db.add(payment)
        db.commit()
        db.refresh(payment)
        return payment

    return _make


# ---------------- HTTP ----------------
def auth_header(user) -> dict:
    token = create_access_token({"sub": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(db, gateway, notifier):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notification_dispatcher] = lambda: notifier

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
