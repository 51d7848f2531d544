# tests/conftest.py
"""
Pytest configuration.

Settings are pinned through the environment BEFORE any finsage import so the
module-level ``settings`` object and engine never see a developer's .env.
Every test gets a fresh in-memory SQLite database.
"""

import os

os.environ["CI"] = "true"
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EMAIL_PROVIDER"] = "console"
os.environ["RAZORPAY_KEY_ID"] = ""
os.environ["RAZORPAY_KEY_SECRET"] = ""
os.environ["INTERNAL_API_TOKEN"] = "test-internal-token"
os.environ["NOTIFICATIONS_VIA_TASK_QUEUE"] = "false"

# Never let a test reach the real email provider
import unittest.mock

global_resend_mock = unittest.mock.patch("resend.Emails.send")
mocked_send = global_resend_mock.start()
mocked_send.return_value = {"id": "test-email-id"}

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional
from unittest.mock import Mock

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
import ulid

from finsage.auth import create_access_token
from finsage.core.enums import BookingStatus, ItemType, PaymentStatus, UserRole
from finsage.database import Base, get_db
from finsage.integrations.razorpay_client import FakeRazorpayClient
from finsage.main import app
import finsage.models  # noqa: F401
from finsage.models.booking import Booking, CoachingSession
from finsage.models.catalog import CatalogItem
from finsage.models.payment import Payment
from finsage.models.user import Profile
from finsage.principal import CallerContext
from finsage.services.notification_service import NotificationService


@pytest.fixture(scope="function")
def db():
    """A new database session on a private in-memory database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    session = TestSessionLocal()

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def client(db: Session):
    """Create a test client bound to the test database."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    # No context manager: the lifespan (broadcaster connect) does not run
    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


@pytest.fixture
def fake_gateway() -> FakeRazorpayClient:
    return FakeRazorpayClient()


@pytest.fixture
def mock_notification_service() -> Mock:
    service = Mock(spec=NotificationService)
    service.send_booking_confirmation.return_value = True
    service.notify_credit_request.return_value = True
    service.notify_inquiry.return_value = True
    return service


# ============================================================================
# Factories
# ============================================================================


@pytest.fixture
def make_profile(db: Session) -> Callable[..., Profile]:
    def _make(role: UserRole = UserRole.INDIVIDUAL, approved: bool = False, **kwargs) -> Profile:
        user_id = kwargs.pop("id", f"user-{ulid.ULID()}")
        profile = Profile(
            id=user_id,
            email=kwargs.pop("email", f"{user_id}@example.com"),
            full_name=kwargs.pop("full_name", None),
            role=role.value,
            is_approved=approved,
        )
        db.add(profile)
        db.commit()
        return profile

    return _make


@pytest.fixture
def make_item(db: Session) -> Callable[..., CatalogItem]:
    def _make(price: int = 2000, item_type: ItemType = ItemType.ONE_ON_ONE, **kwargs) -> CatalogItem:
        item = CatalogItem(
            title=kwargs.pop("title", f"Money Basics {ulid.ULID()}"),
            item_type=item_type.value,
            price=price,
            duration=kwargs.pop("duration", "60 min"),
            is_active=kwargs.pop("is_active", True),
        )
        db.add(item)
        db.commit()
        return item

    return _make


@pytest.fixture
def make_paid_booking(db: Session) -> Callable[..., tuple[Booking, Payment]]:
    """A booked item with a verified (captured) payment, as verify_payment leaves it."""

    def _make(
        user_id: str,
        amount: int = 2000,
        booked_at: Optional[datetime] = None,
        status: BookingStatus = BookingStatus.BOOKED,
        payment_status: PaymentStatus = PaymentStatus.PENDING,
        item: Optional[CatalogItem] = None,
    ) -> tuple[Booking, Payment]:
        created = booked_at or datetime.now(timezone.utc)
        booking = Booking(
            user_id=user_id,
            item_id=item.id if item else None,
            item_type=item.item_type if item else ItemType.ONE_ON_ONE.value,
            status=status.value,
            amount=amount,
            created_at=created,
        )
        db.add(booking)
        db.flush()
        payment = Payment(
            user_id=user_id,
            booking_id=booking.id,
            amount=amount,
            status=payment_status.value,
            transaction_id=f"order_{ulid.ULID()}",
            gateway_payment_id=f"pay_{ulid.ULID()}",
            created_at=created,
        )
        db.add(payment)
        db.commit()
        return booking, payment

    return _make


@pytest.fixture
def make_coaching_session(db: Session) -> Callable[..., CoachingSession]:
    def _make(
        session_type: str = "coaching",
        credits_required: int = 1,
        session_date: Optional[date] = None,
        session_time: time = time(10, 0),
        duration: Optional[str] = "60 min",
    ) -> CoachingSession:
        session = CoachingSession(
            title="Budgeting Deep Dive",
            session_type=session_type,
            session_date=session_date or (date.today() + timedelta(days=7)),
            session_time=session_time,
            duration=duration,
            credits_required=credits_required,
        )
        db.add(session)
        db.commit()
        return session

    return _make


# ============================================================================
# Callers and auth
# ============================================================================


@pytest.fixture
def client_user(make_profile) -> Profile:
    return make_profile(UserRole.CLIENT, id="client-1", email="client@example.com")


@pytest.fixture
def individual_user(make_profile) -> Profile:
    return make_profile(UserRole.INDIVIDUAL, id="individual-1", email="priya@example.com")


@pytest.fixture
def admin_user(make_profile) -> Profile:
    return make_profile(UserRole.ADMIN, approved=True, id="admin-1", email="admin@example.com")


def caller_for(profile: Profile) -> CallerContext:
    return CallerContext(user_id=profile.id, role=UserRole(profile.role), email=profile.email)


@pytest.fixture
def client_caller(client_user: Profile) -> CallerContext:
    return caller_for(client_user)


@pytest.fixture
def individual_caller(individual_user: Profile) -> CallerContext:
    return caller_for(individual_user)


@pytest.fixture
def admin_caller(admin_user: Profile) -> CallerContext:
    return caller_for(admin_user)


def auth_headers_for(profile: Profile) -> dict:
    token = create_access_token(profile.id, email=profile.email, role=profile.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers_client(client_user: Profile) -> dict:
    return auth_headers_for(client_user)


@pytest.fixture
def auth_headers_individual(individual_user: Profile) -> dict:
    return auth_headers_for(individual_user)


@pytest.fixture
def auth_headers_admin(admin_user: Profile) -> dict:
    return auth_headers_for(admin_user)


@pytest.fixture
def caller_of() -> Callable[[Profile], CallerContext]:
    return caller_for


@pytest.fixture
def auth_headers_of() -> Callable[[Profile], dict]:
    return auth_headers_for
