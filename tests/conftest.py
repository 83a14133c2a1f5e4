"""Test setup: in-memory SQLite shared across threads, vendors unconfigured unless a test patches them."""
import itertools
import os

# Settings are cached on first import; pin them before any app module loads.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["BOOKING_REMINDER_CRON_ENABLED"] = "false"
for _key in (
    "RESEND_API_KEY",
    "SENDGRID_API_KEY",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_FROM_PHONE_NUMBER",
    "STRIPE_SECRET_KEY",
    "BOOTSTRAP_ADMIN_EMAIL",
):
    os.environ[_key] = ""

from datetime import datetime, time, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.booking import Booking, BookingStatus  # noqa: E402
from app.models.business import BusinessProfile, BusinessVerificationStatus, Service  # noqa: E402
from app.models.provider import Provider, ProviderRole, ProviderVerificationStatus  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402
from app.services import notifications  # noqa: E402
from app.services.auth import create_access_token, get_password_hash  # noqa: E402

PASSWORD = "Password123!"

engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

_refs = itertools.count(1000)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email, user.role)}"}


def utc_today():
    return datetime.now(timezone.utc).date()


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def outbox(monkeypatch):
    """Capture email and SMS instead of calling Resend/Twilio."""
    sent = {"email": [], "sms": []}

    def fake_email(to_email, subject, html_content, text_content=None, from_address=None):
        sent["email"].append({"to": to_email, "subject": subject, "html": html_content, "text": text_content})
        return bool(to_email)

    def fake_sms(to_phone, body):
        sent["sms"].append({"to": to_phone, "body": body})
        return True

    monkeypatch.setattr(notifications, "send_email", fake_email)
    monkeypatch.setattr(notifications, "send_sms", fake_sms)
    return sent


@pytest.fixture
def make_user(db):
    def _make(email, role=UserRole.customer, password=PASSWORD, **fields):
        user = User(email=email, hashed_password=get_password_hash(password), role=role, **fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin@roam.example.com", UserRole.admin, first_name="Ada", last_name="Admin")


@pytest.fixture
def customer(make_user):
    return make_user("casey@example.com", UserRole.customer, first_name="Casey", last_name="Customer", phone="5551234567")


@pytest.fixture
def make_business(db, make_user):
    def _make(name="Glow Spa", owner_email="owner@example.com", status=BusinessVerificationStatus.approved):
        owner = make_user(owner_email, UserRole.owner, first_name="Olivia", last_name="Owner")
        business = BusinessProfile(
            owner_user_id=owner.id,
            business_name=name,
            contact_email=owner_email,
            verification_status=status,
        )
        db.add(business)
        db.flush()
        db.add(
            Provider(
                user_id=owner.id,
                business_id=business.id,
                first_name="Olivia",
                last_name="Owner",
                email=owner_email,
                provider_role=ProviderRole.owner,
                verification_status=ProviderVerificationStatus.approved,
                is_active=True,
            )
        )
        db.add_all(
            [
                Service(business_id=business.id, name="Massage", price=120, duration_minutes=60, is_active=True),
                Service(business_id=business.id, name="Facial", price=90, duration_minutes=45, is_active=True),
                Service(business_id=business.id, name="Retired Wrap", price=10, duration_minutes=30, is_active=False),
            ]
        )
        db.commit()
        db.refresh(business)
        return business

    return _make


@pytest.fixture
def business(make_business):
    return make_business()


@pytest.fixture
def owner(db, business):
    return db.query(User).filter(User.id == business.owner_user_id).first()


def services_of(db, business, active_only=True):
    q = db.query(Service).filter(Service.business_id == business.id)
    if active_only:
        q = q.filter(Service.is_active.is_(True))
    return q.order_by(Service.id).all()


@pytest.fixture
def make_staff(db, make_user):
    def _make(business, email, role=ProviderRole.provider, **user_fields):
        user_role = {ProviderRole.owner: UserRole.owner, ProviderRole.dispatcher: UserRole.dispatcher}.get(role, UserRole.provider)
        user = make_user(email, user_role, first_name="Pat", last_name="Provider", **user_fields)
        provider = Provider(
            user_id=user.id,
            business_id=business.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=email,
            phone=user.phone,
            provider_role=role,
            verification_status=ProviderVerificationStatus.verified,
            is_active=True,
        )
        db.add(provider)
        db.commit()
        db.refresh(provider)
        return provider

    return _make


@pytest.fixture
def make_booking(db):
    def _make(business, customer=None, provider=None, service=None, **fields):
        service = service or services_of(db, business)[0]
        values = dict(
            booking_reference=f"BK{next(_refs)}",
            business_id=business.id,
            service_id=service.id,
            customer_user_id=customer.id if customer else None,
            provider_id=provider.id if provider else None,
            booking_date=utc_today() + timedelta(days=3),
            start_time=time(10, 0),
            total_amount=service.price,
            booking_status=BookingStatus.confirmed,
        )
        values.update(fields)
        booking = Booking(**values)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make
