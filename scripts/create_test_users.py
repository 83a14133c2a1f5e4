"""
Create demo accounts for local testing: an admin, an approved business owner with two services,
and a customer with one confirmed booking for tomorrow.

Run from project root:
  python scripts/create_test_users.py

Credentials are printed at the end. Safe to run more than once.
"""
import os
import sys
from datetime import datetime, time, timedelta, timezone

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.database import Base, SessionLocal, engine
from app.models.booking import Booking, BookingStatus, PaymentStatus
from app.models.business import BusinessProfile, BusinessVerificationStatus, Service
from app.models.financial import Transaction, TransactionStatus, TransactionType
from app.models.provider import Provider, ProviderRole, ProviderVerificationStatus
from app.models.user import User, UserRole
from app.services.auth import get_password_hash

PASSWORD = "Password123!"

ADMIN_EMAIL = "admin@roam.demo"
OWNER_EMAIL = "owner@roam.demo"
CUSTOMER_EMAIL = "customer@roam.demo"
BUSINESS_NAME = "Demo Day Spa"
PLATFORM_FEE_RATE = 0.10


def _user(db, email, role, first_name, last_name):
    user = db.query(User).filter(User.email == email).first()
    if user:
        print(f"{role.value.title()} already exists: {email}")
        return user
    user = User(
        email=email,
        hashed_password=get_password_hash(PASSWORD),
        role=role,
        first_name=first_name,
        last_name=last_name,
        phone="5555550100",
    )
    db.add(user)
    db.flush()
    print(f"Created {role.value}: {email}")
    return user


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        _user(db, ADMIN_EMAIL, UserRole.admin, "Demo", "Admin")
        owner = _user(db, OWNER_EMAIL, UserRole.owner, "Demo", "Owner")
        customer = _user(db, CUSTOMER_EMAIL, UserRole.customer, "Demo", "Customer")

        business = db.query(BusinessProfile).filter(BusinessProfile.owner_user_id == owner.id).first()
        if business is None:
            business = BusinessProfile(
                owner_user_id=owner.id,
                business_name=BUSINESS_NAME,
                contact_email=OWNER_EMAIL,
                verification_status=BusinessVerificationStatus.approved,
                approved_at=datetime.now(timezone.utc),
            )
            db.add(business)
            db.flush()
            db.add(
                Provider(
                    user_id=owner.id,
                    business_id=business.id,
                    first_name=owner.first_name,
                    last_name=owner.last_name,
                    email=OWNER_EMAIL,
                    provider_role=ProviderRole.owner,
                    verification_status=ProviderVerificationStatus.approved,
                    is_active=True,
                )
            )
            massage = Service(business_id=business.id, name="Deep Tissue Massage", price=120, duration_minutes=60)
            db.add_all([massage, Service(business_id=business.id, name="Express Facial", price=75, duration_minutes=30)])
            db.flush()

            booking = Booking(
                booking_reference="BKDEMO001",
                customer_user_id=customer.id,
                business_id=business.id,
                service_id=massage.id,
                booking_date=datetime.now(timezone.utc).date() + timedelta(days=1),
                start_time=time(10, 0),
                total_amount=massage.price,
                payment_status=PaymentStatus.paid,
                booking_status=BookingStatus.confirmed,
            )
            db.add(booking)
            db.flush()
            fee = round(massage.price * PLATFORM_FEE_RATE, 2)
            db.add(
                Transaction(
                    booking_id=booking.id,
                    business_id=business.id,
                    transaction_type=TransactionType.booking_payment,
                    status=TransactionStatus.completed,
                    amount=massage.price,
                    platform_fee_amount=fee,
                    net_amount=massage.price - fee,
                    description="Deep Tissue Massage",
                )
            )
            print(f"Created business: {BUSINESS_NAME} (approved) with 2 services and 1 booking")
        else:
            print(f"Business already exists: {business.business_name}")

        db.commit()

        print("\n--- Demo accounts (password for all: %s) ---" % PASSWORD)
        print(f"Admin:    {ADMIN_EMAIL}  -> admin console")
        print(f"Owner:    {OWNER_EMAIL}  -> provider dashboard")
        print(f"Customer: {CUSTOMER_EMAIL}  -> customer app")
        print("\nDone.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
