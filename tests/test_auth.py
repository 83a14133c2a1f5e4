from app.models.audit_log import AuditLog
from app.models.business import BusinessProfile, BusinessVerificationStatus
from app.models.provider import Provider, ProviderRole
from app.models.user import User
from app.services.auth import create_access_token
from tests.conftest import PASSWORD, auth_headers


def _signup(**overrides):
    body = {
        "first_name": "Olga",
        "last_name": "Owner",
        "email": "Olga@Example.com",
        "phone": "+1 (555) 123-4567",
        "password": "Secret123!",
        "confirm_password": "Secret123!",
    }
    body.update(overrides)
    return body


def test_customer_registration_and_login(client, db):
    res = client.post("/auth/register", json=_signup())
    assert res.status_code == 200
    assert res.json()["user"]["role"] == "customer"
    assert res.json()["user"]["business_id"] is None
    assert db.query(User).filter(User.email == "olga@example.com").count() == 1

    res = client.post("/auth/login", json={"email": "OLGA@example.com", "password": "Secret123!"})
    assert res.status_code == 200
    token = res.json()["access_token"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["email"] == "olga@example.com"


def test_owner_registration_creates_pending_business(client, db):
    res = client.post("/auth/register", json=_signup(role="owner", business_name="Olga's Spa"))
    assert res.status_code == 200
    user_id = res.json()["user"]["id"]
    business = db.query(BusinessProfile).filter(BusinessProfile.owner_user_id == user_id).one()
    assert business.verification_status == BusinessVerificationStatus.pending
    staff = db.query(Provider).filter(Provider.user_id == user_id).one()
    assert staff.provider_role == ProviderRole.owner
    assert res.json()["user"]["business_id"] == business.id
    assert db.query(AuditLog).filter(AuditLog.entity_type == "business").count() == 1


def test_registration_validation(client, make_user):
    assert client.post("/auth/register", json=_signup(role="owner")).status_code == 422
    assert client.post("/auth/register", json=_signup(role="admin")).status_code == 422
    assert client.post("/auth/register", json=_signup(confirm_password="nope")).status_code == 422
    assert client.post("/auth/register", json=_signup(phone="12345")).status_code == 422

    make_user("olga@example.com")
    res = client.post("/auth/register", json=_signup())
    assert res.status_code == 400


def test_failed_login_is_audited(client, db, customer):
    res = client.post("/auth/login", json={"email": customer.email, "password": "wrong-password"})
    assert res.status_code == 401
    assert res.json()["detail"] == "Invalid email or password"
    log = db.query(AuditLog).filter(AuditLog.category == "failed_attempt").one()
    assert log.actor_email == customer.email


def test_deactivated_accounts_are_refused(client, db, customer):
    customer.is_active = False
    db.commit()
    res = client.post("/auth/login", json={"email": customer.email, "password": PASSWORD})
    assert res.status_code == 403
    assert client.get("/auth/me", headers=auth_headers(customer)).status_code == 403


def test_bad_tokens(client, customer):
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"}).status_code == 401
    orphan = create_access_token(9999, "ghost@example.com", customer.role)
    res = client.get("/auth/me", headers={"Authorization": f"Bearer {orphan}"})
    assert res.status_code == 401
    assert res.json()["detail"] == "User not found"


def test_identity_verification_requires_stripe(client, owner):
    res = client.post("/auth/identity/verification-session", headers=auth_headers(owner))
    assert res.status_code == 503
