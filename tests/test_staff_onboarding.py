from urllib.parse import parse_qs, urlparse

from app.models.audit_log import AuditLog
from app.models.provider import Provider, ProviderRole, ProviderVerificationStatus
from app.models.user import User, UserRole
from app.services.auth import create_staff_invitation_token, verify_password
from tests.conftest import PASSWORD, auth_headers, services_of


def _invite(client, owner, email="nina@example.com", role="provider"):
    return client.post("/staff/invite", json={"email": email, "role": role, "location_id": "loc-1"}, headers=auth_headers(owner))


def _token_from(outbox):
    url = outbox["email"][-1]["text"].rsplit(" ", 1)[-1]
    return parse_qs(urlparse(url).query)["token"][0]


def _wizard(token, service_ids=(), slots=None):
    return {
        "token": token,
        "account": {"password": "Newpass123!", "confirm_password": "Newpass123!"},
        "profile": {"first_name": "Nina", "last_name": "Nails", "phone": "(555) 222-3333", "bio": "Ten years of nail art."},
        "availability": {
            "slots": slots if slots is not None else [{"day_of_week": 0, "start_time": "09:00", "end_time": "12:00"}],
            "service_ids": list(service_ids),
        },
    }


def test_invite_creates_pending_record_and_emails_link(client, db, owner, business, outbox):
    res = _invite(client, owner)
    assert res.status_code == 201
    staff = res.json()
    assert staff["verification_status"] == "pending"
    assert staff["is_active"] is False
    assert staff["user_id"] is None
    assert outbox["email"][0]["to"] == "nina@example.com"
    assert "Glow Spa" in outbox["email"][0]["subject"]
    log = db.query(AuditLog).filter(AuditLog.category == "staff").one()
    assert log.meta["email_sent"] is True


def test_reinvite_refreshes_token_but_member_cannot_be_invited(client, db, owner, business, outbox, make_staff):
    _invite(client, owner)
    _invite(client, owner, role="dispatcher")
    records = db.query(Provider).filter(Provider.email == "nina@example.com").all()
    assert len(records) == 1
    assert records[0].provider_role == ProviderRole.dispatcher

    make_staff(business, "pat@example.com")
    res = _invite(client, owner, email="pat@example.com")
    assert res.status_code == 400
    assert res.json()["detail"] == "This email is already a member of your business"


def test_reinvite_supersedes_earlier_link(client, db, owner, business, outbox):
    _invite(client, owner)
    first = _token_from(outbox)
    _invite(client, owner, role="dispatcher")
    latest = _token_from(outbox)
    assert first != latest

    for path in ("/onboarding/staff/validate-invitation", "/onboarding/staff/complete"):
        body = _wizard(first) if path.endswith("complete") else {"token": first}
        res = client.post(path, json=body)
        assert res.status_code == 400
        assert res.json()["detail"] == "Invalid or expired invitation token"
    assert db.query(User).filter(User.email == "nina@example.com").first() is None

    res = client.post("/onboarding/staff/complete", json=_wizard(latest))
    assert res.status_code == 200


def test_providers_cannot_manage_staff(client, business, make_staff):
    provider = make_staff(business, "pat@example.com")
    res = client.post("/staff/invite", json={"email": "x@example.com"}, headers=auth_headers(provider.user))
    assert res.status_code == 403


def test_validate_invitation_lists_active_services(client, db, owner, business, outbox):
    _invite(client, owner)
    res = client.post("/onboarding/staff/validate-invitation", json={"token": _token_from(outbox)})
    assert res.status_code == 200
    details = res.json()
    assert details["email"] == "nina@example.com"
    assert details["business_name"] == "Glow Spa"
    assert details["location_id"] == "loc-1"
    assert [s["name"] for s in details["services"]] == ["Facial", "Massage"]


def test_validate_invitation_errors(client, db, business):
    res = client.post("/onboarding/staff/validate-invitation", json={"token": "garbage"})
    assert res.status_code == 400
    assert res.json()["detail"] == "Invalid or expired invitation token"

    orphan = create_staff_invitation_token(business.id, "ghost@example.com", "provider")
    res = client.post("/onboarding/staff/validate-invitation", json={"token": orphan})
    assert res.status_code == 404
    assert res.json()["detail"] == "Invitation not found or already used"

    assert client.post("/onboarding/staff/validate-invitation", json={"token": "  "}).status_code == 422


def test_complete_onboarding_creates_account(client, db, owner, business, outbox):
    _invite(client, owner)
    token = _token_from(outbox)
    massage, facial = services_of(db, business)

    res = client.post("/onboarding/staff/complete", json=_wizard(token, [massage.id, facial.id]))
    assert res.status_code == 200
    result = res.json()
    assert result["success"] is True
    assert result["role"] == "provider"

    user = db.query(User).filter(User.email == "nina@example.com").one()
    assert user.role == UserRole.provider
    assert verify_password("Newpass123!", user.hashed_password)
    provider = db.query(Provider).filter(Provider.id == result["staff_id"]).one()
    assert provider.user_id == user.id
    assert provider.verification_status == ProviderVerificationStatus.verified
    assert provider.is_active is True
    assert provider.invitation_token is None
    assert provider.onboarded_at is not None
    assert len(provider.availability) == 1
    assert sorted(s.service_id for s in provider.services) == sorted([massage.id, facial.id])
    assert outbox["email"][-1]["to"] == "nina@example.com"

    # the link is single-use
    res = client.post("/onboarding/staff/complete", json=_wizard(token))
    assert res.status_code == 404

    login = client.post("/auth/login", json={"email": "nina@example.com", "password": "Newpass123!"})
    assert login.status_code == 200
    assert login.json()["user"]["business_id"] == business.id


def test_complete_onboarding_rejects_foreign_or_inactive_services(client, db, owner, business, outbox):
    _invite(client, owner)
    retired = [s for s in services_of(db, business, active_only=False) if not s.is_active][0]
    res = client.post("/onboarding/staff/complete", json=_wizard(_token_from(outbox), [retired.id]))
    assert res.status_code == 400
    assert res.json()["detail"] == f"Services not offered by this business: [{retired.id}]"
    assert db.query(User).filter(User.email == "nina@example.com").first() is None


def test_wizard_step_validation(client, owner, business, outbox):
    _invite(client, owner)
    token = _token_from(outbox)

    body = _wizard(token)
    body["account"]["confirm_password"] = "Different1!"
    res = client.post("/onboarding/staff/complete", json=body)
    assert res.status_code == 422
    assert "Passwords do not match" in res.text

    overlapping = [
        {"day_of_week": 2, "start_time": "09:00", "end_time": "12:00"},
        {"day_of_week": 2, "start_time": "11:00", "end_time": "14:00"},
    ]
    res = client.post("/onboarding/staff/complete", json=_wizard(token, slots=overlapping))
    assert res.status_code == 422
    assert "Availability slots overlap on day 2" in res.text

    backwards = [{"day_of_week": 1, "start_time": "15:00", "end_time": "09:00"}]
    res = client.post("/onboarding/staff/complete", json=_wizard(token, slots=backwards))
    assert "start_time must be before end_time" in res.text

    body = _wizard(token)
    body["profile"]["phone"] = "555"
    assert client.post("/onboarding/staff/complete", json=body).status_code == 422


def test_complete_onboarding_refuses_existing_account(client, owner, business, outbox, make_user):
    _invite(client, owner)
    make_user("nina@example.com")
    res = client.post("/onboarding/staff/complete", json=_wizard(_token_from(outbox)))
    assert res.status_code == 400
    assert res.json()["detail"] == "An account with this email already exists"


def test_manual_staff_with_new_account_gets_credentials(client, db, owner, business, outbox):
    res = client.post(
        "/staff/manual",
        json={"first_name": "Dan", "last_name": "Desk", "email": "Dan@Example.com", "role": "dispatcher"},
        headers=auth_headers(owner),
    )
    assert res.status_code == 201
    body = res.json()
    assert body["account_created"] is True
    assert body["email_sent"] is True
    assert body["staff"]["verification_status"] == "approved"
    assert body["staff"]["is_active"] is True

    user = db.query(User).filter(User.email == "dan@example.com").one()
    assert user.role == UserRole.dispatcher
    text = outbox["email"][-1]["text"]
    temporary_password = text.split("temporary password ")[1].split(". Sign in")[0]
    assert verify_password(temporary_password, user.hashed_password)


def test_manual_staff_links_existing_account(client, db, owner, business, outbox, make_user):
    existing = make_user("pro@example.com", UserRole.provider, first_name="Rita")
    res = client.post(
        "/staff/manual",
        json={"first_name": "Rita", "last_name": "Pro", "email": "pro@example.com", "role": "provider"},
        headers=auth_headers(owner),
    )
    assert res.status_code == 201
    assert res.json()["account_created"] is False
    assert res.json()["staff"]["user_id"] == existing.id
    assert verify_password(PASSWORD, existing.hashed_password)
    assert "existing" in outbox["email"][-1]["text"]

    res = client.post(
        "/staff/manual",
        json={"first_name": "Rita", "last_name": "Pro", "email": "pro@example.com", "role": "provider"},
        headers=auth_headers(owner),
    )
    assert res.status_code == 400
    assert res.json()["detail"] == "Staff member already exists for this business"


def test_deactivate_staff(client, db, owner, business, make_staff):
    provider = make_staff(business, "pat@example.com")
    h = auth_headers(owner)
    res = client.post(f"/staff/{provider.id}/deactivate", headers=h)
    assert res.status_code == 200
    assert res.json()["is_active"] is False

    own = db.query(Provider).filter(Provider.user_id == owner.id).one()
    assert client.post(f"/staff/{own.id}/deactivate", headers=h).status_code == 400
    assert client.post("/staff/9999/deactivate", headers=h).status_code == 404

    # a deactivated provider loses dashboard access
    res = client.get("/business/financial-summary", headers=auth_headers(provider.user))
    assert res.status_code == 403
    assert res.json()["detail"] == "No active staff record for this account"

    listed = client.get("/staff", headers=h).json()
    assert {s["email"] for s in listed} == {"owner@example.com", "pat@example.com"}


def test_dispatcher_cannot_deactivate_the_owner(client, db, owner, business, make_staff):
    dispatcher = make_staff(business, "dee@example.com", role=ProviderRole.dispatcher)
    own = db.query(Provider).filter(Provider.user_id == owner.id).one()

    res = client.post(f"/staff/{own.id}/deactivate", headers=auth_headers(dispatcher.user))
    assert res.status_code == 403
    assert res.json()["detail"] == "Only the business owner can deactivate an owner"
    db.refresh(own)
    assert own.is_active is True

    provider = make_staff(business, "pat@example.com")
    assert client.post(f"/staff/{provider.id}/deactivate", headers=auth_headers(dispatcher.user)).status_code == 200
