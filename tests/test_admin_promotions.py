from datetime import date, timedelta

from app.models.audit_log import AuditLog
from app.models.promotion import Promotion, PromotionUsage
from tests.conftest import auth_headers, services_of


def _create(client, admin, **overrides):
    body = {
        "title": "Summer Glow",
        "promo_code": "summer20",
        "savings_type": "percentage_off",
        "savings_amount": 20,
        "savings_max_amount": 30,
    }
    body.update(overrides)
    return client.post("/admin/promotions", json=body, headers=auth_headers(admin))


def test_create_promotion_uppercases_code_and_logs(client, db, admin):
    res = _create(client, admin)
    assert res.status_code == 201
    data = res.json()
    assert data["promo_code"] == "SUMMER20"
    assert data["status"] == "active"
    assert data["is_currently_valid"] is True
    assert data["usage_count"] == 0
    log = db.query(AuditLog).filter(AuditLog.entity_type == "promotion").one()
    assert log.category == "promotion"
    assert log.actor_email == admin.email
    assert log.meta["promo_code"] == "SUMMER20"


def test_duplicate_code_is_rejected_case_insensitively(client, admin):
    assert _create(client, admin).status_code == 201
    res = _create(client, admin, promo_code="Summer20")
    assert res.status_code == 400
    assert res.json()["detail"] == "Promo code already exists"


def test_create_rejects_bad_savings(client, admin):
    assert _create(client, admin, savings_amount=150).status_code == 422


def test_create_requires_admin(client, customer):
    res = client.post(
        "/admin/promotions",
        json={"title": "x", "promo_code": "X"},
        headers=auth_headers(customer),
    )
    assert res.status_code == 403
    assert client.get("/admin/promotions").status_code == 401


def test_service_must_belong_to_business(client, admin, db, make_business):
    spa = make_business()
    other = make_business(name="Other", owner_email="other@example.com")
    service = services_of(db, other)[0]
    res = _create(client, admin, business_id=spa.id, service_id=service.id)
    assert res.status_code == 400
    assert res.json()["detail"] == "Service does not belong to the selected business"


def test_list_filters_by_status_and_paginates(client, admin):
    today = date.today()
    _create(client, admin, promo_code="NOW1")
    _create(client, admin, promo_code="NOW2")
    _create(client, admin, promo_code="LATER", start_date=str(today + timedelta(days=10)))
    _create(client, admin, promo_code="OFF", is_active=False)

    res = client.get("/admin/promotions", params={"status": "active", "limit": 1}, headers=auth_headers(admin))
    assert res.status_code == 200
    body = res.json()
    assert body["pagination"] == {"page": 1, "limit": 1, "total": 2, "total_pages": 2}
    assert len(body["data"]) == 1

    res = client.get("/admin/promotions", params={"status": "scheduled"}, headers=auth_headers(admin))
    assert [p["promo_code"] for p in res.json()["data"]] == ["LATER"]

    res = client.get("/admin/promotions", params={"search": "off"}, headers=auth_headers(admin))
    assert [p["promo_code"] for p in res.json()["data"]] == ["OFF"]


def test_list_rejects_unknown_status_and_sort(client, admin):
    h = auth_headers(admin)
    assert client.get("/admin/promotions", params={"status": "bogus"}, headers=h).status_code == 400
    assert client.get("/admin/promotions", params={"sort_by": "hashed_password"}, headers=h).status_code == 400


def test_partial_update_revalidates_against_stored_values(client, admin):
    pid = _create(client, admin, start_date="2026-06-01", end_date="2026-06-30").json()["id"]
    h = auth_headers(admin)

    res = client.put(f"/admin/promotions/{pid}", json={"end_date": "2026-05-01"}, headers=h)
    assert res.status_code == 400
    assert res.json()["detail"] == "end_date cannot be before start_date"

    res = client.put(f"/admin/promotions/{pid}", json={"title": "Renamed"}, headers=h)
    assert res.status_code == 200
    assert res.json()["title"] == "Renamed"
    assert res.json()["savings_amount"] == 20


def test_update_refuses_null_for_required_fields(client, admin):
    pid = _create(client, admin).json()["id"]
    h = auth_headers(admin)
    for field in ("is_active", "promo_code", "title"):
        res = client.put(f"/admin/promotions/{pid}", json={field: None}, headers=h)
        assert res.status_code == 422, field

    # nullable fields can still be cleared
    res = client.put(f"/admin/promotions/{pid}", json={"description": None, "is_active": False}, headers=h)
    assert res.status_code == 200
    assert res.json()["status"] == "inactive"
    assert res.json()["promo_code"] == "SUMMER20"


def test_activation_toggles_status(client, admin):
    pid = _create(client, admin).json()["id"]
    h = auth_headers(admin)
    res = client.post(f"/admin/promotions/{pid}/activation", json={"action": "deactivate"}, headers=h)
    assert res.json()["status"] == "inactive"
    res = client.post(f"/admin/promotions/{pid}/activation", json={"action": "activate"}, headers=h)
    assert res.json()["status"] == "active"
    assert client.post(f"/admin/promotions/{pid}/activation", json={"action": "pause"}, headers=h).status_code == 422


def test_used_promotion_cannot_be_deleted(client, db, admin, business, customer, make_booking):
    pid = _create(client, admin).json()["id"]
    booking = make_booking(business, customer)
    db.add(PromotionUsage(promotion_id=pid, booking_id=booking.id, discount_applied=24, original_amount=120, final_amount=96))
    db.commit()

    res = client.delete(f"/admin/promotions/{pid}", headers=auth_headers(admin))
    assert res.status_code == 400
    assert "used 1 time(s)" in res.json()["detail"]

    usage = client.get(f"/admin/promotions/{pid}/usage", headers=auth_headers(admin)).json()
    assert usage["pagination"]["total"] == 1
    entry = usage["data"][0]
    assert entry["booking_reference"] == booking.booking_reference
    assert entry["customer_name"] == "Casey Customer"
    assert entry["service_name"] == "Massage"

    detail = client.get(f"/admin/promotions/{pid}", headers=auth_headers(admin)).json()
    assert detail["usage_count"] == 1
    assert detail["total_savings"] == 24


def test_unused_promotion_is_deleted(client, db, admin):
    pid = _create(client, admin).json()["id"]
    res = client.delete(f"/admin/promotions/{pid}", headers=auth_headers(admin))
    assert res.status_code == 200
    assert db.query(Promotion).count() == 0
    assert client.get(f"/admin/promotions/{pid}", headers=auth_headers(admin)).status_code == 404


def test_checkout_validation(client, db, admin, business):
    service = services_of(db, business)[0]
    _create(client, admin, promo_code="SPA10", savings_type="fixed_amount", savings_amount=10, business_id=business.id)
    _create(client, admin, promo_code="OLD", end_date=str(date.today() - timedelta(days=1)))

    res = client.post(
        "/promotions/validate",
        json={"promo_code": " spa10 ", "amount": 120, "business_id": business.id, "service_id": service.id},
    )
    assert res.status_code == 200
    assert res.json()["discount"] == 10
    assert res.json()["final_amount"] == 110

    res = client.post("/promotions/validate", json={"promo_code": "SPA10", "amount": 120, "business_id": business.id + 1})
    assert res.status_code == 400
    assert res.json()["detail"] == "Promo code does not apply to this service"

    res = client.post("/promotions/validate", json={"promo_code": "OLD", "amount": 50})
    assert res.json()["detail"] == "Promo code is expired"

    assert client.post("/promotions/validate", json={"promo_code": "NOPE", "amount": 50}).status_code == 404
