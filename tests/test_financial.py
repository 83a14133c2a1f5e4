import csv
from datetime import datetime, timedelta, timezone
from io import StringIO

import pytest

from app.models.provider import ProviderRole
from app.models.financial import PayoutRequest, PayoutStatus, Transaction, TransactionStatus, TransactionType
from app.services.financial import percent_change, revenue_series
from tests.conftest import auth_headers

NOW = datetime.now(timezone.utc)


def _tx(db, business, amount, *, days_ago=1, fee_rate=0.1, booking=None, **kw):
    fee = round(amount * fee_rate, 2)
    values = dict(
        business_id=business.id,
        booking_id=booking.id if booking else None,
        transaction_type=TransactionType.booking_payment,
        status=TransactionStatus.completed,
        amount=amount,
        platform_fee_amount=fee,
        net_amount=round(amount - fee, 2),
        created_at=NOW - timedelta(days=days_ago),
    )
    values.update(kw)
    tx = Transaction(**values)
    db.add(tx)
    db.commit()
    return tx


@pytest.mark.parametrize("current,previous,expected", [(150, 100, 50.0), (50, 100, -50.0), (10, 0, 0.0), (0, 0, 0.0)])
def test_percent_change(current, previous, expected):
    assert percent_change(current, previous) == expected


def test_stats_compare_with_previous_window(client, db, admin, business):
    _tx(db, business, 300, days_ago=2)
    _tx(db, business, 50, days_ago=3, transaction_type=TransactionType.tip)
    _tx(db, business, 999, days_ago=4, status=TransactionStatus.pending)
    _tx(db, business, 80, days_ago=5, transaction_type=TransactionType.refund)
    _tx(db, business, 175, days_ago=10)
    db.add(PayoutRequest(business_id=business.id, amount=40, status=PayoutStatus.pending))
    db.add(PayoutRequest(business_id=business.id, amount=60, status=PayoutStatus.approved))
    business.subscription_status = "active"
    db.commit()

    res = client.get("/admin/financial/stats", params={"date_range": 7}, headers=auth_headers(admin))
    assert res.status_code == 200
    stats = res.json()
    assert stats["total_revenue"] == {"amount": 350.0, "change": 100.0, "period": "Last 7 days"}
    assert stats["platform_fees"]["amount"] == 35.0
    assert stats["net_amount"]["amount"] == 315.0
    assert stats["pending_payouts"] == {"amount": 40.0, "count": 1}
    assert stats["active_subscriptions"] == {"count": 1}


def test_transactions_search_and_status(client, db, admin, business, make_business, customer, make_booking):
    booking = make_booking(business, customer)
    guest_booking = make_booking(business, guest_name="Gina Guest")
    other = make_business(name="Zen Den", owner_email="zen@example.com")
    _tx(db, business, 120, booking=booking)
    _tx(db, business, 90, booking=guest_booking, status=TransactionStatus.failed)
    _tx(db, other, 60)
    h = auth_headers(admin)

    rows = client.get("/admin/financial/transactions", headers=h).json()
    assert len(rows) == 3
    assert rows[0]["type"] == "payment"

    rows = client.get("/admin/financial/transactions", params={"search": "casey"}, headers=h).json()
    assert [r["customer_name"] for r in rows] == ["Casey Customer"]
    rows = client.get("/admin/financial/transactions", params={"search": "Casey Customer"}, headers=h).json()
    assert [r["customer_name"] for r in rows] == ["Casey Customer"]

    rows = client.get("/admin/financial/transactions", params={"search": "gina"}, headers=h).json()
    assert [r["status"] for r in rows] == ["failed"]

    rows = client.get("/admin/financial/transactions", params={"search": "zen"}, headers=h).json()
    assert [r["business_name"] for r in rows] == ["Zen Den"]
    assert rows[0]["description"] == "Booking #N/A"

    rows = client.get("/admin/financial/transactions", params={"status": "failed"}, headers=h).json()
    assert len(rows) == 1
    assert client.get("/admin/financial/transactions", params={"status": "lost"}, headers=h).status_code == 400


def test_transactions_export_csv(client, db, admin, business, customer, make_booking):
    _tx(db, business, 120, booking=make_booking(business, customer), description="Massage payment")
    res = client.get("/admin/financial/transactions/export", headers=auth_headers(admin))
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    assert "attachment; filename=transactions_" in res.headers["content-disposition"]
    rows = list(csv.reader(StringIO(res.text)))
    assert rows[0][:4] == ["ID", "Date", "Type", "Status"]
    assert rows[1][2:] == ["payment", "completed", "Glow Spa", "Casey Customer", "Massage payment", "120.00", "12.00", "108.00"]


def test_revenue_series_fills_missing_days(db, business, customer, make_booking):
    booking = make_booking(business, customer)
    today = NOW.date()
    _tx(db, business, 100, days_ago=0, booking=booking)
    _tx(db, business, 20, days_ago=0, booking=booking, transaction_type=TransactionType.tip)
    _tx(db, business, 40, days_ago=2)
    _tx(db, business, 500, days_ago=30)

    points = revenue_series(db, 5, today=today)
    assert [p.date for p in points] == [today - timedelta(days=i) for i in range(4, -1, -1)]
    assert [p.revenue for p in points] == [0, 0, 40.0, 0, 120.0]
    assert points[-1].bookings == 1
    assert points[-1].fees == 12.0


def test_business_summary_and_payout_request(client, db, business, owner):
    _tx(db, business, 500)
    db.add(PayoutRequest(business_id=business.id, amount=100, status=PayoutStatus.approved))
    db.add(PayoutRequest(business_id=business.id, amount=50, status=PayoutStatus.pending))
    db.commit()
    h = auth_headers(owner)

    summary = client.get("/business/financial-summary", headers=h).json()
    assert summary["net_earnings"] == 450.0
    assert summary["total_paid_out"] == 100.0
    assert summary["pending_payouts"] == 50.0
    assert summary["available_balance"] == 300.0

    res = client.post("/business/payouts", json={"amount": 300.01}, headers=h)
    assert res.status_code == 400
    assert res.json()["detail"] == "Requested amount exceeds available balance ($300.00)"

    res = client.post("/business/payouts", json={"amount": 250, "notes": " weekly "}, headers=h)
    assert res.status_code == 201
    assert res.json()["status"] == "pending"
    assert res.json()["notes"] == "weekly"
    assert client.get("/business/financial-summary", headers=h).json()["available_balance"] == 50.0
    assert len(client.get("/business/payouts", params={"status": "pending"}, headers=h).json()) == 2


def test_payout_requests_draw_down_the_same_balance(client, db, business, owner):
    _tx(db, business, 200)
    h = auth_headers(owner)
    assert client.post("/business/payouts", json={"amount": 150}, headers=h).status_code == 201
    res = client.post("/business/payouts", json={"amount": 150}, headers=h)
    assert res.status_code == 400
    assert res.json()["detail"] == "Requested amount exceeds available balance ($30.00)"
    assert db.query(PayoutRequest).filter(PayoutRequest.business_id == business.id).count() == 1


def test_dispatcher_can_view_but_not_request_payouts(client, business, make_staff):
    dispatcher = make_staff(business, "dee@example.com", role=ProviderRole.dispatcher)
    h = auth_headers(dispatcher.user)
    assert client.get("/business/financial-summary", headers=h).status_code == 200
    res = client.post("/business/payouts", json={"amount": 1}, headers=h)
    assert res.status_code == 403


def test_provider_cannot_see_business_finances(client, business, make_staff):
    provider = make_staff(business, "pat@example.com")
    assert client.get("/business/transactions", headers=auth_headers(provider.user)).status_code == 403


def test_admin_decides_payout_once(client, db, admin, business, outbox):
    payout = PayoutRequest(business_id=business.id, amount=75, status=PayoutStatus.pending)
    db.add(payout)
    db.commit()
    h = auth_headers(admin)

    res = client.post(f"/admin/financial/payouts/{payout.id}/status", json={"action": "approve", "notes": "Sent"}, headers=h)
    assert res.status_code == 200
    assert res.json()["status"] == "approved"
    assert res.json()["processed_at"] is not None
    assert outbox["email"][0]["to"] == business.contact_email
    assert "approved" in outbox["email"][0]["subject"]

    res = client.post(f"/admin/financial/payouts/{payout.id}/status", json={"action": "reject"}, headers=h)
    assert res.status_code == 409
    assert res.json()["detail"] == "Payout request is already approved"

    assert client.post("/admin/financial/payouts/999/status", json={"action": "reject"}, headers=h).status_code == 404
    assert client.post(f"/admin/financial/payouts/{payout.id}/status", json={"action": "hold"}, headers=h).status_code == 422

    listed = client.get("/admin/financial/payouts", params={"status": "approved"}, headers=h).json()
    assert [p["id"] for p in listed] == [payout.id]
