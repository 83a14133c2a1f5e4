from types import SimpleNamespace

import pytest

from app.models.conversation import Conversation
from app.models.provider import Provider
from app.services import conversations
from tests.conftest import auth_headers


@pytest.fixture
def booking_chat(business, customer, make_staff, make_booking):
    pat = make_staff(business, "pat@example.com")
    booking = make_booking(business, customer, provider=pat)
    return booking, pat.user, business.owner


def _open(client, user, booking):
    return client.post(f"/conversations/bookings/{booking.id}", headers=auth_headers(user))


def test_open_conversation_adds_booking_participants(client, db, customer, booking_chat):
    booking, provider_user, owner = booking_chat
    res = _open(client, customer, booking)
    assert res.status_code == 200
    conv = res.json()
    assert conv["booking_id"] == booking.id
    assert conv["friendly_name"] == f"Massage - {booking.booking_reference}"
    assert conv["twilio_conversation_sid"] is None
    roles = {p["user_id"]: p["participant_role"] for p in conv["participants"]}
    assert roles == {customer.id: "customer", provider_user.id: "provider", owner.id: "owner"}

    # opening again returns the same conversation
    assert _open(client, owner, booking).json()["id"] == conv["id"]
    assert db.query(Conversation).count() == 1


def test_owner_who_is_also_the_provider_is_listed_once(client, db, business, owner, customer, make_booking):
    owner_record = db.query(Provider).filter(Provider.user_id == owner.id).one()
    booking = make_booking(business, customer, provider=owner_record)
    conv = _open(client, customer, booking).json()
    assert sorted(p["participant_role"] for p in conv["participants"]) == ["customer", "provider"]


def test_outsiders_cannot_open_or_read(client, customer, booking_chat, make_user):
    booking, _, _ = booking_chat
    stranger = make_user("nosy@example.com")
    assert _open(client, stranger, booking).status_code == 404

    conv_id = _open(client, customer, booking).json()["id"]
    res = client.get(f"/conversations/{conv_id}/messages", headers=auth_headers(stranger))
    assert res.status_code == 403
    assert res.json()["detail"] == "You are not a participant in this conversation"
    assert client.get("/conversations/999/messages", headers=auth_headers(customer)).status_code == 404


def test_messages_and_unread_counts(client, customer, booking_chat):
    booking, provider_user, _ = booking_chat
    conv_id = _open(client, customer, booking).json()["id"]

    for body in ("Hi, running 5 min late", "Is parking available?"):
        res = client.post(f"/conversations/{conv_id}/messages", json={"body": body}, headers=auth_headers(customer))
        assert res.status_code == 201
        assert res.json()["author_name"] == "Casey Customer"

    listed = client.get("/conversations", headers=auth_headers(provider_user)).json()
    assert listed[0]["unread_count"] == 2
    assert client.get("/conversations", headers=auth_headers(customer)).json()[0]["unread_count"] == 0

    messages = client.get(f"/conversations/{conv_id}/messages", headers=auth_headers(provider_user)).json()
    assert [m["body"] for m in messages] == ["Hi, running 5 min late", "Is parking available?"]

    res = client.post(f"/conversations/{conv_id}/read", headers=auth_headers(provider_user))
    assert res.json()["last_read_message_id"] == messages[-1]["id"]
    assert client.get("/conversations", headers=auth_headers(provider_user)).json()[0]["unread_count"] == 0


def test_message_body_limits_and_closed_conversations(client, db, customer, booking_chat):
    booking, _, _ = booking_chat
    conv_id = _open(client, customer, booking).json()["id"]
    h = auth_headers(customer)
    assert client.post(f"/conversations/{conv_id}/messages", json={"body": ""}, headers=h).status_code == 422
    assert client.post(f"/conversations/{conv_id}/messages", json={"body": "x" * 1601}, headers=h).status_code == 422

    db.query(Conversation).filter(Conversation.id == conv_id).update({"is_active": False})
    db.commit()
    res = client.post(f"/conversations/{conv_id}/messages", json={"body": "hello?"}, headers=h)
    assert res.status_code == 400
    assert res.json()["detail"] == "Conversation is closed"


def test_reopening_adds_newly_assigned_provider(client, db, business, customer, booking_chat, make_staff):
    booking, first_provider, _ = booking_chat
    conv_id = _open(client, customer, booking).json()["id"]

    sam = make_staff(business, "sam@example.com")
    booking.provider_id = sam.id
    db.commit()

    res = _open(client, sam.user, booking)
    assert res.status_code == 200
    assert res.json()["id"] == conv_id
    roles = {p["user_id"]: p["participant_role"] for p in res.json()["participants"]}
    assert roles[sam.user.id] == "provider"
    # earlier participants keep their history
    assert first_provider.id in roles
    assert client.get(f"/conversations/{conv_id}/messages", headers=auth_headers(sam.user)).status_code == 200


class FlakyTwilio:
    """Conversations resource whose participant adds fail."""

    def __init__(self):
        self.deleted = []

    def create(self, friendly_name, attributes):
        return SimpleNamespace(sid="CH123")

    def __call__(self, sid):
        return SimpleNamespace(
            participants=SimpleNamespace(create=self._refuse),
            delete=lambda: self.deleted.append(sid),
        )

    def _refuse(self, identity):
        raise ConnectionError("twilio unreachable")


def test_failed_participant_add_removes_remote_conversation(client, db, customer, booking_chat, monkeypatch):
    booking, _, _ = booking_chat
    twilio = FlakyTwilio()
    monkeypatch.setattr(conversations, "twilio_conversations_enabled", lambda: True)
    monkeypatch.setattr(conversations, "_conversations_api", lambda: twilio)

    res = _open(client, customer, booking)
    assert res.status_code == 502
    assert twilio.deleted == ["CH123"]
    assert db.query(Conversation).count() == 0
