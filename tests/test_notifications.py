import pytest

from app.config import get_settings
from app.services import email_templates
from app.services.notifications import normalize_phone_e164, send_email, send_sms
from tests.conftest import auth_headers


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("555-123-4567", "+15551234567"),
        ("+44 20 7946 0958", "+442079460958"),
        ("12345", None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_phone_e164(raw, expected):
    assert normalize_phone_e164(raw) == expected


def test_unconfigured_vendors_skip_sending():
    assert send_email("someone@example.com", "Hi", "<p>Hi</p>") is False
    assert send_email("", "Hi", "<p>Hi</p>") is False
    assert send_sms("5551234567", "Hi") is False


def test_templates_escape_user_content():
    subject, html, text = email_templates.business_rejected("<b>Al</b>", "Al's Spa", "Missing <license>")
    assert subject == "Update on your Al's Spa application"
    assert "&lt;license&gt;" in html
    assert "<b>Al</b>" not in html
    assert text.endswith("Reason: Missing <license>")


def test_payout_template_formats_amount():
    subject, html, _ = email_templates.payout_decision("Glow Spa", 1234.5, False, None)
    assert subject == "Your payout request of $1234.50 was rejected"
    assert "Notes" not in html


def test_test_email_needs_configuration(client, admin):
    res = client.post("/notifications/test-email", headers=auth_headers(admin))
    assert res.status_code == 503


def test_test_email_defaults_to_calling_admin(client, admin, monkeypatch):
    sent = []
    monkeypatch.setattr(get_settings(), "resend_api_key", "re_test")
    monkeypatch.setattr("app.routers.notifications.send_email", lambda to, *a, **kw: sent.append(to) or True)

    res = client.post("/notifications/test-email", headers=auth_headers(admin))
    assert res.status_code == 200
    assert sent == [admin.email]

    res = client.post("/notifications/test-email", json={"to": "ops@example.com"}, headers=auth_headers(admin))
    assert sent[-1] == "ops@example.com"

    monkeypatch.setattr("app.routers.notifications.send_email", lambda *a, **kw: False)
    assert client.post("/notifications/test-email", headers=auth_headers(admin)).status_code == 502


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
