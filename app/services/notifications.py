"""Notification service: email via Resend (SendGrid fallback) and SMS via Twilio."""
import logging
import re

from app.config import get_settings
from app.services import email_templates

log = logging.getLogger("uvicorn.error")

PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15


def send_email(to_email: str, subject: str, html_content: str, text_content: str | None = None, from_address: str | None = None) -> bool:
    """Send email via Resend (preferred) or SendGrid. Returns False when neither is configured or the call fails."""
    settings = get_settings()
    if not to_email:
        log.warning("[Email] NOT SENT: no recipient for subject=%s", subject)
        return False
    if settings.resend_api_key:
        return _send_email_resend(to_email, subject, html_content, text_content, from_address, settings)
    if settings.sendgrid_api_key:
        return _send_email_sendgrid(to_email, subject, html_content, text_content, settings)
    log.warning("[Email] NOT SENT: to=%s subject=%s. Set RESEND_API_KEY (or SENDGRID_API_KEY) in .env.", to_email, subject)
    return False


def _send_email_resend(to_email: str, subject: str, html_content: str, text_content: str | None, from_address: str | None, settings) -> bool:
    import resend

    resend.api_key = settings.resend_api_key
    params = {
        "from": from_address or settings.email_from_address,
        "to": [to_email],
        "subject": subject,
        "html": html_content,
    }
    if text_content:
        params["text"] = text_content
    try:
        response = resend.Emails.send(params)
    except Exception as e:
        log.error("[Resend] Exception: to=%s error=%s: %s", to_email, type(e).__name__, e)
        return False
    msg_id = response.get("id", "") if isinstance(response, dict) else getattr(response, "id", "")
    log.info("[Resend] Email sent: to=%s subject=%s id=%s", to_email, subject, msg_id)
    return True


def _send_email_sendgrid(to_email: str, subject: str, html_content: str, text_content: str | None, settings) -> bool:
    from sendgrid import SendGridAPIClient
    from sendgrid.helpers.mail import Mail

    message = Mail(
        from_email=(settings.sendgrid_from_email, settings.sendgrid_from_name),
        to_emails=to_email,
        subject=subject,
        html_content=html_content,
        plain_text_content=text_content or "",
    )
    try:
        SendGridAPIClient(settings.sendgrid_api_key).send(message)
    except Exception as e:
        log.error("[SendGrid] Exception: to=%s error=%s: %s", to_email, type(e).__name__, e)
        return False
    log.info("[SendGrid] Email sent: to=%s subject=%s", to_email, subject)
    return True


def normalize_phone_e164(phone: str | None, default_country_code: str = "1") -> str | None:
    """+15551234567 style number, or None when the input can't be one.
    Ten-digit numbers get the default country code."""
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 10:
        digits = default_country_code + digits
    if len(digits) < PHONE_MIN_DIGITS + 1 or len(digits) > PHONE_MAX_DIGITS:
        return None
    return "+" + digits


def send_sms(to_phone: str | None, body: str) -> bool:
    """Send SMS via Twilio. Returns False when Twilio is unconfigured or the number is unusable."""
    settings = get_settings()
    if not settings.twilio_account_sid or not settings.twilio_auth_token or not settings.twilio_from_phone_number:
        log.warning("[SMS] NOT SENT: Twilio is not configured (TWILIO_ACCOUNT_SID / TWILIO_AUTH_TOKEN / TWILIO_FROM_PHONE_NUMBER).")
        return False
    to = normalize_phone_e164(to_phone)
    if not to:
        log.warning("[SMS] NOT SENT: phone number %r is not a valid E.164 number", to_phone)
        return False
    from twilio.base.exceptions import TwilioRestException
    from twilio.rest import Client

    try:
        client = Client(settings.twilio_account_sid, settings.twilio_auth_token)
        message = client.messages.create(body=body, from_=settings.twilio_from_phone_number, to=to)
    except TwilioRestException as e:
        log.error("[SMS] Twilio error: to=%s status=%s code=%s msg=%s", to, e.status, e.code, e.msg)
        return False
    except Exception as e:
        log.error("[SMS] Exception: to=%s error=%s: %s", to, type(e).__name__, e)
        return False
    log.info("[SMS] Sent: to=%s sid=%s", to, message.sid)
    return True


# --- Booking notifications ---

def _booking_fields(booking) -> dict:
    service_name = booking.service.name if booking.service else "your service"
    provider_name = (booking.provider.full_name if booking.provider else "") or (
        booking.business.business_name if booking.business else "your provider"
    )
    return {
        "customer_name": booking.customer_name,
        "service_name": service_name,
        "provider_name": provider_name,
        "booking_date": booking.booking_date.strftime("%A, %B %d, %Y"),
        "booking_time": booking.start_time.strftime("%I:%M %p").lstrip("0"),
        "location": booking.location or (booking.business.business_name if booking.business else "See booking details"),
    }


def send_booking_confirmed_email(booking) -> bool:
    f = _booking_fields(booking)
    settings = get_settings()
    subject, html, text = email_templates.booking_confirmed(
        total_amount=booking.total_amount or 0,
        bookings_url=f"{settings.customer_app_url.rstrip('/')}/my-bookings",
        **f,
    )
    return send_email(booking.customer_email, subject, html, text, from_address=settings.provider_support_from_address)


def send_booking_cancelled_email(booking) -> bool:
    f = _booking_fields(booking)
    subject, html, text = email_templates.booking_cancelled(
        customer_name=f["customer_name"],
        service_name=f["service_name"],
        booking_date=f["booking_date"],
        booking_time=f["booking_time"],
        reason=booking.cancellation_reason,
    )
    return send_email(booking.customer_email, subject, html, text)


def send_booking_reminder_email(booking) -> bool:
    f = _booking_fields(booking)
    subject, html, text = email_templates.booking_reminder(**f)
    return send_email(booking.customer_email, subject, html, text)


def customer_wants_sms(booking) -> bool:
    """Guests have no preferences; registered customers must opt in."""
    if booking.customer is not None:
        return bool(booking.customer.sms_notifications and booking.customer.phone)
    return False


def provider_wants_sms(booking) -> bool:
    provider = booking.provider
    if provider is None or provider.user is None:
        return False
    return bool(provider.user.sms_notifications and (provider.notification_phone or provider.phone))


def send_booking_sms_to_customer(booking, event: str) -> bool:
    if not customer_wants_sms(booking):
        return False
    f = _booking_fields(booking)
    bodies = {
        "confirmed": f"ROAM: Your {f['service_name']} booking on {f['booking_date']} at {f['booking_time']} is confirmed.",
        "cancelled": f"ROAM: Your {f['service_name']} booking on {f['booking_date']} has been cancelled.",
        "completed": f"ROAM: Thanks for booking {f['service_name']} with {f['provider_name']}! We hope you enjoyed it.",
        "reminder": f"ROAM reminder: {f['service_name']} tomorrow at {f['booking_time']}.",
    }
    body = bodies.get(event)
    if not body:
        return False
    return send_sms(booking.customer_phone, body)


def send_booking_sms_to_provider(booking, new_status: str) -> bool:
    if not provider_wants_sms(booking):
        return False
    f = _booking_fields(booking)
    provider = booking.provider
    body = f"ROAM: Booking #{booking.booking_reference or booking.id} ({f['service_name']}, {f['booking_date']} {f['booking_time']}) is now {new_status}."
    return send_sms(provider.notification_phone or provider.phone, body)


# --- Staff and business notifications ---

def send_staff_invitation_email(to_email: str, business_name: str, role: str, token: str) -> bool:
    settings = get_settings()
    url = f"{settings.provider_app_url.rstrip('/')}/staff/onboarding?token={token}"
    subject, html, text = email_templates.staff_invitation(business_name, role, url)
    return send_email(to_email, subject, html, text, from_address=settings.provider_support_from_address)


def send_staff_credentials_email(to_email: str, first_name: str, business_name: str, temporary_password: str) -> bool:
    settings = get_settings()
    login_url = f"{settings.provider_app_url.rstrip('/')}/provider-login"
    subject, html, text = email_templates.staff_credentials(first_name, business_name, to_email, temporary_password, login_url)
    return send_email(to_email, subject, html, text, from_address=settings.provider_support_from_address)


def send_staff_added_email(to_email: str, first_name: str, business_name: str, role: str) -> bool:
    settings = get_settings()
    login_url = f"{settings.provider_app_url.rstrip('/')}/provider-login"
    subject, html, text = email_templates.staff_added_existing(first_name, business_name, role, login_url)
    return send_email(to_email, subject, html, text, from_address=settings.provider_support_from_address)


def send_onboarding_complete_email(to_email: str, first_name: str) -> bool:
    settings = get_settings()
    dashboard_url = f"{settings.provider_app_url.rstrip('/')}/provider-dashboard"
    subject, html, text = email_templates.onboarding_complete(first_name, dashboard_url)
    return send_email(to_email, subject, html, text, from_address=settings.provider_support_from_address)


def send_business_approved_email(to_email: str, owner_name: str, business_name: str, phase2_token: str) -> bool:
    settings = get_settings()
    url = f"{settings.provider_app_url.rstrip('/')}/provider-onboarding/phase2?token={phase2_token}"
    subject, html, text = email_templates.business_approved(owner_name or "there", business_name, url)
    return send_email(to_email, subject, html, text)


def send_business_rejected_email(to_email: str, owner_name: str, business_name: str, reason: str | None) -> bool:
    subject, html, text = email_templates.business_rejected(owner_name or "there", business_name, reason)
    return send_email(to_email, subject, html, text)


def send_payout_decision_email(to_email: str | None, business_name: str, amount: float, approved: bool, notes: str | None) -> bool:
    subject, html, text = email_templates.payout_decision(business_name, amount, approved, notes)
    return send_email(to_email, subject, html, text)
