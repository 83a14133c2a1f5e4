"""HTML email bodies. Every template returns (subject, html, text)."""
from html import escape

BRAND_COLOR = "#4F46E5"
SUPPORT_EMAIL = "support@roamyourbestlife.com"

_LAYOUT = """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <style>
    body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; margin: 0; padding: 20px; background-color: #f9fafb; }}
    .container {{ max-width: 600px; margin: 0 auto; background: white; border-radius: 8px; padding: 40px; }}
    .info-box {{ background: #f8f9fa; padding: 20px; border-radius: 8px; margin: 25px 0; }}
    .button {{ display: inline-block; background: {brand}; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; font-weight: 600; margin: 20px 0; }}
    h1, h2, h3 {{ color: {brand}; }}
    .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; font-size: 14px; color: #6b7280; text-align: center; }}
  </style>
</head>
<body>
  <div class="container">
    <h1>{heading}</h1>
    {body}
    <div class="footer">
      <p>Need help? Contact us at <a href="mailto:{support}">{support}</a></p>
      <p>&copy; ROAM. All rights reserved.</p>
    </div>
  </div>
</body>
</html>
"""


def _layout(heading: str, body: str) -> str:
    return _LAYOUT.format(brand=BRAND_COLOR, heading=escape(heading), body=body, support=SUPPORT_EMAIL)


def _details(rows: list[tuple[str, str]]) -> str:
    lines = "".join(
        f'<p style="margin: 10px 0;"><strong>{escape(label)}:</strong> {escape(value)}</p>' for label, value in rows
    )
    return f'<div class="info-box">{lines}</div>'


def _button(url: str, label: str) -> str:
    return f'<div style="text-align: center;"><a href="{escape(url, quote=True)}" class="button">{escape(label)}</a></div>'


def booking_confirmed(
    customer_name: str,
    service_name: str,
    provider_name: str,
    booking_date: str,
    booking_time: str,
    location: str,
    total_amount: float,
    bookings_url: str,
) -> tuple[str, str, str]:
    subject = f"Your booking for {service_name} is confirmed"
    body = (
        f"<p>Hi {escape(customer_name)},</p>"
        f"<p>Great news! Your booking has been confirmed by {escape(provider_name)}.</p>"
        + _details(
            [
                ("Service", service_name),
                ("Provider", provider_name),
                ("Date", booking_date),
                ("Time", booking_time),
                ("Location", location),
                ("Total", f"${total_amount:.2f}"),
            ]
        )
        + "<p>You'll receive a reminder 24 hours before your appointment.</p>"
        + _button(bookings_url, "View My Bookings")
    )
    text = (
        f"Hi {customer_name}, your booking for {service_name} with {provider_name} on "
        f"{booking_date} at {booking_time} is confirmed."
    )
    return subject, _layout("Your Booking Has Been Confirmed!", body), text


def booking_cancelled(
    customer_name: str,
    service_name: str,
    booking_date: str,
    booking_time: str,
    reason: str | None,
) -> tuple[str, str, str]:
    subject = f"Your booking for {service_name} was cancelled"
    rows = [("Service", service_name), ("Date", booking_date), ("Time", booking_time)]
    if reason:
        rows.append(("Reason", reason))
    body = (
        f"<p>Hi {escape(customer_name)},</p>"
        "<p>Your booking has been cancelled. If a payment was taken, any refund will be processed to your original payment method.</p>"
        + _details(rows)
    )
    text = f"Hi {customer_name}, your booking for {service_name} on {booking_date} at {booking_time} was cancelled."
    return subject, _layout("Booking Cancelled", body), text


def booking_reminder(
    customer_name: str,
    service_name: str,
    provider_name: str,
    booking_date: str,
    booking_time: str,
    location: str,
) -> tuple[str, str, str]:
    subject = f"Reminder: {service_name} tomorrow at {booking_time}"
    body = (
        f"<p>Hi {escape(customer_name)},</p>"
        "<p>This is a friendly reminder about your appointment tomorrow.</p>"
        + _details(
            [
                ("Service", service_name),
                ("Provider", provider_name),
                ("Date", booking_date),
                ("Time", booking_time),
                ("Location", location),
            ]
        )
    )
    text = f"Reminder: {service_name} with {provider_name} tomorrow ({booking_date}) at {booking_time}."
    return subject, _layout("See You Tomorrow", body), text


def staff_invitation(business_name: str, role: str, invitation_url: str) -> tuple[str, str, str]:
    subject = f"You're invited to join {business_name} on ROAM"
    body = (
        f"<p>{escape(business_name)} has invited you to join their team as a <strong>{escape(role)}</strong>.</p>"
        "<p>Complete your account, profile and availability to get started.</p>"
        + _button(invitation_url, "Accept Invitation")
        + "<p>This invitation link expires in 7 days.</p>"
    )
    text = f"{business_name} invited you to join ROAM as a {role}. Accept here: {invitation_url}"
    return subject, _layout("You're Invited!", body), text


def staff_credentials(first_name: str, business_name: str, email: str, temporary_password: str, login_url: str) -> tuple[str, str, str]:
    subject = f"Your {business_name} staff account on ROAM"
    body = (
        f"<p>Hi {escape(first_name)},</p>"
        f"<p>An account has been created for you at <strong>{escape(business_name)}</strong>.</p>"
        + _details([("Email", email), ("Temporary password", temporary_password)])
        + "<p>Please sign in and change your password right away.</p>"
        + _button(login_url, "Sign In")
    )
    text = f"Hi {first_name}, your {business_name} account: {email} / temporary password {temporary_password}. Sign in: {login_url}"
    return subject, _layout("Welcome to the Team", body), text


def staff_added_existing(first_name: str, business_name: str, role: str, login_url: str) -> tuple[str, str, str]:
    subject = f"Welcome to {business_name} on ROAM"
    body = (
        f"<p>Hi {escape(first_name)},</p>"
        f"<p>You've been added as a <strong>{escape(role)}</strong> at <strong>{escape(business_name)}</strong>.</p>"
        "<p>Since you already have a ROAM account, sign in with your existing email and password.</p>"
        + _button(login_url, "Sign In")
    )
    text = f"Hi {first_name}, you've been added as a {role} at {business_name}. Sign in with your existing credentials: {login_url}"
    return subject, _layout("Welcome to the Team", body), text


def onboarding_complete(first_name: str, dashboard_url: str) -> tuple[str, str, str]:
    subject = "Welcome to ROAM - your onboarding is complete"
    body = (
        f"<p>Hi {escape(first_name)},</p>"
        "<p>Your staff onboarding is complete. You can now sign in to manage your bookings and availability.</p>"
        + _button(dashboard_url, "Open Dashboard")
    )
    text = f"Hi {first_name}, your ROAM onboarding is complete. Dashboard: {dashboard_url}"
    return subject, _layout("You're All Set!", body), text


def business_approved(owner_name: str, business_name: str, phase2_url: str) -> tuple[str, str, str]:
    subject = f"{business_name} has been approved on ROAM"
    body = (
        f"<p>Hi {escape(owner_name)},</p>"
        f"<p>Congratulations! <strong>{escape(business_name)}</strong> has been approved.</p>"
        "<p>Finish setting up your business: profile, hours, staff, banking and service pricing.</p>"
        + _button(phase2_url, "Continue Setup")
        + "<p>This link expires in 7 days.</p>"
    )
    text = f"Hi {owner_name}, {business_name} has been approved. Continue setup: {phase2_url}"
    return subject, _layout("Application Approved", body), text


def business_rejected(owner_name: str, business_name: str, reason: str | None) -> tuple[str, str, str]:
    subject = f"Update on your {business_name} application"
    reason_html = f"<p><strong>Reason:</strong> {escape(reason)}</p>" if reason else ""
    body = (
        f"<p>Hi {escape(owner_name)},</p>"
        f"<p>Unfortunately we were unable to approve <strong>{escape(business_name)}</strong> at this time.</p>"
        + reason_html
        + f"<p>Reply to this email or contact {SUPPORT_EMAIL} if you have questions.</p>"
    )
    text = f"Hi {owner_name}, your application for {business_name} was not approved." + (f" Reason: {reason}" if reason else "")
    return subject, _layout("Application Update", body), text


def payout_decision(business_name: str, amount: float, approved: bool, notes: str | None) -> tuple[str, str, str]:
    outcome = "approved" if approved else "rejected"
    subject = f"Your payout request of ${amount:.2f} was {outcome}"
    rows = [("Business", business_name), ("Amount", f"${amount:.2f}"), ("Status", outcome)]
    if notes:
        rows.append(("Notes", notes))
    body = "<p>Your payout request has been reviewed.</p>" + _details(rows)
    text = f"Payout request for {business_name} (${amount:.2f}) was {outcome}." + (f" Notes: {notes}" if notes else "")
    return subject, _layout(f"Payout {outcome.title()}", body), text
