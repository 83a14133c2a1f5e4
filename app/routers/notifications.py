"""Notification checks and the on-demand booking reminder run."""
from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.dependencies import require_admin
from app.models.user import User
from app.services.bookings import send_booking_reminders
from app.services.notifications import send_email

router = APIRouter(prefix="/notifications", tags=["notifications"])


class TestEmailBody(BaseModel):
    to: EmailStr | None = None


@router.post("/test-email")
def send_test_email(body: TestEmailBody | None = Body(None), current_user: User = Depends(require_admin)):
    """Send a test email via Resend (or SendGrid). Goes to the calling admin when 'to' is not provided."""
    settings = get_settings()
    if not settings.resend_api_key and not settings.sendgrid_api_key:
        raise HTTPException(
            status_code=503,
            detail="Email is not configured. Set RESEND_API_KEY (or SENDGRID_API_KEY) in .env.",
        )
    to_email = (body.to if body and body.to else current_user.email).strip()
    subject = "[ROAM] Test email - delivery is working"
    html_content = """
    <p>Hello,</p>
    <p>This is a test email from the <strong>ROAM</strong> marketplace API.</p>
    <p>If you received this, the email provider is configured correctly.</p>
    """
    text_content = "This is a test email from the ROAM marketplace API. If you received this, email is configured correctly."
    ok = send_email(to_email, subject, html_content, text_content=text_content)
    if not ok:
        raise HTTPException(status_code=502, detail="Email request failed. Check server logs and RESEND_* / SENDGRID_* settings.")
    return {"status": "ok", "message": f"Test email sent to {to_email}."}


@router.post("/run-booking-reminders")
def trigger_booking_reminders(db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    """Run the day-before reminder job now."""
    count = send_booking_reminders(db)
    return {"status": "ok", "message": f"Booking reminder job completed. {count} reminder(s) sent.", "sent": count}
