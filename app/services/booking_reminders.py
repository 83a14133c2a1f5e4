"""Scheduled job: day-before booking reminders."""
import logging

from app.config import get_settings
from app.database import SessionLocal
from app.services.bookings import send_booking_reminders

log = logging.getLogger("uvicorn.error")


def run_booking_reminder_job() -> int:
    """Run once per day (or on demand). Opens its own session; the scheduler has no request scope."""
    if not get_settings().booking_reminder_cron_enabled:
        return 0
    db = SessionLocal()
    try:
        return send_booking_reminders(db)
    except Exception:
        log.exception("[Reminders] Booking reminder job failed")
        db.rollback()
        return 0
    finally:
        db.close()
