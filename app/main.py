"""ROAM Marketplace API - FastAPI application."""
# Load .env before any app code that might read config
from dotenv import load_dotenv
from pathlib import Path
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.database import Base, engine
# Import models so Base.metadata has all tables before create_all (schema source of truth)
from app.models import (  # noqa: F401
    User, BusinessProfile, Service, BusinessSetupProgress, Provider, ProviderAvailability, ProviderService,
    Promotion, PromotionUsage, Booking, Transaction, PayoutRequest,
    Conversation, ConversationParticipant, Message, AuditLog,
)
from app.routers import (
    admin,
    admin_financial,
    admin_promotions,
    auth,
    bookings,
    business,
    conversations,
    identity,
    notifications,
    onboarding,
    promotions,
    staff,
)

log = logging.getLogger("uvicorn.error")
settings = get_settings()
app = FastAPI(title=settings.app_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(identity.router)
app.include_router(admin.router)
app.include_router(admin_promotions.router)
app.include_router(admin_financial.router)
app.include_router(promotions.router)
app.include_router(business.router)
app.include_router(staff.router)
app.include_router(onboarding.router)
app.include_router(bookings.router)
app.include_router(conversations.router)
app.include_router(notifications.router)


@app.on_event("startup")
def startup():
    if settings.resend_api_key:
        log.info("[Email] Using Resend (from=%s)", settings.email_from_address)
    elif settings.sendgrid_api_key:
        log.info("[Email] Using SendGrid (from=%s)", settings.sendgrid_from_email)
    else:
        log.warning("[Email] Not configured - emails will be skipped; set RESEND_API_KEY in .env and restart")
    try:
        Base.metadata.create_all(bind=engine)
        from app.database import SessionLocal
        from app.seed import seed_admin
        db = SessionLocal()
        try:
            seed_admin(db)
        finally:
            db.close()
    except Exception as e:
        log.warning("Database startup failed (tables/seed skipped). Check DATABASE_URL and network. Error: %s", e)

    # Scheduler: day-before booking reminders
    try:
        from apscheduler.schedulers.background import BackgroundScheduler
        scheduler = BackgroundScheduler()
        if settings.booking_reminder_cron_enabled:
            from app.services.booking_reminders import run_booking_reminder_job
            scheduler.add_job(run_booking_reminder_job, "cron", hour=settings.booking_reminder_hour, minute=0)
        scheduler.start()
    except Exception as e:
        log.warning("Scheduler not started: %s", e)


@app.get("/")
def root():
    return {"app": settings.app_name, "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
