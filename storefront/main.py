"""Storefront – FastAPI application."""
# Load .env before any app code that might read config
from dotenv import load_dotenv
from pathlib import Path
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.config import get_settings
from storefront.database import Base, engine
from storefront.exceptions import register_exception_handlers
# Import models so Base.metadata has all tables before create_all (schema source of truth)
from storefront.models import User, Role, UserRole, Store, Subscription  # noqa: F401
from storefront.routers import auth, users, stores
from storefront.services.notifications import EmailChannel, SmsChannel
from storefront.services.otp_store import OTPStore
from storefront.services.tokens import TokenIssuer

settings = get_settings()
logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
log = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.app_name, debug=settings.debug)

# Composition root: one OTP store and one token issuer per process.
# TokenIssuer raises ConfigurationError here when signing secrets are missing.
app.state.otp_store = OTPStore()
app.state.token_issuer = TokenIssuer.from_settings(settings)
app.state.roles = None

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(stores.router)


@app.on_event("startup")
def startup():
    if not EmailChannel(settings).configured:
        log.warning("[Email] Not configured - email codes cannot be delivered; set MAILGUN_API_KEY and MAILGUN_DOMAIN in .env")
    if not SmsChannel(settings).configured:
        log.warning("[SMS] Not configured - SMS codes cannot be delivered; set TWILIO_* or SMS_GATEWAY_URL in .env")
    try:
        Base.metadata.create_all(bind=engine)
        from storefront.database import SessionLocal
        from storefront.seed import seed_roles, load_role_directory
        db = SessionLocal()
        try:
            seed_roles(db)
            app.state.roles = load_role_directory(db)
        finally:
            db.close()
    except Exception as e:
        log.warning("Database startup failed (tables/seed skipped). Check DATABASE_URL and network. Error: %s", e)

    from apscheduler.schedulers.background import BackgroundScheduler
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        app.state.otp_store.purge_expired,
        "interval",
        seconds=settings.otp_purge_interval_seconds,
        id="otp_purge",
    )
    scheduler.start()
    app.state.scheduler = scheduler


@app.on_event("shutdown")
def shutdown():
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.shutdown(wait=False)


@app.get("/")
def root():
    return {"app": settings.app_name, "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
