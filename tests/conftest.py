"""
Shared pytest fixtures.

- In-memory SQLite (StaticPool) swapped in for get_db
- Seeded roles and a RoleDirectory
- A controllable clock
- Fake delivery channels that record what was sent
"""
from __future__ import annotations

import os

# Settings are read on first import; keep tests off any real database or provider
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MAILGUN_API_KEY"] = ""
os.environ["SENDGRID_API_KEY"] = ""
os.environ["TWILIO_ACCOUNT_SID"] = ""
os.environ["SMS_GATEWAY_URL"] = ""

import re
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.database import Base, get_db
from storefront.dependencies import get_email_channel, get_sms_channel
from storefront.main import app
from storefront.models.user import User
from storefront.seed import load_role_directory, seed_roles
from storefront.services.auth import get_password_hash
from storefront.services.otp_store import OTPStore
from storefront.services.tokens import TokenIssuer


class FrozenClock:
    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingChannel:
    def __init__(self, ok: bool = True):
        self.ok = ok
        self.sent: list[tuple[str, str]] = []

    def send(self, identifier: str, message: str) -> bool:
        self.sent.append((identifier, message))
        return self.ok

    def last_code(self) -> str:
        _, message = self.sent[-1]
        return re.search(r"code is (\d+)", message).group(1)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng, "connect")
    def _enable_fks(dbapi_conn, _):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    seed_roles(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def roles(db):
    return load_role_directory(db)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def token_issuer() -> TokenIssuer:
    return TokenIssuer(access_secret="test-access-secret", refresh_secret="test-refresh-secret")


@pytest.fixture
def otp_store(clock) -> OTPStore:
    return OTPStore(clock=clock)


@pytest.fixture
def email_channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def sms_channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def make_user(db):
    def _make(email: str | None = None, phone_number: str | None = None, name: str = "Test User", password: str = "secret123", user_id: int | None = None) -> User:
        user = User(
            id=user_id,
            email=email,
            phone_number=phone_number,
            name=name,
            hashed_password=get_password_hash(password),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def client(session_factory, db, roles, otp_store, token_issuer, email_channel, sms_channel):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_email_channel] = lambda: email_channel
    app.dependency_overrides[get_sms_channel] = lambda: sms_channel
    saved = (app.state.otp_store, app.state.token_issuer, app.state.roles)
    app.state.otp_store = otp_store
    app.state.token_issuer = token_issuer
    app.state.roles = roles
    # No context manager: startup (create_all on the real engine, scheduler) is not run
    yield TestClient(app)
    app.dependency_overrides.clear()
    app.state.otp_store, app.state.token_issuer, app.state.roles = saved


