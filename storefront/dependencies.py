"""Shared dependencies: DB session, current user, core services, subscription gates."""
from datetime import timedelta

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session, joinedload

from storefront.config import Settings, get_settings
from storefront.database import get_db
from storefront.exceptions import SubscriptionError
from storefront.models.store import Store
from storefront.models.user import User
from storefront.seed import RoleDirectory, load_role_directory
from storefront.services.notifications import EmailChannel, SmsChannel
from storefront.services.onboarding import OnboardingOrchestrator
from storefront.services.otp_store import OTPStore
from storefront.services.subscription import check_subscription
from storefront.services.tokens import TokenIssuer
from storefront.services.verification import IdentityVerificationService

security = HTTPBearer(auto_error=False)

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_otp_store(request: Request) -> OTPStore:
    return request.app.state.otp_store


def get_role_directory(request: Request, db: Session = Depends(get_db)) -> RoleDirectory:
    """Resolved once from the seeded roles table, then cached on the app."""
    roles = getattr(request.app.state, "roles", None)
    if roles is None:
        roles = load_role_directory(db)
        request.app.state.roles = roles
    return roles


def get_email_channel(settings: Settings = Depends(get_settings)):
    return EmailChannel(settings)


def get_sms_channel(settings: Settings = Depends(get_settings)):
    return SmsChannel(settings)


def get_verification_service(
    db: Session = Depends(get_db),
    otp_store: OTPStore = Depends(get_otp_store),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
    email_channel=Depends(get_email_channel),
    sms_channel=Depends(get_sms_channel),
    settings: Settings = Depends(get_settings),
) -> IdentityVerificationService:
    return IdentityVerificationService(
        db,
        otp_store,
        token_issuer,
        email_channel=email_channel,
        sms_channel=sms_channel,
        otp_ttl=timedelta(minutes=settings.otp_ttl_minutes),
        otp_digits=settings.otp_digits,
        app_name=settings.app_name,
    )


def get_onboarding_orchestrator(
    db: Session = Depends(get_db),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
    roles: RoleDirectory = Depends(get_role_directory),
    settings: Settings = Depends(get_settings),
) -> OnboardingOrchestrator:
    return OnboardingOrchestrator(
        db,
        token_issuer,
        roles,
        store_base_url=settings.store_base_url,
        trial_period=timedelta(days=settings.trial_period_days),
    )


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> User:
    token_str = (credentials.credentials if credentials else request.cookies.get(ACCESS_COOKIE)) or ""
    token_str = token_str.strip()
    if not token_str:
        raise HTTPException(status_code=401, detail="Not authenticated")
    payload, _ = token_issuer.decode_access(token_str)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def require_owner_subscription(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Store:
    """The caller's own store, if its subscription passes the gate."""
    store = (
        db.query(Store)
        .options(joinedload(Store.subscription))
        .filter(Store.user_id == current_user.id)
        .first()
    )
    decision = check_subscription(store, public=False)
    if not decision.allowed:
        raise SubscriptionError(decision.message, code=decision.code.value, status_code=decision.status_code)
    return store


def require_public_store_subscription(store_name: str, db: Session = Depends(get_db)) -> Store:
    store = (
        db.query(Store)
        .options(joinedload(Store.subscription))
        .filter(Store.name == store_name)
        .first()
    )
    decision = check_subscription(store, public=True)
    if not decision.allowed:
        raise SubscriptionError(decision.message, code=decision.code.value, status_code=decision.status_code)
    return store
