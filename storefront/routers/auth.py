"""Password login, token refresh and logout."""
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from storefront.config import Settings, get_settings
from storefront.database import get_db
from storefront.dependencies import ACCESS_COOKIE, REFRESH_COOKIE, get_token_issuer
from storefront.models.user import EmailIdentity, PhoneIdentity
from storefront.schemas.auth import LoginRequest, LoginResponse, RefreshRequest, RefreshResponse, Tokens
from storefront.services.auth import authenticate, session_claims
from storefront.services.tokens import TokenIssuer

router = APIRouter(prefix="/auth", tags=["auth"])


def _cookie_options(settings: Settings) -> dict:
    opts = {
        "httponly": True,
        "secure": settings.cookie_secure,
        "samesite": "none" if settings.cookie_secure else "lax",
        "path": "/",
    }
    if settings.cookie_domain:
        opts["domain"] = settings.cookie_domain
    return opts


@router.post("/login", response_model=LoginResponse)
def login(
    data: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
):
    identity = EmailIdentity(data.email) if data.email else PhoneIdentity(data.phone_number)
    user = authenticate(db, identity, data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid user")
    claims = session_claims(db, user)
    pair = token_issuer.issue(claims)

    opts = _cookie_options(settings)
    max_age = settings.jwt_access_token_expire_minutes * 60
    response.set_cookie(ACCESS_COOKIE, pair.access_token, max_age=max_age, **opts)
    response.set_cookie(REFRESH_COOKIE, pair.refresh_token, max_age=settings.jwt_refresh_token_expire_days * 86400, **opts)
    return LoginResponse(
        tokens=Tokens(access_token=pair.access_token, refresh_token=pair.refresh_token),
        onboarded=claims.onboarded,
    )


@router.post("/refresh", response_model=RefreshResponse)
def refresh(data: RefreshRequest, token_issuer: TokenIssuer = Depends(get_token_issuer)):
    return RefreshResponse(access_token=token_issuer.refresh(data.refresh_token))


@router.get("/logout")
def logout(response: Response, settings: Settings = Depends(get_settings)):
    opts = _cookie_options(settings)
    opts.pop("httponly")
    response.delete_cookie(ACCESS_COOKIE, **opts)
    response.delete_cookie(REFRESH_COOKIE, **opts)
    return {"is_logged_out": True}
