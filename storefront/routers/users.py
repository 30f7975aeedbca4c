"""Identity verification (email/SMS codes) and onboarding."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.dependencies import get_current_user, get_onboarding_orchestrator, get_verification_service
from storefront.models.user import User
from storefront.schemas.auth import (
    AccessResponse,
    CodeSentResponse,
    EmailCodeConfirm,
    EmailCodeRequest,
    OnboardRequest,
    OnboardResponse,
    SmsCodeConfirm,
    SmsCodeRequest,
    Tokens,
    VerifiedResponse,
)
from storefront.services.auth import session_claims
from storefront.services.onboarding import OnboardingOrchestrator, OnboardingRequest
from storefront.services.tokens import TokenPair
from storefront.services.verification import IdentityVerificationService

router = APIRouter(prefix="/users", tags=["users"])


def _tokens(pair: TokenPair) -> Tokens:
    return Tokens(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post("/mail/send", response_model=CodeSentResponse)
def send_email_code(
    data: EmailCodeRequest,
    service: IdentityVerificationService = Depends(get_verification_service),
):
    service.request_email_code(data.email, data.name, data.password)
    return CodeSentResponse(message="Otp sent successfully, please check your email")


@router.post("/mail/verify", response_model=VerifiedResponse)
def verify_email_code(
    data: EmailCodeConfirm,
    service: IdentityVerificationService = Depends(get_verification_service),
):
    pair = service.confirm_email_code(data.email, data.code)
    return VerifiedResponse(message="Email verified successfully", tokens=_tokens(pair))


@router.post("/sms/send", response_model=CodeSentResponse)
def send_sms_code(
    data: SmsCodeRequest,
    service: IdentityVerificationService = Depends(get_verification_service),
):
    service.request_sms_code(data.phone_number, data.name, data.password)
    return CodeSentResponse(message="Otp sent successfully, please check your messages")


@router.post("/sms/verify", response_model=VerifiedResponse)
def verify_sms_code(
    data: SmsCodeConfirm,
    service: IdentityVerificationService = Depends(get_verification_service),
):
    pair = service.confirm_sms_code(data.phone_number, data.code)
    return VerifiedResponse(message="Otp verified", tokens=_tokens(pair))


@router.post("/assign-role", response_model=OnboardResponse, status_code=201)
def assign_role(
    data: OnboardRequest,
    current_user: User = Depends(get_current_user),
    orchestrator: OnboardingOrchestrator = Depends(get_onboarding_orchestrator),
):
    """Onboard the caller: replace their roles and store, start a 7-day trial."""
    result = orchestrator.onboard(
        OnboardingRequest(
            user_id=current_user.id,
            role_ids=data.roles,
            store_name=data.store_name,
            store_address=data.store_address,
            store_type=data.store_type,
            store_url=data.store_url,
        )
    )
    return OnboardResponse(tokens=_tokens(result.tokens), onboarded=result.onboarded)


@router.get("/me/access", response_model=AccessResponse)
def onboarded_access(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    claims = session_claims(db, current_user)
    return AccessResponse(
        name=current_user.name,
        email=current_user.email,
        phone_number=current_user.phone_number,
        onboarded=claims.onboarded,
        role=claims.roles[0] if claims.roles else None,
    )
