"""Email/SMS code verification: pending registration -> confirmed user + tokens.

A user row is only created once the code is confirmed. Confirmation also logs
the new user in (roles empty, not onboarded) so the client can go straight to
onboarding with the access token.
"""
from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.exceptions import AlreadyExistsError, DeliveryError, InvalidOrExpiredError
from storefront.models.user import EmailIdentity, Identity, PhoneIdentity, User
from storefront.services.auth import find_user_by_identity, get_password_hash
from storefront.services.notifications import DeliveryChannel, verification_message
from storefront.services.otp_store import OTPStore, PendingRegistration, generate_code
from storefront.services.tokens import TokenClaims, TokenIssuer, TokenPair

logger = logging.getLogger(__name__)


def _otp_key(identity: Identity) -> str:
    # Email and phone live in one store; prefix so the namespaces never collide
    return f"{identity.claim_key}:{identity.value}"


class IdentityVerificationService:
    def __init__(
        self,
        db: Session,
        otp_store: OTPStore[PendingRegistration],
        token_issuer: TokenIssuer,
        email_channel: DeliveryChannel,
        sms_channel: DeliveryChannel,
        otp_ttl: timedelta = timedelta(minutes=5),
        otp_digits: int = 6,
        app_name: str = "Storefront",
        randbelow: Callable[[int], int] = secrets.randbelow,
    ):
        self.db = db
        self.otp_store = otp_store
        self.token_issuer = token_issuer
        self.channels = {EmailIdentity: email_channel, PhoneIdentity: sms_channel}
        self.otp_ttl = otp_ttl
        self.otp_digits = otp_digits
        self.app_name = app_name
        self.randbelow = randbelow

    def request_email_code(self, email: str, name: str, password: str) -> None:
        self._request_code(EmailIdentity(email), name, password)

    def confirm_email_code(self, email: str, code: str) -> TokenPair:
        return self._confirm_code(EmailIdentity(email), code)

    def request_sms_code(self, phone_number: str, name: str, password: str) -> None:
        self._request_code(PhoneIdentity(phone_number), name, password)

    def confirm_sms_code(self, phone_number: str, code: str) -> TokenPair:
        return self._confirm_code(PhoneIdentity(phone_number), code)

    def _request_code(self, identity: Identity, name: str, password: str) -> None:
        if find_user_by_identity(self.db, identity):
            raise AlreadyExistsError("User already exist")

        code = generate_code(self.otp_digits, self.randbelow)
        pending = PendingRegistration(
            identifier=identity.value,
            name=name,
            hashed_password=get_password_hash(password),
        )
        self.otp_store.save(_otp_key(identity), pending, code, self.otp_ttl)

        ttl_minutes = int(self.otp_ttl.total_seconds() // 60)
        message = verification_message(name, code, ttl_minutes, self.app_name)
        sent = self.channels[type(identity)].send(identity.value, message)
        logger.info("[Verification] Code sent=%s via %s to %s", sent, identity.claim_key, identity.value)
        if not sent:
            # The code stays valid for its TTL so the user can retry delivery
            raise DeliveryError(f"We could not send the verification code to {identity.value}. Please try again.")

    def _confirm_code(self, identity: Identity, code: str) -> TokenPair:
        pending = self.otp_store.verify(_otp_key(identity), code)
        if pending is None:
            raise InvalidOrExpiredError()

        user = User.from_identity(identity, name=pending.name, hashed_password=pending.hashed_password)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise AlreadyExistsError("User already exist") from e
        self.db.refresh(user)
        logger.info("[Verification] Created user id=%s via %s", user.id, identity.claim_key)

        claims = TokenClaims(user_id=user.id, identity=user.identity)
        return self.token_issuer.issue(claims, onboarded=False)
