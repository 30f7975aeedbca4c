"""Onboarding: bind a verified user to a role set and a new store with a trial subscription.

Everything between the store-name check and the commit runs in the request's
session transaction. A failure anywhere rolls back all of it: the user's
previous roles and store survive a failed attempt untouched.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.exceptions import ConflictError, OnboardingError, StorefrontError, ValidationError
from storefront.models.store import Store
from storefront.models.subscription import Subscription, SubscriptionStatus
from storefront.models.user import Role, User, UserRole
from storefront.seed import RoleDirectory
from storefront.services.tokens import TokenClaims, TokenIssuer, TokenPair

logger = logging.getLogger(__name__)

TRIAL_PERIOD = timedelta(days=7)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OnboardingRequest:
    user_id: int
    role_ids: Sequence[int]
    store_name: str
    store_type: str
    store_address: str | None = None
    store_url: str | None = None


@dataclass(frozen=True)
class OnboardingResult:
    tokens: TokenPair
    onboarded: bool


class OnboardingOrchestrator:
    def __init__(
        self,
        db: Session,
        token_issuer: TokenIssuer,
        roles: RoleDirectory,
        store_base_url: str,
        trial_period: timedelta = TRIAL_PERIOD,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.token_issuer = token_issuer
        self.roles = roles
        self.store_base_url = store_base_url.rstrip("/")
        self.trial_period = trial_period
        self.clock = clock

    def onboard(self, request: OnboardingRequest) -> OnboardingResult:
        role_ids = list(request.role_ids)
        onboarded = self.roles.includes_admin(role_ids)
        try:
            self._ensure_store_name_free(request.store_name)
            self._ensure_store_url_usable(request.store_url, request.user_id)
            user = self._validate_user_and_roles(request.user_id, role_ids)
            self._clear_previous(user)
            self._assign_roles(user, role_ids, onboarded)
            store = self._create_store_and_trial(user, request)
            self.db.commit()
        except StorefrontError:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("[Onboarding] Constraint violation for user_id=%s: %s", request.user_id, e.orig)
            raise ConflictError(str(e.orig)) from e
        except Exception as e:
            self.db.rollback()
            logger.exception("[Onboarding] Failed for user_id=%s", request.user_id)
            raise OnboardingError(str(e)) from e

        logger.info(
            "[Onboarding] user_id=%s roles=%s store_id=%s onboarded=%s",
            user.id, role_ids, store.id, onboarded,
        )
        claims = TokenClaims(
            user_id=user.id,
            identity=user.identity,
            roles=role_ids,
            store_url=store.url,
        )
        return OnboardingResult(tokens=self.token_issuer.issue(claims, onboarded), onboarded=onboarded)

    def _ensure_store_name_free(self, store_name: str) -> None:
        if self.db.query(Store.id).filter(Store.name == store_name).first():
            raise ConflictError("This (business/store) name already exist")

    def _ensure_store_url_usable(self, store_url: str | None, user_id: int) -> None:
        if not store_url:
            return
        # <store_base_url>/<id> addresses are generated from store ids only
        if store_url.rstrip("/").startswith(f"{self.store_base_url}/"):
            raise ValidationError(f"Store url must not start with {self.store_base_url}/")
        taken = (
            self.db.query(Store.id)
            .filter(Store.url == store_url, Store.user_id != user_id)
            .first()
        )
        if taken:
            raise ConflictError("This store url already exist")

    def _validate_user_and_roles(self, user_id: int, role_ids: list[int]) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise ValidationError("User is invalid")
        if not role_ids:
            raise ValidationError("At least one role is required")
        valid_roles = self.db.query(Role).filter(Role.id.in_(role_ids)).all()
        if len(valid_roles) != len(role_ids):
            raise ValidationError("Some roles are invalid")
        return user

    def _clear_previous(self, user: User) -> None:
        self.db.query(UserRole).filter(UserRole.user_id == user.id).delete(synchronize_session="fetch")
        for store in self.db.query(Store).filter(Store.user_id == user.id).all():
            self.db.delete(store)  # cascades to its subscription
        # Deletes must hit the database before the new rows reuse the unique keys
        self.db.flush()
        self.db.expire(user)

    def _assign_roles(self, user: User, role_ids: list[int], onboarded: bool) -> None:
        self.db.add_all(UserRole(user_id=user.id, role_id=role_id, onboarded=onboarded) for role_id in role_ids)

    def _create_store_and_trial(self, user: User, request: OnboardingRequest) -> Store:
        store = Store(
            user_id=user.id,
            name=request.store_name,
            address=request.store_address,
            store_type=request.store_type,
            url=request.store_url or None,
        )
        self.db.add(store)
        self.db.flush()
        if not store.url:
            store.url = f"{self.store_base_url}/{store.id}"

        now = self.clock()
        trial_ends = now + self.trial_period
        self.db.add(
            Subscription(
                store_id=store.id,
                status=SubscriptionStatus.trialing,
                start_date=now,
                trial_ends_at=trial_ends,
                end_date=trial_ends,
                is_auto_renew=False,
                plan_id=None,
            )
        )
        self.db.flush()
        return store
