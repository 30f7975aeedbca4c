"""Subscription validity gate for store-scoped routes.

Everything here is pure: no queries, no writes, no exceptions. Callers load the
store (with its subscription) and turn a failed GateDecision into an HTTP
response.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone

from storefront.models.subscription import SubscriptionStatus


class GateCode(str, enum.Enum):
    STORE_NOT_FOUND = "STORE_NOT_FOUND"
    SUBSCRIPTION_REQUIRED = "SUBSCRIPTION_REQUIRED"
    TRIAL_EXPIRED = "TRIAL_EXPIRED"
    SUBSCRIPTION_EXPIRED = "SUBSCRIPTION_EXPIRED"


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    status_code: int = 200
    message: str | None = None
    code: GateCode | None = None


ALLOWED = GateDecision(allowed=True)


def _as_utc(value) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _status(subscription) -> str | None:
    status = getattr(subscription, "status", None)
    return getattr(status, "value", status)


def is_valid(subscription, now: datetime) -> bool:
    """trialing: now < trial_ends_at. active: now < end_date. Anything else is invalid."""
    if subscription is None:
        return False
    now = _as_utc(now)
    if now is None:
        return False
    status = _status(subscription)
    if status == SubscriptionStatus.trialing.value:
        deadline = _as_utc(getattr(subscription, "trial_ends_at", None))
    elif status == SubscriptionStatus.active.value:
        deadline = _as_utc(getattr(subscription, "end_date", None))
    else:
        return False
    return deadline is not None and now < deadline


def check_subscription(store, now: datetime | None = None, public: bool = False) -> GateDecision:
    """Gate a store-scoped request.

    Owner routes (public=False) get actionable messages; public storefront routes
    get neutral ones and a 404 for an unknown store.
    """
    if store is None:
        return GateDecision(
            allowed=False,
            status_code=404 if public else 403,
            message="Store not found" if public else "No store found",
            code=GateCode.STORE_NOT_FOUND,
        )

    subscription = getattr(store, "subscription", None)
    if subscription is None:
        return GateDecision(
            allowed=False,
            status_code=403,
            message="Store subscription not found." if public else "No subscription found. Please subscribe to continue.",
            code=GateCode.SUBSCRIPTION_REQUIRED,
        )

    if is_valid(subscription, now or datetime.now(timezone.utc)):
        return ALLOWED

    trialing = _status(subscription) == SubscriptionStatus.trialing.value
    if public:
        message = "Store is temporarily unavailable."
    elif trialing:
        message = "Free trial expired. Please subscribe to continue."
    else:
        message = "Subscription expired. Please renew to continue."
    return GateDecision(
        allowed=False,
        status_code=403,
        message=message,
        code=GateCode.TRIAL_EXPIRED if trialing else GateCode.SUBSCRIPTION_EXPIRED,
    )
