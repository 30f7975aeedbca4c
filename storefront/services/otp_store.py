"""In-memory store of unconfirmed registrations, keyed by email or phone number.

A record is single-use: a successful verify() deletes it. Expired records are
never returned; they are dropped lazily on lookup and by purge_expired(), which
the scheduler in storefront.main runs periodically.
"""
from __future__ import annotations

import hmac
import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_code(digits: int = 6, randbelow: Callable[[int], int] = secrets.randbelow) -> str:
    """Fixed-width numeric code. Leading zeros are kept."""
    return str(randbelow(10 ** digits)).zfill(digits)


@dataclass(frozen=True)
class PendingRegistration:
    """Payload kept until the code is confirmed. Never persisted."""

    identifier: str
    name: str
    hashed_password: str


@dataclass
class _Entry(Generic[T]):
    payload: T
    code: str
    created_at: datetime
    expires_at: datetime


class OTPStore(Generic[T]):
    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._entries: dict[str, _Entry[T]] = {}
        self._lock = threading.Lock()

    def save(self, identifier: str, payload: T, code: str, ttl: timedelta) -> None:
        """Store (or replace) the pending record for identifier and restart its TTL."""
        now = self._clock()
        with self._lock:
            self._entries[identifier] = _Entry(
                payload=payload,
                code=str(code),
                created_at=now,
                expires_at=now + ttl,
            )

    def verify(self, identifier: str, code: str) -> T | None:
        """Return the payload and delete the record on an exact code match; otherwise None."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(identifier)
            if entry is None:
                return None
            if now > entry.expires_at:
                del self._entries[identifier]
                logger.info("[OTP] Dropped expired code on lookup")
                return None
            if not hmac.compare_digest(entry.code.encode("utf-8"), str(code).encode("utf-8")):
                return None
            del self._entries[identifier]
            return entry.payload

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now > e.expires_at]
            for k in expired:
                del self._entries[k]
        if expired:
            logger.info("[OTP] Purged %d expired pending registration(s)", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
