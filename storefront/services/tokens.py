"""Access/refresh JWT issuance."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt

from storefront.config import DEFAULT_JWT_REFRESH_SECRET_KEY, DEFAULT_JWT_SECRET_KEY, Settings
from storefront.exceptions import AuthenticationError, ConfigurationError
from storefront.models.user import EmailIdentity, Identity, PhoneIdentity

ACCESS = "access"
REFRESH = "refresh"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    identity: Identity
    onboarded: bool = False
    roles: list[int] = field(default_factory=list)
    store_url: str | None = None

    def to_payload(self) -> dict:
        # PyJWT expects "sub" to be a string
        payload = {
            "sub": str(self.user_id),
            "onboarded": self.onboarded,
            "roles": list(self.roles),
            "store_url": self.store_url,
        }
        payload[self.identity.claim_key] = self.identity.value
        return payload

    @classmethod
    def from_payload(cls, payload: dict) -> "TokenClaims":
        if payload.get("email"):
            identity: Identity = EmailIdentity(payload["email"])
        else:
            identity = PhoneIdentity(payload.get("phone_number") or "")
        return cls(
            user_id=int(payload["sub"]),
            identity=identity,
            onboarded=bool(payload.get("onboarded")),
            roles=list(payload.get("roles") or []),
            store_url=payload.get("store_url"),
        )


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenIssuer:
    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(hours=1),
        refresh_ttl: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not access_secret or not refresh_secret:
            raise ConfigurationError("JWT signing secrets are not configured (JWT_SECRET_KEY, JWT_REFRESH_SECRET_KEY).")
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret}
        self._ttls = {ACCESS: access_ttl, REFRESH: refresh_ttl}
        self._algorithm = algorithm
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        if settings.is_production and (
            settings.jwt_secret_key == DEFAULT_JWT_SECRET_KEY
            or settings.jwt_refresh_secret_key == DEFAULT_JWT_REFRESH_SECRET_KEY
        ):
            raise ConfigurationError(
                "JWT signing secrets still use the development defaults; set JWT_SECRET_KEY and JWT_REFRESH_SECRET_KEY."
            )
        return cls(
            access_secret=settings.jwt_secret_key,
            refresh_secret=settings.jwt_refresh_secret_key,
            algorithm=settings.jwt_algorithm,
            access_ttl=timedelta(minutes=settings.jwt_access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.jwt_refresh_token_expire_days),
        )

    def _sign(self, claims: TokenClaims, kind: str) -> str:
        now = self._clock()
        payload = claims.to_payload()
        payload.update({"type": kind, "iat": now, "exp": now + self._ttls[kind]})
        raw = jwt.encode(payload, self._secrets[kind], algorithm=self._algorithm)
        return raw if isinstance(raw, str) else raw.decode("utf-8")

    def issue(self, claims: TokenClaims, onboarded: bool | None = None) -> TokenPair:
        if onboarded is not None:
            claims = replace(claims, onboarded=onboarded)
        return TokenPair(
            access_token=self._sign(claims, ACCESS),
            refresh_token=self._sign(claims, REFRESH),
        )

    def _decode(self, token: str, kind: str) -> tuple[dict | None, str | None]:
        if not token or not isinstance(token, str):
            return None, "empty token"
        try:
            payload = jwt.decode(token.strip(), self._secrets[kind], algorithms=[self._algorithm])
        except jwt.PyJWTError as e:
            return None, str(e)
        if payload.get("type") != kind:
            return None, f"not an {kind} token" if kind == ACCESS else f"not a {kind} token"
        return payload, None

    def decode_access(self, token: str) -> tuple[dict | None, str | None]:
        """Decode an access JWT; returns (payload, error_message)."""
        return self._decode(token, ACCESS)

    def decode_refresh(self, token: str) -> tuple[dict | None, str | None]:
        return self._decode(token, REFRESH)

    def refresh(self, refresh_token: str) -> str:
        """New access token carrying the refresh token's claims."""
        payload, err = self.decode_refresh(refresh_token)
        if not payload:
            raise AuthenticationError(f"Invalid refresh token: {err}")
        return self._sign(TokenClaims.from_payload(payload), ACCESS)
