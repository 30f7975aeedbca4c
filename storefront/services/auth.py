"""Password hashing, login and session claims."""
from __future__ import annotations

import bcrypt
from sqlalchemy.orm import Session

from storefront.models.user import EmailIdentity, Identity, User, UserRole
from storefront.services.tokens import TokenClaims


def _pwd_bytes(password: str, max_len: int = 72) -> bytes:
    return password.encode("utf-8")[:max_len]


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_pwd_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(_pwd_bytes(password), bcrypt.gensalt()).decode("utf-8")


def find_user_by_identity(db: Session, identity: Identity) -> User | None:
    if isinstance(identity, EmailIdentity):
        return db.query(User).filter(User.email == identity.email).first()
    return db.query(User).filter(User.phone_number == identity.phone_number).first()


def authenticate(db: Session, identity: Identity, password: str) -> User | None:
    user = find_user_by_identity(db, identity)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user


def session_claims(db: Session, user: User) -> TokenClaims:
    """Claims for a returning user: current roles and store, as left by the last onboarding."""
    links = db.query(UserRole).filter(UserRole.user_id == user.id).order_by(UserRole.id).all()
    return TokenClaims(
        user_id=user.id,
        identity=user.identity,
        onboarded=bool(links and links[0].onboarded),
        roles=[link.role_id for link in links],
        store_url=user.store.url if user.store else None,
    )
