"""Users, roles and the user-role association."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storefront.database import Base


class RoleName(str, enum.Enum):
    admin = "admin"
    employee = "employee"


@dataclass(frozen=True)
class EmailIdentity:
    email: str

    claim_key = "email"

    @property
    def value(self) -> str:
        return self.email


@dataclass(frozen=True)
class PhoneIdentity:
    phone_number: str

    claim_key = "phone_number"

    @property
    def value(self) -> str:
        return self.phone_number


Identity = Union[EmailIdentity, PhoneIdentity]


class User(Base):
    __tablename__ = "users"
    # Exactly one identity channel per account
    __table_args__ = (
        CheckConstraint(
            "(email IS NULL) <> (phone_number IS NULL)",
            name="ck_users_single_identity",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=True)
    phone_number = Column(String(32), unique=True, index=True, nullable=True)
    hashed_password = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    roles = relationship("UserRole", back_populates="user", cascade="all, delete-orphan")
    store = relationship("Store", back_populates="owner", uselist=False)

    @classmethod
    def from_identity(cls, identity: Identity, **kwargs) -> "User":
        if isinstance(identity, EmailIdentity):
            return cls(email=identity.email, **kwargs)
        return cls(phone_number=identity.phone_number, **kwargs)

    @property
    def identity(self) -> Identity:
        if self.email:
            return EmailIdentity(self.email)
        return PhoneIdentity(self.phone_number)


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), unique=True, nullable=False)


class UserRole(Base):
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)
    onboarded = Column(Boolean, default=False, nullable=False)

    user = relationship("User", back_populates="roles")
    role = relationship("Role")
