"""Seed role reference data and resolve it into a RoleDirectory."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.orm import Session

from storefront.exceptions import ConfigurationError
from storefront.models.user import Role, RoleName

DEFAULT_ROLES = {
    1: RoleName.admin,
    2: RoleName.employee,
}


def seed_roles(db: Session) -> None:
    existing = {r.id for r in db.query(Role).all()}
    for role_id, name in DEFAULT_ROLES.items():
        if role_id not in existing:
            db.add(Role(id=role_id, name=name.value))
    db.commit()


@dataclass(frozen=True)
class RoleDirectory:
    """Role ids by name, read once from the seeded roles table."""

    ids: dict[RoleName, int]

    @property
    def admin_id(self) -> int:
        return self.ids[RoleName.admin]

    def includes_admin(self, role_ids: Iterable[int]) -> bool:
        return self.admin_id in set(role_ids)


def load_role_directory(db: Session) -> RoleDirectory:
    ids = {}
    for role in db.query(Role).all():
        try:
            ids[RoleName(role.name)] = role.id
        except ValueError:
            continue  # unknown role names are not addressable by name
    missing = [n.value for n in RoleName if n not in ids]
    if missing:
        raise ConfigurationError(f"Roles table is missing seeded roles: {', '.join(missing)}")
    return RoleDirectory(ids=ids)
