"""
All SQLAlchemy models. Schema is the source of truth for new DBs.
Base.metadata.create_all() creates every table; no migration scripts needed for fresh installs.
"""
from storefront.models.user import User, Role, UserRole, RoleName
from storefront.models.store import Store
from storefront.models.subscription import Subscription, SubscriptionStatus

__all__ = [
    "User",
    "Role",
    "UserRole",
    "RoleName",
    "Store",
    "Subscription",
    "SubscriptionStatus",
]
