"""
Create a test store owner (no email verification required) with a store on a fresh trial.
Use when email/SMS delivery is not configured so you can log in and test the app.

Run from project root:
  python scripts/create_test_users.py

Credentials are printed at the end. Log in with POST /auth/login.
"""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from storefront.config import get_settings
from storefront.database import Base, SessionLocal, engine
from storefront.models.user import User
from storefront.seed import load_role_directory, seed_roles
from storefront.services.auth import get_password_hash
from storefront.services.onboarding import OnboardingOrchestrator, OnboardingRequest
from storefront.services.tokens import TokenIssuer

# Default credentials (change if you want)
OWNER_EMAIL = "owner@storefront.demo"
OWNER_PASSWORD = "Password123!"
OWNER_NAME = "Test Owner"
STORE_NAME = "demo-store"


def main():
    settings = get_settings()
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_roles(db)
        roles = load_role_directory(db)

        owner = db.query(User).filter(User.email == OWNER_EMAIL).first()
        if owner:
            print(f"Owner already exists: {OWNER_EMAIL}")
        else:
            owner = User(
                email=OWNER_EMAIL,
                hashed_password=get_password_hash(OWNER_PASSWORD),
                name=OWNER_NAME,
            )
            db.add(owner)
            db.commit()
            db.refresh(owner)
            print(f"Created owner: {OWNER_EMAIL}")

        if owner.store is None:
            orchestrator = OnboardingOrchestrator(
                db,
                TokenIssuer.from_settings(settings),
                roles,
                store_base_url=settings.store_base_url,
            )
            orchestrator.onboard(
                OnboardingRequest(
                    user_id=owner.id,
                    role_ids=[roles.admin_id],
                    store_name=STORE_NAME,
                    store_type="retail",
                )
            )
            print(f"Onboarded owner with store: {STORE_NAME}")
        else:
            print(f"Owner already has store: {owner.store.name}")
    finally:
        db.close()

    print()
    print("--- Test credentials ---")
    print(f"  Email:    {OWNER_EMAIL}")
    print(f"  Password: {OWNER_PASSWORD}")
    print(f"  Store:    {STORE_NAME}")


if __name__ == "__main__":
    main()
