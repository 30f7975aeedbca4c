"""
Delete the user with the given email or phone number, with their roles, store and subscription.
Usage: python scripts/delete_users_by_email.py <email-or-phone>
"""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from sqlalchemy import func

from storefront.database import SessionLocal
from storefront.models.store import Store
from storefront.models.user import User, UserRole


def main():
    identifier = (sys.argv[1] if len(sys.argv) > 1 else "").strip()
    if not identifier:
        print("Usage: python scripts/delete_users_by_email.py <email-or-phone>")
        sys.exit(1)

    db = SessionLocal()
    try:
        if "@" in identifier:
            user = db.query(User).filter(func.lower(User.email) == identifier.lower()).first()
        else:
            user = db.query(User).filter(User.phone_number == identifier).first()
        if not user:
            print(f"No user found for: {identifier}")
            sys.exit(0)

        uid = user.id
        db.query(UserRole).filter(UserRole.user_id == uid).delete(synchronize_session=False)
        # Subscription goes with the store (delete-orphan)
        for store in db.query(Store).filter(Store.user_id == uid).all():
            db.delete(store)
        db.flush()
        db.delete(user)
        db.commit()
        print(f"Deleted user {uid} ({identifier}) and their store")
    except Exception as e:
        db.rollback()
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
