"""Tests for the onboarding transaction."""
from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch

import pytest

from storefront.exceptions import ConflictError, OnboardingError, ValidationError
from storefront.models.store import Store
from storefront.models.subscription import Subscription, SubscriptionStatus
from storefront.models.user import UserRole
from storefront.services.onboarding import OnboardingOrchestrator, OnboardingRequest

ADMIN, EMPLOYEE = 1, 2


@pytest.fixture
def orchestrator(db, token_issuer, roles, clock):
    return OnboardingOrchestrator(db, token_issuer, roles, store_base_url="http://localhost:3000/store/", clock=clock)


def _request(user_id, roles, name="acme", **kwargs):
    return OnboardingRequest(user_id=user_id, role_ids=roles, store_name=name, store_type="retail", **kwargs)


def _role_ids(db, user_id):
    return sorted(r.role_id for r in db.query(UserRole).filter(UserRole.user_id == user_id))


def _stores(db, user_id):
    return db.query(Store).filter(Store.user_id == user_id).all()


class TestHappyPath:
    def test_admin_onboarding_provisions_everything(self, db, orchestrator, make_user, token_issuer) -> None:
        user = make_user(email="owner@example.com", user_id=42)
        result = orchestrator.onboard(_request(42, [ADMIN], store_address="1 Main St"))

        assert result.onboarded is True
        assert _role_ids(db, 42) == [ADMIN]
        assert all(r.onboarded for r in db.query(UserRole).filter(UserRole.user_id == 42))
        [store] = _stores(db, 42)
        assert store.name == "acme"
        assert store.address == "1 Main St"
        assert store.url == f"http://localhost:3000/store/{store.id}"

        payload, _ = token_issuer.decode_access(result.tokens.access_token)
        assert payload["sub"] == str(user.id)
        assert payload["onboarded"] is True
        assert payload["roles"] == [ADMIN]
        assert payload["store_url"] == store.url
        assert payload["email"] == "owner@example.com"

    def test_trial_window(self, db, orchestrator, make_user, clock) -> None:
        make_user(email="owner@example.com", user_id=42)
        orchestrator.onboard(_request(42, [ADMIN]))
        [store] = _stores(db, 42)
        sub = store.subscription
        assert sub.status == SubscriptionStatus.trialing
        assert sub.trial_ends_at == sub.end_date == sub.start_date + timedelta(days=7)
        assert sub.start_date.replace(tzinfo=None) == clock.now.replace(tzinfo=None)
        assert sub.is_auto_renew is False
        assert sub.plan_id is None

    def test_explicit_store_url_is_kept(self, db, orchestrator, make_user) -> None:
        make_user(email="owner@example.com", user_id=42)
        orchestrator.onboard(_request(42, [ADMIN], store_url="https://acme.example.com"))
        assert _stores(db, 42)[0].url == "https://acme.example.com"

    def test_phone_identity_in_claims(self, orchestrator, make_user, token_issuer) -> None:
        make_user(phone_number="+8801700000000", user_id=7)
        result = orchestrator.onboard(_request(7, [ADMIN]))
        payload, _ = token_issuer.decode_access(result.tokens.access_token)
        assert payload["phone_number"] == "+8801700000000"
        assert "email" not in payload

    def test_employee_only_is_not_onboarded(self, db, orchestrator, make_user) -> None:
        make_user(email="e@example.com", user_id=5)
        result = orchestrator.onboard(_request(5, [EMPLOYEE]))
        assert result.onboarded is False
        assert not any(r.onboarded for r in db.query(UserRole).filter(UserRole.user_id == 5))

    def test_admin_and_employee_are_all_onboarded(self, db, orchestrator, make_user) -> None:
        make_user(email="e@example.com", user_id=5)
        result = orchestrator.onboard(_request(5, [ADMIN, EMPLOYEE]))
        assert result.onboarded is True
        assert _role_ids(db, 5) == [ADMIN, EMPLOYEE]


class TestReplacement:
    def test_second_onboarding_replaces_roles_and_store(self, db, orchestrator, make_user) -> None:
        make_user(email="owner@example.com", user_id=42)
        first = orchestrator.onboard(_request(42, [ADMIN], name="acme"))
        second = orchestrator.onboard(_request(42, [EMPLOYEE], name="globex"))

        assert first.onboarded is True
        assert second.onboarded is False
        db.expire_all()
        assert _role_ids(db, 42) == [EMPLOYEE]
        stores = _stores(db, 42)
        assert [s.name for s in stores] == ["globex"]
        assert db.query(Store).filter(Store.name == "acme").first() is None
        assert db.query(Subscription).count() == 1


class TestFailures:
    def test_unknown_role_leaves_prior_state_untouched(self, db, orchestrator, make_user) -> None:
        make_user(email="owner@example.com", user_id=42)
        orchestrator.onboard(_request(42, [ADMIN], name="acme"))

        with pytest.raises(ValidationError, match="Some roles are invalid"):
            orchestrator.onboard(_request(42, [ADMIN, 99], name="globex"))

        db.expire_all()
        assert _role_ids(db, 42) == [ADMIN]
        assert [s.name for s in _stores(db, 42)] == ["acme"]
        assert db.query(Store).filter(Store.name == "globex").first() is None

    def test_unknown_role_for_new_user_creates_nothing(self, db, orchestrator, make_user) -> None:
        make_user(email="new@example.com", user_id=3)
        with pytest.raises(ValidationError):
            orchestrator.onboard(_request(3, [99]))
        assert _stores(db, 3) == []
        assert db.query(Subscription).count() == 0
        assert _role_ids(db, 3) == []

    def test_unknown_user(self, orchestrator) -> None:
        with pytest.raises(ValidationError, match="User is invalid"):
            orchestrator.onboard(_request(1234, [ADMIN]))

    def test_empty_roles(self, orchestrator, make_user) -> None:
        make_user(email="new@example.com", user_id=3)
        with pytest.raises(ValidationError):
            orchestrator.onboard(_request(3, []))

    def test_taken_store_name(self, db, orchestrator, make_user) -> None:
        make_user(email="a@example.com", user_id=1)
        make_user(email="b@example.com", user_id=2)
        orchestrator.onboard(_request(1, [ADMIN], name="acme"))
        with pytest.raises(ConflictError):
            orchestrator.onboard(_request(2, [ADMIN], name="acme"))
        assert _stores(db, 2) == []
        assert _role_ids(db, 2) == []

    def test_unexpected_failure_rolls_back_and_wraps(self, db, orchestrator, make_user) -> None:
        make_user(email="owner@example.com", user_id=42)
        orchestrator.onboard(_request(42, [ADMIN], name="acme"))

        with patch.object(OnboardingOrchestrator, "_create_store_and_trial", side_effect=RuntimeError("disk full")):
            with pytest.raises(OnboardingError, match="disk full"):
                orchestrator.onboard(_request(42, [EMPLOYEE], name="globex"))

        db.expire_all()
        assert _role_ids(db, 42) == [ADMIN]
        assert [s.name for s in _stores(db, 42)] == ["acme"]
        assert db.query(Subscription).count() == 1

    def test_duplicate_store_url_is_a_conflict(self, db, orchestrator, make_user) -> None:
        make_user(email="a@example.com", user_id=1)
        make_user(email="b@example.com", user_id=2)
        orchestrator.onboard(_request(1, [ADMIN], name="acme", store_url="https://shop.example.com"))
        with pytest.raises(ConflictError):
            orchestrator.onboard(_request(2, [ADMIN], name="globex", store_url="https://shop.example.com"))
        db.expire_all()
        assert _role_ids(db, 2) == []

    def test_duplicate_store_url_message_is_plain(self, orchestrator, make_user) -> None:
        make_user(email="a@example.com", user_id=1)
        make_user(email="b@example.com", user_id=2)
        orchestrator.onboard(_request(1, [ADMIN], name="acme", store_url="https://shop.example.com"))
        with pytest.raises(ConflictError, match="This store url already exist"):
            orchestrator.onboard(_request(2, [ADMIN], name="globex", store_url="https://shop.example.com"))

    def test_owner_can_keep_their_own_store_url(self, db, orchestrator, make_user) -> None:
        make_user(email="a@example.com", user_id=1)
        orchestrator.onboard(_request(1, [ADMIN], name="acme", store_url="https://shop.example.com"))
        orchestrator.onboard(_request(1, [ADMIN], name="globex", store_url="https://shop.example.com"))
        db.expire_all()
        [store] = _stores(db, 1)
        assert (store.name, store.url) == ("globex", "https://shop.example.com")

    @pytest.mark.parametrize("url", ["http://localhost:3000/store/2", "http://localhost:3000/store/2/"])
    def test_generated_url_space_is_reserved(self, db, orchestrator, make_user, url) -> None:
        make_user(email="a@example.com", user_id=1)
        make_user(email="b@example.com", user_id=2)
        with pytest.raises(ValidationError, match="must not start with"):
            orchestrator.onboard(_request(1, [ADMIN], name="acme", store_url=url))
        assert _stores(db, 1) == []

        # the address a store id would generate stays free for that store
        orchestrator.onboard(_request(1, [ADMIN], name="acme"))
        result = orchestrator.onboard(_request(2, [ADMIN], name="globex"))
        assert result.onboarded is True
        assert len({s.url for s in db.query(Store).all()}) == 2
