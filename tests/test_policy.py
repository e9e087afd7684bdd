"""
Blog API — Ownership & Role Policy Tests
==========================================

Pure unit tests: no database, no HTTP.
"""

import uuid

import pytest

from blogapi.exceptions import AuthenticationError, ForbiddenError
from blogapi.security.policy import Capability, authorize, enforce
from blogapi.security.principal import Principal


class TestAuthorize:

    def setup_method(self):
        self.owner_id = uuid.uuid4()
        self.owner = Principal(user_id=self.owner_id, email="owner@example.com")
        self.stranger = Principal(user_id=uuid.uuid4(), email="stranger@example.com")
        self.admin = Principal(user_id=uuid.uuid4(), email="admin@example.com", is_admin=True)

    def test_owner_only_allows_owner(self):
        decision = authorize(self.owner, Capability.OWNER_ONLY, self.owner_id)
        assert decision.allowed
        assert decision.reason is None

    def test_owner_only_denies_other_user(self):
        decision = authorize(self.stranger, Capability.OWNER_ONLY, self.owner_id)
        assert not decision.allowed
        assert decision.reason == "forbidden"

    def test_owner_only_is_not_granted_to_admins(self):
        """Capabilities are never OR-combined: admin is not an implicit owner."""
        assert not authorize(self.admin, Capability.OWNER_ONLY, self.owner_id).allowed

    def test_owner_only_denies_resource_without_owner(self):
        assert not authorize(self.owner, Capability.OWNER_ONLY, None).allowed

    def test_admin_only_allows_admin(self):
        assert authorize(self.admin, Capability.ADMIN_ONLY).allowed

    def test_admin_only_is_not_granted_to_owners(self):
        decision = authorize(self.owner, Capability.ADMIN_ONLY, self.owner_id)
        assert not decision.allowed
        assert decision.reason == "forbidden"

    def test_anonymous_is_unauthenticated(self):
        decision = authorize(None, Capability.ADMIN_ONLY)
        assert not decision.allowed
        assert decision.reason == "unauthenticated"


class TestEnforce:

    def setup_method(self):
        self.owner_id = uuid.uuid4()

    def test_returns_none_when_allowed(self):
        principal = Principal(user_id=self.owner_id, email="a@example.com")
        assert enforce(principal, Capability.OWNER_ONLY, self.owner_id) is None

    def test_owner_denial_names_the_action(self):
        principal = Principal(user_id=uuid.uuid4(), email="b@example.com")
        with pytest.raises(ForbiddenError, match="Only the author can delete this comment"):
            enforce(
                principal,
                Capability.OWNER_ONLY,
                self.owner_id,
                action="delete",
                resource="comment",
            )

    def test_admin_denial_message(self):
        principal = Principal(user_id=uuid.uuid4(), email="b@example.com")
        with pytest.raises(ForbiddenError, match="Admins only"):
            enforce(principal, Capability.ADMIN_ONLY)

    def test_anonymous_raises_missing(self):
        with pytest.raises(AuthenticationError) as exc_info:
            enforce(None, Capability.OWNER_ONLY, self.owner_id)
        assert exc_info.value.reason == "missing"
        assert exc_info.value.status_code == 401
