"""
Blog API — Token & Password Tests
===================================

What:  TokenService issue/decode failure reasons, principal resolution and
       PasswordService behaviour.
"""

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import jwt
import pytest

from blogapi.exceptions import AuthenticationError
from blogapi.security.passwords import PasswordService
from blogapi.security.principal import TokenService, resolve_principal

from tests.conftest import TEST_JWT_SECRET


def _user(**overrides):
    values = {"id": uuid.uuid4(), "email": "alice@example.com", "is_admin": False}
    values.update(overrides)
    return SimpleNamespace(**values)


class TestTokenService:

    def setup_method(self):
        self.tokens = TokenService(secret=TEST_JWT_SECRET, lifetime_seconds=3600)

    def test_issue_then_decode_carries_claims(self):
        user = _user(is_admin=True)
        claims = self.tokens.decode(self.tokens.issue(user))
        assert claims["sub"] == str(user.id)
        assert claims["email"] == "alice@example.com"
        assert claims["is_admin"] is True
        assert claims["exp"] - claims["iat"] == 3600

    def test_expired_token(self):
        issued = datetime.now(timezone.utc) - timedelta(hours=2)
        token = self.tokens.issue(_user(), now=issued)
        with pytest.raises(AuthenticationError) as exc_info:
            self.tokens.decode(token)
        assert exc_info.value.reason == "expired"
        assert exc_info.value.message == "Token expired. Please log in again."

    def test_wrong_signature_is_invalid(self):
        other = TokenService(secret="another-secret-that-is-also-long-enough")
        with pytest.raises(AuthenticationError) as exc_info:
            self.tokens.decode(other.issue(_user()))
        assert exc_info.value.reason == "invalid"
        assert exc_info.value.message == "Invalid token. Please log in."

    def test_garbage_is_invalid(self):
        with pytest.raises(AuthenticationError) as exc_info:
            self.tokens.decode("not-a-jwt")
        assert exc_info.value.reason == "invalid"

    def test_token_without_subject_is_invalid(self):
        token = jwt.encode(
            {"exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            TEST_JWT_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(AuthenticationError) as exc_info:
            self.tokens.decode(token)
        assert exc_info.value.reason == "invalid"


class TestResolvePrincipal:

    def setup_method(self):
        self.tokens = TokenService(secret=TEST_JWT_SECRET)

    @pytest.mark.asyncio
    async def test_role_flags_come_from_stored_user(self, mock_db_session):
        """A token minted while admin stops granting admin once the row changes."""
        user = _user(is_admin=True)
        token = self.tokens.issue(user)
        mock_db_session.get.return_value = _user(id=user.id, is_admin=False)

        principal = await resolve_principal(token, mock_db_session, self.tokens)

        assert principal.user_id == user.id
        assert principal.is_admin is False

    @pytest.mark.asyncio
    async def test_deleted_user_is_invalid(self, mock_db_session):
        token = self.tokens.issue(_user())
        mock_db_session.get.return_value = None
        with pytest.raises(AuthenticationError) as exc_info:
            await resolve_principal(token, mock_db_session, self.tokens)
        assert exc_info.value.reason == "invalid"

    @pytest.mark.asyncio
    async def test_non_uuid_subject_is_invalid(self, mock_db_session):
        token = jwt.encode(
            {"sub": "42", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            TEST_JWT_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(AuthenticationError):
            await resolve_principal(token, mock_db_session, self.tokens)
        mock_db_session.get.assert_not_called()


class TestPasswordService:

    def setup_method(self):
        self.passwords = PasswordService()

    def test_hash_is_salted(self):
        assert self.passwords.hash("secret1") != self.passwords.hash("secret1")

    def test_verify_accepts_correct_password(self):
        assert self.passwords.verify(self.passwords.hash("secret1"), "secret1")

    def test_verify_rejects_wrong_password(self):
        assert not self.passwords.verify(self.passwords.hash("secret1"), "secret2")

    def test_verify_rejects_unparseable_hash(self):
        assert not self.passwords.verify("plain-text-in-the-db", "plain-text-in-the-db")
