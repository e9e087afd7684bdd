"""
Blog API — Account & Credential Tests (HTTP)
==============================================

What:  /register and /login, plus how every protected route reacts to a
       missing, malformed, invalid or expired bearer token.
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from tests.conftest import API, TEST_JWT_SECRET, auth_header

REGISTRATION = {
    "username": "alice",
    "first_name": "Alice",
    "family_name": "Liddell",
    "email": "a@x.com",
    "password": "secret1",
}


class TestRegister:

    @pytest.mark.asyncio
    async def test_register_returns_public_user(self, client):
        response = await client.post(f"{API}/register", json=REGISTRATION)

        assert response.status_code == 201
        body = response.json()
        assert body["username"] == "alice"
        assert body["email"] == "a@x.com"
        assert body["full_name"] == "Liddell, Alice"
        assert body["is_admin"] is False
        assert "password" not in body
        assert "password_hash" not in body

    @pytest.mark.asyncio
    async def test_duplicate_username_conflicts(self, client):
        await client.post(f"{API}/register", json=REGISTRATION)

        response = await client.post(
            f"{API}/register", json={**REGISTRATION, "email": "other@x.com"}
        )

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"
        assert response.json()["message"] == "Username is already taken"

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts_case_insensitively(self, client):
        await client.post(f"{API}/register", json=REGISTRATION)

        response = await client.post(
            f"{API}/register", json={**REGISTRATION, "username": "alice2", "email": "A@X.COM"}
        )

        assert response.status_code == 409
        assert response.json()["message"] == "Email is already registered"

    @pytest.mark.asyncio
    async def test_short_password_is_a_field_error(self, client):
        response = await client.post(
            f"{API}/register", json={**REGISTRATION, "password": "12345"}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "validation_error"
        assert [e["field"] for e in body["errors"]] == ["password"]
        assert body["request_id"]

    @pytest.mark.asyncio
    async def test_missing_fields_are_all_reported(self, client):
        response = await client.post(f"{API}/register", json={"username": "bob"})

        assert response.status_code == 400
        fields = {e["field"] for e in response.json()["errors"]}
        assert {"first_name", "family_name", "email", "password"} <= fields


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_issues_one_hour_token(self, client):
        await client.post(f"{API}/register", json=REGISTRATION)

        response = await client.post(
            f"{API}/login", json={"email": "a@x.com", "password": "secret1"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == 3600
        assert body["user"]["username"] == "alice"

        claims = jwt.decode(body["access_token"], TEST_JWT_SECRET, algorithms=["HS256"])
        assert claims["sub"] == body["user"]["id"]
        assert claims["email"] == "a@x.com"
        assert claims["exp"] - claims["iat"] == 3600

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "credentials",
        [
            {"email": "a@x.com", "password": "wrong-password"},
            {"email": "nobody@x.com", "password": "secret1"},
        ],
    )
    async def test_bad_credentials_are_indistinguishable(self, client, credentials):
        await client.post(f"{API}/register", json=REGISTRATION)

        response = await client.post(f"{API}/login", json=credentials)

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"


class TestBearerCredentials:

    @pytest.mark.asyncio
    async def test_missing_token(self, client, blog_payload):
        response = await client.post(f"{API}/blogs", json=blog_payload)

        assert response.status_code == 401
        assert response.json()["error"] == "unauthenticated"
        assert response.json()["message"] == "Unauthorized access. Please log in."
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_garbage_token(self, client, blog_payload):
        response = await client.post(
            f"{API}/blogs", json=blog_payload, headers=auth_header("not-a-jwt")
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token. Please log in."

    @pytest.mark.asyncio
    async def test_non_bearer_scheme_is_invalid_not_missing(self, client, blog_payload):
        response = await client.post(
            f"{API}/blogs", json=blog_payload, headers={"Authorization": "Basic YWxpY2U6eA=="}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token. Please log in."

    @pytest.mark.asyncio
    async def test_expired_token(self, client, make_user, blog_payload):
        alice = await make_user(client, "alice")
        issued = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {"sub": str(alice["id"]), "iat": issued, "exp": issued + timedelta(hours=1)},
            TEST_JWT_SECRET,
            algorithm="HS256",
        )

        response = await client.post(f"{API}/blogs", json=blog_payload, headers=auth_header(token))

        assert response.status_code == 401
        assert response.json()["message"] == "Token expired. Please log in again."

    @pytest.mark.asyncio
    async def test_token_for_deleted_or_unknown_user(self, client, blog_payload):
        issued = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "iat": issued, "exp": issued + timedelta(hours=1)},
            TEST_JWT_SECRET,
            algorithm="HS256",
        )

        response = await client.post(f"{API}/blogs", json=blog_payload, headers=auth_header(token))

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token. Please log in."

    @pytest.mark.asyncio
    async def test_token_signed_with_another_secret(self, client, make_user, blog_payload):
        alice = await make_user(client, "alice")
        issued = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": str(alice["id"]), "iat": issued, "exp": issued + timedelta(hours=1)},
            "some-other-secret-that-is-also-long-enough",
            algorithm="HS256",
        )

        response = await client.post(f"{API}/blogs", json=blog_payload, headers=auth_header(token))

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_bad_token_rejected_even_on_public_reads(self, client):
        """A presented credential is always verified, never silently dropped."""
        response = await client.get(f"{API}/blogs/{uuid.uuid4()}", headers=auth_header("junk"))
        assert response.status_code == 401
