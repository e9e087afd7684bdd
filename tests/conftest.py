"""
Blog API — Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the whole suite.
How:   Every API test gets its own app built by `create_app(settings)` on a
       fresh in-memory SQLite database (sqlite+aiosqlite, StaticPool), so
       tests never share rows. Service unit tests use a mocked AsyncSession.

Fixture Hierarchy:
    ├── settings_factory:  Settings for tests, with per-test overrides
    ├── app_factory:       builds an app + schema for given overrides
    ├── app / client:      default-policy app and its HTTPX AsyncClient
    ├── make_user:         registers a user, logs in, returns token + id
    ├── mock_db_session:   AsyncMock standing in for AsyncSession
    └── png_bytes:         a real (tiny) PNG generated with Pillow
"""

import io
import uuid
from typing import Any, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy import update
from unittest.mock import AsyncMock, MagicMock

from blogapi.config import Settings
from blogapi.database import create_schema
from blogapi.main import create_app
from blogapi.models import User

API = "/api/v1"
TEST_JWT_SECRET = "test-secret-that-is-definitely-long-enough"


def auth_header(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def settings_factory(tmp_path):
    def factory(**overrides: Any) -> Settings:
        values = {
            "environment": "test",
            "database_url": "sqlite+aiosqlite:///:memory:",
            "jwt_secret": TEST_JWT_SECRET,
            "storage_root": str(tmp_path / "storage"),
            "rate_limit_requests": 10_000,
            "log_level": "WARNING",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return factory


@pytest_asyncio.fixture
async def app_factory(settings_factory):
    """
    Build apps on demand; every app built here is disposed after the test.

    ASGITransport does not run the lifespan, so the schema and the storage
    directory are prepared here.
    """
    built = []

    async def factory(**overrides: Any):
        application = create_app(settings_factory(**overrides))
        ctx = application.state.context
        ctx.files.ensure_root()
        await create_schema(ctx.engine)
        built.append(application)
        return application

    yield factory

    for application in built:
        await application.state.context.aclose()


@pytest_asyncio.fixture
async def app(app_factory):
    return await app_factory()


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


@pytest.fixture
def make_user():
    """
    Register and log in a user against `client`.

    `admin_of=app` also sets is_admin on the stored row of that app.

    Usage:
        alice = await make_user(client, "alice")
        alice["token"], alice["id"]
        admin = await make_user(client, "root", admin_of=app)
    """

    async def factory(
        http: AsyncClient,
        username: str,
        admin_of=None,
        password: str = "secret1",
    ):
        email = f"{username}@example.com"
        response = await http.post(
            f"{API}/register",
            json={
                "username": username,
                "first_name": username.capitalize(),
                "family_name": "Tester",
                "email": email,
                "password": password,
            },
        )
        assert response.status_code == 201, response.text

        if admin_of is not None:
            ctx = admin_of.state.context
            async with ctx.session_factory() as session:
                await session.execute(
                    update(User).where(User.username == username).values(is_admin=True)
                )
                await session.commit()

        login = await http.post(f"{API}/login", json={"email": email, "password": password})
        assert login.status_code == 200, login.text
        body = login.json()
        return {
            "id": uuid.UUID(body["user"]["id"]),
            "token": body["access_token"],
            "headers": auth_header(body["access_token"]),
        }

    return factory


@pytest.fixture
def blog_payload():
    return {"title": "Hello World", "content": "0123456789"}


@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession.

    `add` is synchronous on the real session, so it is a MagicMock here.
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.get = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(30, 30, 200)).save(buffer, format="JPEG")
    return buffer.getvalue()


def open_client(application) -> AsyncClient:
    """HTTPX client for an app built with `app_factory` (use as `async with`)."""
    return AsyncClient(transport=ASGITransport(app=application), base_url="http://test")
