"""
Shared fixtures for server tests.

External collaborators (identity provider, Google Books) are faked with
httpx.MockTransport; the SQL store runs against a throwaway SQLite file.
"""

from __future__ import annotations

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from app.core.auth import create_session_token
from app.core.config import Settings
from app.core.identity import IdentityProvider
from app.main import create_app
from app.services.catalog import CatalogClient
from app.stores.sql import SqlOrderStore
from fabledrop_shared.schemas.users import UserProfile
from server_fakes import EMAIL, books_handler, userinfo_handler


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'fabledrop.db'}",
        authorized_emails=[EMAIL],
        secret_key="test-secret-key-with-enough-length-for-hs256",
        userinfo_url="https://identity.test/userinfo",
        books_api_url="https://books.test/v1",
        debug=True,
    )


@pytest.fixture
async def store(settings):
    s = SqlOrderStore(settings.database_url)
    await s.open()
    yield s
    await s.close()


@pytest.fixture
async def identity(settings):
    provider = IdentityProvider(
        settings.userinfo_url,
        settings.authorized_emails,
        transport=httpx.MockTransport(userinfo_handler),
    )
    await provider.open()
    yield provider
    await provider.close()


@pytest.fixture
async def catalog(settings):
    client = CatalogClient(
        base_url=settings.books_api_url,
        transport=httpx.MockTransport(books_handler),
    )
    await client.open()
    yield client
    await client.close()


@pytest.fixture
def app(settings, store, identity, catalog):
    return create_app(settings, store=store, catalog=catalog, identity=identity)


@pytest.fixture
def session_token(settings) -> str:
    profile = UserProfile(id="1001", email=EMAIL, name="Rita Reader")
    return create_session_token(profile, settings)


@pytest.fixture
async def client(app):
    """Unauthenticated client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def auth_client(app, session_token):
    """Client carrying a session JWT as a bearer token."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {session_token}"},
    ) as ac:
        yield ac
