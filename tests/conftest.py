"""Shared test fixtures — async SQLite in-memory DB, providers, test client."""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DEBUG", "true")

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from erp.core.database import (  # noqa: E402
    build_engine,
    build_session_factory,
    create_tables,
    get_session,
)
from erp.main import app  # noqa: E402
from erp.providers.auth import SqlAuthProvider  # noqa: E402
from erp.providers.data import SqlDataProvider  # noqa: E402
from erp.services.access import AccessGate  # noqa: E402


@pytest.fixture
async def engine():
    eng = build_engine("sqlite+aiosqlite://")
    await create_tables(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def test_session_factory(engine):
    """Session factory bound to the test SQLite engine."""
    return build_session_factory(engine)


@pytest.fixture
async def session(test_session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with test_session_factory() as sess:
        yield sess
        await sess.rollback()


@pytest.fixture
async def file_session_factory(tmp_path):
    """Session factory over an on-disk SQLite file.

    Separate sessions get separate connections, so concurrent writers really
    contend on the unique constraints.
    """
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'erp.db'}")
    await create_tables(eng)
    yield build_session_factory(eng)
    await eng.dispose()


@pytest.fixture
def auth(session) -> SqlAuthProvider:
    return SqlAuthProvider(session)


@pytest.fixture
def data(session) -> SqlDataProvider:
    return SqlDataProvider(session)


@pytest.fixture
def gate(data) -> AccessGate:
    return AccessGate(data)


@pytest.fixture
async def client(session) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async test client with DB session override."""

    async def _override_session():
        yield session

    app.dependency_overrides[get_session] = _override_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
