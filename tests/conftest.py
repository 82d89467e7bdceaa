"""Shared fixtures: an isolated in-memory database per test."""

import os
import tempfile
from pathlib import Path

# Point the application at throwaway storage before backend.config is imported.
_tmp = Path(tempfile.mkdtemp(prefix="flashdeck-tests-"))
os.environ.setdefault("FLASHDECK_DATABASE_URL", f"sqlite+aiosqlite:///{_tmp / 'test.db'}")
os.environ.setdefault("FLASHDECK_RECENT_SEARCHES_PATH", str(_tmp / "recent_searches.json"))
os.environ.setdefault("FLASHDECK_TIMEZONE", "UTC")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from backend.database import get_session  # noqa: E402
from backend.main import app  # noqa: E402
from backend.models import Base  # noqa: E402


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client whose requests use the test database."""

    async def _get_test_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _get_test_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()
