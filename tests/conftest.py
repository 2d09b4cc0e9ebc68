# tests/conftest.py
from __future__ import annotations

import os
from typing import AsyncGenerator

# The app module builds its engine at import time; keep it off PostgreSQL.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from db import location, movement, product, users  # noqa: E402,F401
from db.database import Base, get_async_session  # noqa: E402
from main import app  # noqa: E402
from services.actors import DefaultActorProvider  # noqa: E402


@pytest_asyncio.fixture(scope="function")
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test; StaticPool keeps every session on the same connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def session_maker(async_engine: AsyncEngine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as sess:
        yield sess


@pytest_asyncio.fixture(scope="function")
async def client(session_maker) -> AsyncGenerator[httpx.AsyncClient, None]:
    async def _override_session():
        async with session_maker() as sess:
            yield sess

    app.dependency_overrides[get_async_session] = _override_session
    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def actor_provider() -> DefaultActorProvider:
    return DefaultActorProvider("api@warehouse.local", "API Default User")
