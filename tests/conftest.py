"""
Global pytest configuration and fixtures for the GrantCue API test suite.

Every test gets its own throwaway SQLite database. Sessions come from a
NullPool engine so the request session and the permission resolver's own
sessions use separate connections, as they do against a real server.
"""
from typing import Annotated

import pytest
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from grantcue.core.database.base import Base
from grantcue.core.database.engine import get_db, get_session_factory, register_models
from grantcue.features.permissions.resolver import PermissionResolver
from grantcue.features.permissions.seed import seed_all
from grantcue.features.users.dependencies import get_current_user
from grantcue.features.users.models import User
from grantcue.main import app

# Import fixtures from fixture modules
from tests.fixtures.organization_fixtures import *  # noqa: F403, F401


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    register_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def system_roles(db):
    """Seeded permission catalog; returns system roles by name."""
    return await seed_all(db)


@pytest.fixture
def resolver(session_factory) -> PermissionResolver:
    return PermissionResolver(session_factory, timeout=5)


@pytest.fixture
async def client(session_factory):
    """HTTP client for the app, wired to the test database."""
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def login():
    """
    Authenticate subsequent requests as the given user.

    The user is re-read inside the request session, so routes that modify
    and commit it behave as with a real token.
    """
    def _login(user: User) -> None:
        async def current_user(db: Annotated[AsyncSession, Depends(get_db)]) -> User:
            return await db.get(User, user.id)

        app.dependency_overrides[get_current_user] = current_user

    return _login
