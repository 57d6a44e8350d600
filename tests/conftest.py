"""
Shared fixtures: a throw-away SQLite file per test, the FastAPI app wired
to it, and bearer headers for a few seeded users.
"""
from __future__ import annotations

from typing import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.models.identity import Identity, Role
from main import app
from services.auth import create_token
from services.db import Base, Profile, UserRole, get_session

# user id → (college, role)
USERS = {
    "stu-1": ("north", Role.student),
    "stu-2": ("north", Role.student),
    "admin-n": ("north", Role.admin),
    "admin-s": ("south", Role.admin),
}


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    eng = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'mess.db'}", connect_args={"timeout": 15}
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(eng, expire_on_commit=False)
    async with factory() as db:
        for uid, (college, role) in USERS.items():
            db.add(Profile(id=uid, full_name=uid.title(), college_name=college))
            db.add(UserRole(user_id=uid, role=role.value))
        await db.commit()

    yield factory
    await eng.dispose()


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncIterator[AsyncClient]:
    async def _session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def identity(user_id: str) -> Identity:
    college, role = USERS[user_id]
    return Identity(user_id=user_id, college_name=college, role=role)


def auth(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_token(user_id)}"}


@pytest.fixture
def student() -> Identity:
    return identity("stu-1")


@pytest.fixture
def admin() -> Identity:
    return identity("admin-n")


@pytest.fixture
def headers():
    """`headers("admin-n")` → bearer header for a seeded user."""
    return auth


@pytest.fixture
def ident():
    """`ident("stu-2")` → Identity for a seeded user."""
    return identity
