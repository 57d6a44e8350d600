"""
services/db.py
────────────────────────────────────────────────────────────────────────
* Async SQLAlchemy v2 setup
* Models for tokens, menus, meal preferences and the identity tables
* Session helpers used by routers / scripts
"""
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from config import settings

# ───────── connection helper ────────────────────────────────────────
_ENGINE: AsyncEngine | None = None
_SESSIONMAKER: async_sessionmaker[AsyncSession] | None = None


def _create_engine(url: str) -> AsyncEngine:
    if url.startswith("sqlite"):
        # aiosqlite runs every connection on its own thread
        return create_async_engine(url, connect_args={"check_same_thread": False})
    return create_async_engine(url, pool_pre_ping=True)


def engine() -> AsyncEngine:
    global _ENGINE
    if _ENGINE is None:
        _ENGINE = _create_engine(settings.database_url)
    return _ENGINE


def sessionmaker() -> async_sessionmaker[AsyncSession]:
    global _SESSIONMAKER
    if _SESSIONMAKER is None:
        _SESSIONMAKER = async_sessionmaker(engine(), expire_on_commit=False)
    return _SESSIONMAKER


# ───────── declarative base ──────────────────────────────────────────
Base = declarative_base(cls=AsyncAttrs)


def _uuid() -> str:
    return str(uuid.uuid4())


# ───────── identity tables ──────────────────────────────────────────


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    full_name: Mapped[str | None] = mapped_column(String)
    college_name: Mapped[str | None] = mapped_column(String, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class UserRole(Base):
    __tablename__ = "user_roles"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    role: Mapped[str] = mapped_column(String(16), default="student")


# ───────── mess tables ──────────────────────────────────────────────


class Token(Base):
    __tablename__ = "tokens"
    __table_args__ = (
        # one token per user, meal and day; issuance relies on this firing
        UniqueConstraint(
            "user_id", "meal_type", "meal_date", name="uq_tokens_user_meal_date"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    meal_type: Mapped[str] = mapped_column(String(16))
    meal_date: Mapped[date] = mapped_column(Date, index=True)
    token_code: Mapped[str] = mapped_column(String(64), unique=True)
    qr_code_data: Mapped[str] = mapped_column(Text)
    is_used: Mapped[bool] = mapped_column(Boolean, default=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    college_name: Mapped[str] = mapped_column(String, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class DailyMenu(Base):
    __tablename__ = "daily_menus"
    __table_args__ = (
        UniqueConstraint("meal_date", "college_name", name="uq_menus_date_college"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    meal_date: Mapped[date] = mapped_column(Date)
    college_name: Mapped[str] = mapped_column(String)
    breakfast: Mapped[str] = mapped_column(Text, default="")
    lunch: Mapped[str] = mapped_column(Text, default="")
    snacks: Mapped[str] = mapped_column(Text, default="")
    dinner: Mapped[str] = mapped_column(Text, default="")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class MealPreference(Base):
    __tablename__ = "meal_preferences"
    __table_args__ = (
        UniqueConstraint("user_id", "meal_date", name="uq_prefs_user_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    meal_date: Mapped[date] = mapped_column(Date)
    college_name: Mapped[str] = mapped_column(String)
    skip_breakfast: Mapped[bool] = mapped_column(Boolean, default=False)
    skip_lunch: Mapped[bool] = mapped_column(Boolean, default=False)
    skip_snacks: Mapped[bool] = mapped_column(Boolean, default=False)
    skip_dinner: Mapped[bool] = mapped_column(Boolean, default=False)


# ───────── schema / session helpers ─────────────────────────────────

async def init_models(eng: AsyncEngine | None = None) -> None:
    async with (eng or engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Standalone session for scripts and workers."""
    async with sessionmaker()() as session:
        yield session


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with sessionmaker()() as session:
        yield session
