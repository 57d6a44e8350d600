# tests/test_token_service.py
from __future__ import annotations

import asyncio
import json
import re
from datetime import date, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

import core.tokens as tokens_mod
from core.errors import (
    AlreadyExists,
    AlreadyUsed,
    InvalidInput,
    NotFound,
    StoreFailure,
    Unauthorized,
)
from core.tokens import TokenService, TokenStats, generate_token_code, mess_today
from services.db import Token

NEW_YEAR = date(2025, 1, 1)


async def _count(db, **where) -> int:
    stmt = select(func.count(Token.id)).where(
        *(getattr(Token, col) == val for col, val in where.items())
    )
    return (await db.execute(stmt)).scalar_one()


# ── issuance ─────────────────────────────────────────────────────────
async def test_issue_then_duplicate_returns_original_code(db, student):
    svc = TokenService(db)
    token = await svc.issue_token(student, "lunch", NEW_YEAR)

    assert token.is_used is False
    assert token.used_at is None
    assert token.meal_type == "lunch"
    assert token.college_name == "north"

    with pytest.raises(AlreadyExists) as exc:
        await svc.issue_token(student, "lunch", NEW_YEAR)

    assert exc.value.token_code == token.token_code
    assert await _count(db, user_id="stu-1") == 1


async def test_same_user_different_meal_or_day_is_allowed(db, student):
    svc = TokenService(db)
    await svc.issue_token(student, "lunch", NEW_YEAR)
    await svc.issue_token(student, "dinner", NEW_YEAR)
    await svc.issue_token(student, "lunch", NEW_YEAR + timedelta(days=1))
    assert await _count(db, user_id="stu-1") == 3


async def test_qr_payload_carries_token_fields(db, student):
    token = await TokenService(db).issue_token(student, "breakfast", NEW_YEAR)
    payload = json.loads(token.qr_code_data)

    assert payload["tokenCode"] == token.token_code
    assert payload["userId"] == "stu-1"
    assert payload["mealType"] == "breakfast"
    assert payload["mealDate"] == "2025-01-01"
    assert "generatedAt" in payload


async def test_meal_type_is_case_insensitive(db, student):
    token = await TokenService(db).issue_token(student, "  Snacks ", NEW_YEAR)
    assert token.meal_type == "snacks"


async def test_meal_date_defaults_to_today(db, student):
    token = await TokenService(db).issue_token(student, "dinner")
    assert token.meal_date == mess_today()


@pytest.mark.parametrize("meal", [None, "", "brunch", "supper"])
async def test_invalid_meal_type_rejected(db, student, meal):
    with pytest.raises(InvalidInput):
        await TokenService(db).issue_token(student, meal, NEW_YEAR)
    assert await _count(db) == 0


async def test_issue_requires_identity(db):
    with pytest.raises(Unauthorized):
        await TokenService(db).issue_token(None, "lunch", NEW_YEAR)


def test_token_code_format():
    code = generate_token_code()
    assert re.fullmatch(r"MT-\d{13}-[0-9A-Z]{7}", code)


async def test_code_collision_draws_a_new_code(db, student, ident, monkeypatch):
    codes = iter(["MT-1-AAAAAAA", "MT-1-AAAAAAA", "MT-2-BBBBBBB"])
    monkeypatch.setattr(tokens_mod, "generate_token_code", lambda *a, **kw: next(codes))

    svc = TokenService(db)
    first = await svc.issue_token(student, "lunch", NEW_YEAR)
    second = await svc.issue_token(ident("stu-2"), "lunch", NEW_YEAR)

    assert first.token_code == "MT-1-AAAAAAA"
    assert second.token_code == "MT-2-BBBBBBB"


async def test_persistent_code_collision_is_a_store_failure(db, student, ident, monkeypatch):
    monkeypatch.setattr(tokens_mod, "generate_token_code", lambda *a, **kw: "MT-1-SAME")

    svc = TokenService(db)
    await svc.issue_token(student, "lunch", NEW_YEAR)
    with pytest.raises(StoreFailure):
        await svc.issue_token(ident("stu-2"), "lunch", NEW_YEAR)


async def test_concurrent_issuance_stores_exactly_one(session_factory, student):
    async def _issue():
        async with session_factory() as session:
            return await TokenService(session).issue_token(student, "lunch", NEW_YEAR)

    results = await asyncio.gather(_issue(), _issue(), return_exceptions=True)

    issued = [r for r in results if isinstance(r, Token)]
    dupes = [r for r in results if isinstance(r, AlreadyExists)]
    assert len(issued) == 1
    assert len(dupes) == 1
    assert dupes[0].token_code == issued[0].token_code

    async with session_factory() as session:
        assert await _count(session, user_id="stu-1") == 1


async def test_store_error_on_issue_is_a_store_failure(db, student, monkeypatch):
    async def _boom(*_a, **_kw):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", _boom)
    with pytest.raises(StoreFailure) as err:
        await TokenService(db).issue_token(student, "lunch", NEW_YEAR)
    assert err.value.payload()["error"] == "Internal server error"

    monkeypatch.undo()
    assert await _count(db, user_id="stu-1") == 0


# ── redemption ───────────────────────────────────────────────────────
async def test_redeem_once_then_already_used(db, student, admin):
    svc = TokenService(db)
    today = mess_today()
    token = await svc.issue_token(student, "lunch", today)

    result = await svc.redeem_token(admin, token.token_code, today)
    assert result.meal_type == "lunch"
    assert result.token.is_used is True
    assert result.token.used_at is not None

    with pytest.raises(AlreadyUsed):
        await svc.redeem_token(admin, token.token_code, today)

    stats = await svc.get_token_stats(today, "north")
    assert stats.used == 1


async def test_redeem_defaults_to_today(db, student, admin):
    svc = TokenService(db)
    token = await svc.issue_token(student, "dinner")
    result = await svc.redeem_token(admin, token.token_code)
    assert result.token.is_used is True


async def test_token_for_other_day_is_not_found(db, student, admin):
    svc = TokenService(db)
    token = await svc.issue_token(student, "lunch", NEW_YEAR)

    with pytest.raises(NotFound):
        await svc.redeem_token(admin, token.token_code, NEW_YEAR + timedelta(days=1))

    # still redeemable on its own day
    result = await svc.redeem_token(admin, token.token_code, NEW_YEAR)
    assert result.token.is_used is True


async def test_token_is_invisible_to_other_college(db, student, ident):
    svc = TokenService(db)
    token = await svc.issue_token(student, "lunch", NEW_YEAR)
    with pytest.raises(NotFound):
        await svc.redeem_token(ident("admin-s"), token.token_code, NEW_YEAR)


@pytest.mark.parametrize("code", [None, "", "   "])
async def test_blank_code_rejected(db, admin, code):
    with pytest.raises(InvalidInput):
        await TokenService(db).redeem_token(admin, code, NEW_YEAR)


async def test_unknown_code_not_found(db, admin):
    with pytest.raises(NotFound):
        await TokenService(db).redeem_token(admin, "MT-0-NOPE", NEW_YEAR)


async def test_concurrent_redemption_serves_once(session_factory, student, admin):
    async with session_factory() as session:
        token = await TokenService(session).issue_token(student, "lunch", NEW_YEAR)

    async def _redeem():
        async with session_factory() as session:
            return await TokenService(session).redeem_token(
                admin, token.token_code, NEW_YEAR
            )

    results = await asyncio.gather(_redeem(), _redeem(), return_exceptions=True)

    assert sum(not isinstance(r, Exception) for r in results) == 1
    assert sum(isinstance(r, AlreadyUsed) for r in results) == 1


# ── analytics ────────────────────────────────────────────────────────
async def test_stats_and_breakdown(db, ident, admin):
    svc = TokenService(db)
    today = mess_today()
    await svc.issue_token(ident("stu-1"), "breakfast", today)
    lunch = await svc.issue_token(ident("stu-1"), "lunch", today)
    await svc.issue_token(ident("stu-2"), "lunch", today)

    assert await svc.get_meal_type_breakdown(today, "north") == {"breakfast": 1, "lunch": 2}
    assert await svc.get_token_stats(today, "north") == TokenStats(total=3, used=0, unused=3)

    await svc.redeem_token(admin, lunch.token_code, today)
    stats = await svc.get_token_stats(today, "north")
    assert stats == TokenStats(total=3, used=1, unused=2)
    assert stats.used + stats.unused == stats.total

    # breakdown counts used tokens too
    assert await svc.get_meal_type_breakdown(today, "north") == {"breakfast": 1, "lunch": 2}


async def test_stats_are_tenant_scoped(db, student):
    svc = TokenService(db)
    await svc.issue_token(student, "lunch", NEW_YEAR)
    assert await svc.get_token_stats(NEW_YEAR, "south") == TokenStats()
    assert await svc.get_meal_type_breakdown(NEW_YEAR, "south") == {}


async def test_analytics_degrade_to_empty_on_store_error(db, monkeypatch):
    async def _boom(*_a, **_kw):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "execute", _boom)
    svc = TokenService(db)

    assert await svc.get_token_stats(NEW_YEAR, "north") == TokenStats()
    assert await svc.get_meal_type_breakdown(NEW_YEAR, "north") == {}


async def test_store_error_on_redeem_leaves_token_unused(db, student, admin, monkeypatch):
    token = await TokenService(db).issue_token(student, "lunch", NEW_YEAR)

    async def _boom(*_a, **_kw):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", _boom)
    with pytest.raises(StoreFailure):
        await TokenService(db).redeem_token(admin, token.token_code, NEW_YEAR)

    monkeypatch.undo()
    used = await db.execute(select(Token.is_used).where(Token.id == token.id))
    assert used.scalar_one() is False


# ── current token ────────────────────────────────────────────────────
async def test_current_token_is_latest_and_filters_used(db, student, admin):
    svc = TokenService(db)
    assert await svc.current_token(student, NEW_YEAR) is None

    first = await svc.issue_token(student, "breakfast", NEW_YEAR)
    await asyncio.sleep(0.01)
    second = await svc.issue_token(student, "lunch", NEW_YEAR)

    assert (await svc.current_token(student, NEW_YEAR)).id == second.id

    await svc.redeem_token(admin, second.token_code, NEW_YEAR)
    latest_unused = await svc.current_token(student, NEW_YEAR, unused_only=True)
    assert latest_unused.id == first.id
