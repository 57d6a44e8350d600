"""
core/tokens.py
────────────────────────────────────────────────────────────────────────
Meal-token lifecycle.

Responsibilities
----------------
1.   `issue_token()` – one token per (user, meal type, date). Uniqueness is
     left to the `uq_tokens_user_meal_date` constraint: the service inserts
     once and interprets the integrity error, it never checks first.
2.   `redeem_token()` – single conditional UPDATE guarded by
     `is_used = false`; a replay affects zero rows and is reported as
     `AlreadyUsed`, a code issued for another day as `NotFound`.
3.   `get_token_stats()` / `get_meal_type_breakdown()` – per-date counts
     for the admin dashboard. These are refresh reads and degrade to empty
     results on store errors instead of raising.

Tokens move `Issued (is_used=false) → Redeemed (is_used=true)` and never
back. Expiry is implicit: redemption is always looked up by date.
"""
from __future__ import annotations

import json
import logging
import secrets
import string
from dataclasses import dataclass
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.errors import (
    AlreadyExists,
    AlreadyUsed,
    InvalidInput,
    NotFound,
    StoreFailure,
    Unauthorized,
)
from core.models.identity import Identity
from core.models.meal import MEAL_TYPES
from services.db import Token

_LOG = logging.getLogger(__name__)

_CODE_ALPHABET = string.digits + string.ascii_uppercase
_CODE_SUFFIX_LEN = 7


# ──────────────────────────── helpers ─────────────────────────── #
def mess_today() -> date:
    """Current calendar date in the mess' timezone."""
    return datetime.now(ZoneInfo(settings.mess_timezone)).date()


def normalise_meal_type(meal_type: str | None) -> str:
    meal = (meal_type or "").strip().lower()
    if not meal:
        raise InvalidInput("Meal type is required")
    if meal not in MEAL_TYPES:
        raise InvalidInput(
            f"Unknown meal type {meal_type!r}; expected one of {', '.join(MEAL_TYPES)}"
        )
    return meal


def generate_token_code(now: datetime | None = None, prefix: str | None = None) -> str:
    """`MT-<epoch millis>-<7 base36 chars>`; uniqueness is still enforced by the DB."""
    millis = int((now or datetime.now(timezone.utc)).timestamp() * 1000)
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(_CODE_SUFFIX_LEN))
    return f"{prefix or settings.token_code_prefix}-{millis}-{suffix}"


def build_qr_payload(
    token_code: str,
    user_id: str,
    meal_type: str,
    meal_date: date,
    generated_at: datetime,
) -> str:
    return json.dumps(
        {
            "tokenCode": token_code,
            "userId": user_id,
            "mealType": meal_type,
            "mealDate": meal_date.isoformat(),
            "generatedAt": generated_at.isoformat(),
        }
    )


@dataclass(frozen=True)
class RedemptionResult:
    token: Token
    meal_type: str


@dataclass(frozen=True)
class TokenStats:
    total: int = 0
    used: int = 0
    unused: int = 0


# ──────────────────────────── service ─────────────────────────── #
class TokenService:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    # ─────────────────────────── issuance ─────────────────────────── #
    async def issue_token(
        self,
        identity: Identity | None,
        meal_type: str | None,
        meal_date: date | None = None,
    ) -> Token:
        if identity is None:
            raise Unauthorized()
        meal = normalise_meal_type(meal_type)
        meal_date = meal_date or mess_today()

        for _ in range(max(settings.token_code_attempts, 1)):
            now = datetime.now(timezone.utc)
            code = generate_token_code(now)
            token = Token(
                user_id=identity.user_id,
                meal_type=meal,
                meal_date=meal_date,
                token_code=code,
                qr_code_data=build_qr_payload(
                    code, identity.user_id, meal, meal_date, now
                ),
                is_used=False,
                college_name=identity.college_name,
                created_at=now,
            )
            if await self._insert(token):
                _LOG.info(
                    "token %s issued to %s for %s on %s",
                    code, identity.user_id, meal, meal_date,
                )
                return token

            existing = await self._find_for_user(identity.user_id, meal, meal_date)
            if existing is not None:
                _LOG.warning(
                    "duplicate %s token request from %s on %s",
                    meal, identity.user_id, meal_date,
                )
                raise AlreadyExists(
                    existing.token_code,
                    f"You already have a token for {meal} on {meal_date.isoformat()}",
                )
            # the code itself collided – draw a new one
            _LOG.warning("token code collision on %s, retrying", code)

        raise StoreFailure("Could not allocate a unique token code")

    async def _insert(self, token: Token) -> bool:
        """True on success, False when a unique constraint rejected the row."""
        self._db.add(token)
        try:
            await self._db.commit()
        except IntegrityError:
            await self._db.rollback()
            return False
        except SQLAlchemyError as exc:
            await self._db.rollback()
            _LOG.exception("failed to store token for %s", token.user_id)
            raise StoreFailure("Failed to generate token") from exc
        # detached: a later rollback on this session must not expire it
        self._db.expunge(token)
        return True

    async def _find_for_user(
        self, user_id: str, meal_type: str, meal_date: date
    ) -> Token | None:
        try:
            res = await self._db.execute(
                select(Token).where(
                    Token.user_id == user_id,
                    Token.meal_type == meal_type,
                    Token.meal_date == meal_date,
                )
            )
        except SQLAlchemyError as exc:
            _LOG.exception("token lookup failed for %s", user_id)
            raise StoreFailure("Failed to generate token") from exc
        return res.scalar_one_or_none()

    async def current_token(
        self,
        identity: Identity | None,
        meal_date: date | None = None,
        unused_only: bool = False,
    ) -> Token | None:
        """Most recently issued token of the caller for `meal_date`."""
        if identity is None:
            raise Unauthorized()
        stmt = select(Token).where(
            Token.user_id == identity.user_id,
            Token.meal_date == (meal_date or mess_today()),
        )
        if unused_only:
            stmt = stmt.where(Token.is_used.is_(False))
        stmt = stmt.order_by(Token.created_at.desc()).limit(1)
        try:
            return (await self._db.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError:
            _LOG.exception("failed to load current token for %s", identity.user_id)
            return None

    # ─────────────────────────── redemption ───────────────────────── #
    async def redeem_token(
        self,
        identity: Identity | None,
        token_code: str | None,
        meal_date: date | None = None,
    ) -> RedemptionResult:
        if identity is None:
            raise Unauthorized()
        code = (token_code or "").strip()
        if not code:
            raise InvalidInput("Token code is required")
        meal_date = meal_date or mess_today()
        scope = (
            Token.token_code == code,
            Token.meal_date == meal_date,
            Token.college_name == identity.college_name,
        )

        try:
            res = await self._db.execute(
                update(Token)
                .where(*scope, Token.is_used.is_(False))
                .values(is_used=True, used_at=datetime.now(timezone.utc))
                .returning(Token)
            )
            token = res.scalar_one_or_none()
            await self._db.commit()

            if token is None:
                seen = (
                    await self._db.execute(select(Token.id).where(*scope))
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            _LOG.exception("redemption of %s failed", code)
            raise StoreFailure("Failed to validate token") from exc

        if token is None:
            if seen is None:
                _LOG.warning("unknown or expired token %s for %s", code, meal_date)
                raise NotFound(f"No token {code} for {meal_date.isoformat()}")
            _LOG.warning("replayed token %s", code)
            raise AlreadyUsed(f"Token {code} has already been served")

        _LOG.info("token %s redeemed (%s)", code, token.meal_type)
        return RedemptionResult(token=token, meal_type=token.meal_type)

    # ─────────────────────────── analytics ────────────────────────── #
    async def get_token_stats(self, meal_date: date, college_name: str) -> TokenStats:
        stmt = select(
            func.count(Token.id),
            func.coalesce(func.sum(case((Token.is_used.is_(True), 1), else_=0)), 0),
        ).where(Token.meal_date == meal_date, Token.college_name == college_name)
        try:
            total, used = (await self._db.execute(stmt)).one()
        except SQLAlchemyError:
            _LOG.exception("token stats unavailable for %s", meal_date)
            return TokenStats()
        total, used = int(total), int(used)
        return TokenStats(total=total, used=used, unused=total - used)

    async def get_meal_type_breakdown(
        self, meal_date: date, college_name: str
    ) -> dict[str, int]:
        stmt = (
            select(Token.meal_type, func.count(Token.id))
            .where(Token.meal_date == meal_date, Token.college_name == college_name)
            .group_by(Token.meal_type)
        )
        try:
            rows = (await self._db.execute(stmt)).all()
        except SQLAlchemyError:
            _LOG.exception("meal breakdown unavailable for %s", meal_date)
            return {}
        return {meal: int(count) for meal, count in rows}
