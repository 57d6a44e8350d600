from datetime import datetime, timedelta, timezone

import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.models.identity import Identity, Role
from services.db import Profile, UserRole


def create_token(user_id: str, ttl_minutes: int = 60) -> str:
    exp = datetime.now(timezone.utc) + timedelta(minutes=ttl_minutes)
    payload = {"sub": user_id, "exp": exp}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> str:
    payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    return payload["sub"]


async def get_role(db: AsyncSession, user_id: str) -> Role:
    row = await db.get(UserRole, user_id)
    if row is None or row.role not in Role._value2member_map_:
        return Role.student
    return Role(row.role)


async def load_identity(db: AsyncSession, user_id: str) -> Identity:
    """Resolve profile and role for a verified user id."""
    profile = await db.get(Profile, user_id)
    return Identity(
        user_id=user_id,
        college_name=(profile.college_name if profile else None) or settings.default_college,
        full_name=(profile.full_name if profile else None) or "User",
        role=await get_role(db, user_id),
    )
