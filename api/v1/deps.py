# api/v1/deps.py
from __future__ import annotations

import logging

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import Forbidden, Unauthorized
from core.models.identity import Identity
from core.tokens import TokenService
from services.auth import load_identity, verify_token
from services.db import get_session

_LOG = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


async def current_identity(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: AsyncSession = Depends(get_session),
) -> Identity:
    if creds is None or not creds.credentials:
        raise Unauthorized()
    try:
        user_id = verify_token(creds.credentials)
    except (jwt.PyJWTError, KeyError) as exc:
        _LOG.warning("rejected bearer token: %s", exc)
        raise Unauthorized("Invalid or expired session") from exc
    return await load_identity(db, user_id)


async def require_admin(identity: Identity = Depends(current_identity)) -> Identity:
    if not identity.is_admin:
        raise Forbidden("Admin role required")
    return identity


def token_service(db: AsyncSession = Depends(get_session)) -> TokenService:
    return TokenService(db)
