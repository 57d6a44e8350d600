# api/v1/tokens.py
from __future__ import annotations
from datetime import date

from fastapi import APIRouter, Depends, Query, status

from api.v1.deps import current_identity, require_admin, token_service
from api.v1.schemas import (
    RedeemIn,
    RedeemOut,
    TokenCreate,
    TokenIssued,
    TokenOut,
    TokenStatsOut,
)
from core.models.identity import Identity
from core.tokens import TokenService, mess_today

router = APIRouter()


# ───────────────────────── issue ────────────────────────────
@router.post(
    "",
    response_model=TokenIssued,
    status_code=status.HTTP_200_OK,
    summary="Generate a meal token for the caller",
)
async def generate_token(
    body: TokenCreate,
    identity: Identity = Depends(current_identity),
    svc: TokenService = Depends(token_service),
) -> TokenIssued:
    token = await svc.issue_token(identity, body.meal_type, body.meal_date)
    return TokenIssued(token=TokenOut.model_validate(token, from_attributes=True))


# ───────────────────────── current ──────────────────────────
@router.get(
    "/current",
    response_model=TokenOut | None,
    summary="Latest token the caller holds for a date (today by default)",
)
async def current_token(
    meal_date: date | None = Query(None),
    unused_only: bool = Query(False),
    identity: Identity = Depends(current_identity),
    svc: TokenService = Depends(token_service),
) -> TokenOut | None:
    token = await svc.current_token(identity, meal_date, unused_only=unused_only)
    if token is None:
        return None
    return TokenOut.model_validate(token, from_attributes=True)


# ───────────────────────── redeem ───────────────────────────
@router.post(
    "/redeem",
    response_model=RedeemOut,
    summary="Validate a token at the counter and mark it used",
)
async def redeem_token(
    body: RedeemIn,
    identity: Identity = Depends(require_admin),
    svc: TokenService = Depends(token_service),
) -> RedeemOut:
    result = await svc.redeem_token(identity, body.token_code, body.meal_date)
    return RedeemOut(
        token=TokenOut.model_validate(result.token, from_attributes=True),
        meal_type=result.meal_type,
    )


# ───────────────────────── analytics ────────────────────────
@router.get("/stats", response_model=TokenStatsOut)
async def token_stats(
    meal_date: date | None = Query(None),
    identity: Identity = Depends(require_admin),
    svc: TokenService = Depends(token_service),
) -> TokenStatsOut:
    stats = await svc.get_token_stats(meal_date or mess_today(), identity.college_name)
    return TokenStatsOut.model_validate(stats, from_attributes=True)


@router.get("/breakdown", response_model=dict[str, int])
async def meal_breakdown(
    meal_date: date | None = Query(None),
    identity: Identity = Depends(require_admin),
    svc: TokenService = Depends(token_service),
) -> dict[str, int]:
    return await svc.get_meal_type_breakdown(
        meal_date or mess_today(), identity.college_name
    )
