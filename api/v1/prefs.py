from __future__ import annotations
from datetime import date

from fastapi import APIRouter, Depends, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.v1.deps import current_identity
from api.v1.schemas import MealPrefsIn, MealPrefsOut
from core.errors import InvalidInput
from core.models.identity import Identity
from services.db import MealPreference, get_session

router = APIRouter()


# ───────────────────────── read ─────────────────────────────
@router.get(
    "/{meal_date}",
    response_model=MealPrefsOut,
    status_code=status.HTTP_200_OK,
)
async def get_preferences(
    meal_date: date,
    identity: Identity = Depends(current_identity),
    db: AsyncSession = Depends(get_session),
) -> MealPrefsOut:
    prefs = (
        await db.execute(
            select(MealPreference).where(
                MealPreference.user_id == identity.user_id,
                MealPreference.meal_date == meal_date,
            )
        )
    ).scalar_one_or_none()

    if prefs is None:
        return MealPrefsOut(meal_date=meal_date)
    return MealPrefsOut.model_validate(prefs, from_attributes=True)


# ───────────────────────── upsert ───────────────────────────
@router.put(
    "/{meal_date}",
    response_model=MealPrefsOut,
    status_code=status.HTTP_200_OK,
)
async def upsert_preferences(
    meal_date: date,
    body: MealPrefsIn,
    identity: Identity = Depends(current_identity),
    db: AsyncSession = Depends(get_session),
) -> MealPrefsOut:
    changes = body.model_dump(exclude_none=True)
    if not changes:
        raise InvalidInput("Provide at least one skip_* flag")

    res = await db.execute(
        update(MealPreference)
        .where(
            MealPreference.user_id == identity.user_id,
            MealPreference.meal_date == meal_date,
        )
        .values(**changes)
        .returning(MealPreference)
    )
    prefs = res.scalar_one_or_none()

    if prefs is None:                          # Insert
        prefs = MealPreference(
            user_id=identity.user_id,
            meal_date=meal_date,
            college_name=identity.college_name,
            **changes,
        )
        db.add(prefs)

    await db.commit()
    await db.refresh(prefs)
    return MealPrefsOut.model_validate(prefs, from_attributes=True)
