# api/v1/menus.py
from __future__ import annotations
from datetime import date

from fastapi import APIRouter, Depends, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.v1.deps import current_identity, require_admin
from api.v1.schemas import MenuIn, MenuOut
from core.errors import MenuNotFound
from core.models.identity import Identity
from services.db import DailyMenu, get_session

router = APIRouter()


# ───────────────────────── read ─────────────────────────────
@router.get("/{meal_date}", response_model=MenuOut)
async def get_menu(
    meal_date: date,
    identity: Identity = Depends(current_identity),
    db: AsyncSession = Depends(get_session),
) -> MenuOut:
    menu = (
        await db.execute(
            select(DailyMenu).where(
                DailyMenu.meal_date == meal_date,
                DailyMenu.college_name == identity.college_name,
            )
        )
    ).scalar_one_or_none()

    if menu is None:
        raise MenuNotFound(f"No menu for {meal_date.isoformat()}")
    return MenuOut.model_validate(menu, from_attributes=True)


# ───────────────────────── upsert ───────────────────────────
@router.put("/{meal_date}", response_model=MenuOut, status_code=status.HTTP_200_OK)
async def publish_menu(
    meal_date: date,
    body: MenuIn,
    identity: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> MenuOut:
    payload = body.model_dump()

    # Try update → if the day has no menu yet we insert.
    res = await db.execute(
        update(DailyMenu)
        .where(
            DailyMenu.meal_date == meal_date,
            DailyMenu.college_name == identity.college_name,
        )
        .values(**payload)
        .returning(DailyMenu)
    )
    menu = res.scalar_one_or_none()

    if menu is None:
        menu = DailyMenu(
            meal_date=meal_date, college_name=identity.college_name, **payload
        )
        db.add(menu)

    await db.commit()
    await db.refresh(menu)
    return MenuOut.model_validate(menu, from_attributes=True)
