"""
Seed one admin, one student and today's menu for a college, then print
bearer tokens for both so the API can be exercised by hand.

Usage
-----

    python -m scripts.seed_demo
    python -m scripts.seed_demo --college "North Campus" --file menu.json
"""
from __future__ import annotations

import argparse
import asyncio
import json
from datetime import date
from pathlib import Path
from typing import Any

from sqlalchemy import select

from config import settings
from core.models.identity import Role
from core.tokens import mess_today
from services.auth import create_token
from services.db import DailyMenu, Profile, UserRole, init_models, session_scope

# ────────────────────────────────────────────────────────────────────
_DEFAULT_MENU: dict[str, str] = {
    "breakfast": "Idli, Sambar, Coconut Chutney, Tea",
    "lunch": "Rice, Dal Tadka, Aloo Gobi, Curd",
    "snacks": "Samosa, Tea",
    "dinner": "Chapati, Paneer Butter Masala, Jeera Rice",
}


async def _seed(college: str, menu: dict[str, str], day: date) -> dict[str, str]:
    await init_models()
    users = {"admin": f"{college}-admin", "student": f"{college}-student"}
    async with session_scope() as db:
        for role, uid in users.items():
            await db.merge(Profile(id=uid, full_name=role.title(), college_name=college))
            await db.merge(UserRole(user_id=uid, role=Role(role).value))
        existing = (
            await db.execute(
                select(DailyMenu).where(
                    DailyMenu.meal_date == day, DailyMenu.college_name == college
                )
            )
        ).scalar_one_or_none()
        if existing is None:
            db.add(DailyMenu(meal_date=day, college_name=college, **menu))
        else:
            for meal, items in menu.items():
                setattr(existing, meal, items)
        await db.commit()
    print(f"✓ seeded admin + student and the {day} menu for «{college}»")
    return {role: create_token(uid, ttl_minutes=12 * 60) for role, uid in users.items()}


def _load_json(path: Path) -> dict[str, Any]:
    data = json.loads(path.read_text())
    if not isinstance(data, dict):
        raise ValueError("JSON file must contain an object keyed by meal type")
    return {k: str(data.get(k, "")) for k in _DEFAULT_MENU}


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--college", default=settings.default_college, help="tenant / college name")
    parser.add_argument(
        "--file",
        type=Path,
        help="optional JSON file with the menu to seed (overrides defaults)",
    )
    args = parser.parse_args()

    menu = _load_json(args.file) if args.file else _DEFAULT_MENU
    tokens = asyncio.run(_seed(args.college, menu, mess_today()))
    for role, bearer in tokens.items():
        print(f"{role:>8}: {bearer}")


if __name__ == "__main__":
    main()
