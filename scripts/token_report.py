"""
scripts/token_report.py
────────────────────────────────────────────────────────────────────────
Per-meal summary of the tokens issued for one day:

    python -m scripts.token_report                        # today, default college
    python -m scripts.token_report --date 2025-01-01 --college "North Campus"
    python -m scripts.token_report --out lunch_report.csv

Columns: meal_type · issued · used · unused, plus a TOTAL row whose
numbers match `GET /tokens/stats` for the same day.
"""
from __future__ import annotations

import asyncio
from argparse import ArgumentParser
from datetime import date
from pathlib import Path

import pandas as pd
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.models.meal import MEAL_TYPES
from core.tokens import mess_today
from services.db import Token, session_scope


async def _load(db: AsyncSession, day: date, college: str) -> pd.DataFrame:
    rows = (
        await db.execute(
            select(Token.meal_type, Token.is_used).where(
                Token.meal_date == day, Token.college_name == college
            )
        )
    ).all()
    return pd.DataFrame(rows, columns=["meal_type", "is_used"])


def summarise(tokens: pd.DataFrame) -> pd.DataFrame:
    """Issued / used / unused per meal type, all four slots always present."""
    grouped = (
        tokens.assign(is_used=tokens["is_used"].astype(bool))
        .groupby("meal_type")["is_used"]
        .agg(issued="count", used="sum")
        .reindex(list(MEAL_TYPES), fill_value=0)
        .astype(int)
    )
    grouped["unused"] = grouped["issued"] - grouped["used"]
    grouped.loc["TOTAL"] = grouped.sum()
    return grouped.rename_axis("meal_type").reset_index()


async def _async_main() -> None:
    ap = ArgumentParser()
    ap.add_argument("--date", type=date.fromisoformat, help="YYYY-MM-DD (default: today)")
    ap.add_argument("--college", default=settings.default_college)
    ap.add_argument("--out", type=Path, help="write CSV here instead of printing")
    args = ap.parse_args()

    day = args.date or mess_today()
    async with session_scope() as db:
        tokens = await _load(db, day, args.college)

    report = summarise(tokens)
    if args.out:
        report.to_csv(args.out, index=False)
        print(f"✓ wrote {len(tokens)} tokens for {day} to {args.out}")
    else:
        print(f"Tokens for «{args.college}» on {day}")
        print(report.to_string(index=False))


if __name__ == "__main__":  # pragma: no cover
    asyncio.run(_async_main())
