from __future__ import annotations
from datetime import date

from pydantic import BaseModel, ConfigDict


class MealPrefsIn(BaseModel):
    """Only the flags present in the request are written."""

    skip_breakfast: bool | None = None
    skip_lunch: bool | None = None
    skip_snacks: bool | None = None
    skip_dinner: bool | None = None


class MealPrefsOut(BaseModel):
    meal_date: date
    skip_breakfast: bool = False
    skip_lunch: bool = False
    skip_snacks: bool = False
    skip_dinner: bool = False

    model_config = ConfigDict(from_attributes=True)
