from __future__ import annotations
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict


class MenuIn(BaseModel):
    """Comma separated free text per meal; no item structure is enforced."""

    breakfast: str = ""
    lunch: str = ""
    snacks: str = ""
    dinner: str = ""


class MenuOut(MenuIn):
    meal_date: date
    college_name: str
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
