from __future__ import annotations
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class TokenCreate(BaseModel):
    meal_type: str | None = Field(None, alias="mealType", examples=["lunch"])
    meal_date: date | None = Field(None, alias="mealDate")

    model_config = ConfigDict(populate_by_name=True)


class TokenOut(BaseModel):
    id: str
    user_id: str
    meal_type: str
    meal_date: date
    token_code: str
    qr_code_data: str
    is_used: bool
    used_at: datetime | None = None
    created_at: datetime | None = None
    college_name: str

    model_config = ConfigDict(from_attributes=True)


class TokenIssued(BaseModel):
    success: bool = True
    token: TokenOut
    message: str = "Token generated successfully"


class RedeemIn(BaseModel):
    token_code: str | None = Field(None, alias="tokenCode")
    meal_date: date | None = Field(None, alias="mealDate")

    model_config = ConfigDict(populate_by_name=True)


class RedeemOut(BaseModel):
    success: bool = True
    token: TokenOut
    meal_type: str = Field(alias="mealType")

    model_config = ConfigDict(populate_by_name=True)


class TokenStatsOut(BaseModel):
    total: int
    used: int
    unused: int

    model_config = ConfigDict(from_attributes=True)
