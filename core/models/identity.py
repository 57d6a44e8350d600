from __future__ import annotations
from enum import Enum

from pydantic import BaseModel, Field

from config import settings


class Role(str, Enum):
    student = "student"
    admin = "admin"


class Identity(BaseModel):
    """Authenticated caller, resolved once per request and passed explicitly."""

    user_id: str
    college_name: str = Field(default_factory=lambda: settings.default_college)
    role: Role = Role.student
    full_name: str = "User"

    @property
    def is_admin(self) -> bool:
        return self.role is Role.admin
