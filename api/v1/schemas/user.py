from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from core.models.identity import Role


class UserOut(BaseModel):
    user_id: str
    full_name: str
    college_name: str
    role: Role

    model_config = ConfigDict(from_attributes=True)
