from __future__ import annotations

from fastapi import APIRouter, Depends

from api.v1.deps import current_identity
from api.v1.schemas import UserOut
from core.models.identity import Identity

router = APIRouter()


# ───────────────────────── me ───────────────────────────────
@router.get("/me", response_model=UserOut)
async def whoami(identity: Identity = Depends(current_identity)) -> UserOut:
    return UserOut.model_validate(identity, from_attributes=True)
