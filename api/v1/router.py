# api/v1/router.py
from fastapi import APIRouter

from . import menus, prefs, tokens, users

api_router = APIRouter()

api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(tokens.router, prefix="/tokens", tags=["Tokens"])
api_router.include_router(menus.router, prefix="/menus", tags=["Menus"])
api_router.include_router(prefs.router, prefix="/preferences", tags=["Preferences"])
