"""Re-export individual schema modules for easy imports."""

from .user import UserOut
from .token import (
    RedeemIn,
    RedeemOut,
    TokenCreate,
    TokenIssued,
    TokenOut,
    TokenStatsOut,
)
from .menu import MenuIn, MenuOut
from .prefs import MealPrefsIn, MealPrefsOut

__all__ = [
    "UserOut",
    "TokenCreate",
    "TokenIssued",
    "TokenOut",
    "RedeemIn",
    "RedeemOut",
    "TokenStatsOut",
    "MenuIn",
    "MenuOut",
    "MealPrefsIn",
    "MealPrefsOut",
]
