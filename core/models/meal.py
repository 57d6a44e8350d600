from enum import Enum


class MealType(str, Enum):
    breakfast = "breakfast"
    lunch = "lunch"
    snacks = "snacks"
    dinner = "dinner"


MEAL_TYPES: tuple[str, ...] = tuple(m.value for m in MealType)
