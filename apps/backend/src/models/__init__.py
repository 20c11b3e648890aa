"""Expose commonly used ORM models at package level.

These re-exports are intentional so callers can import from
``models`` (e.g. `from models import MealPlan`).
"""

from .base import Base  # noqa: F401
from .grocery_list_items import GroceryListItem  # noqa: F401
from .meal_plans import MealPlan, MealPlanItem  # noqa: F401
from .recipes import Recipe, RecipeIngredient  # noqa: F401
