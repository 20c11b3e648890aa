"""Typed records passed between the grocery pipeline stages and the store.

The store speaks in these records rather than ORM rows so the pipeline stays
a set of pure transformations over already-fetched data.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class UnitCode(str, Enum):
    TSP = "tsp"
    TBSP = "tbsp"
    CUP = "cup"
    FL_OZ = "fl_oz"
    ML = "ml"
    L = "l"
    OZ = "oz"
    LB = "lb"
    G = "g"
    KG = "kg"
    ITEM = "item"
    CLOVE = "clove"
    SLICE = "slice"


UNIT_LABELS: dict[str, str] = {
    UnitCode.TSP: "teaspoon",
    UnitCode.TBSP: "tablespoon",
    UnitCode.CUP: "cup",
    UnitCode.FL_OZ: "fluid ounce",
    UnitCode.ML: "milliliter",
    UnitCode.L: "liter",
    UnitCode.OZ: "ounce",
    UnitCode.LB: "pound",
    UnitCode.G: "gram",
    UnitCode.KG: "kilogram",
    UnitCode.ITEM: "item",
    UnitCode.CLOVE: "clove",
    UnitCode.SLICE: "slice",
}


def unit_label(unit_code: str) -> str:
    """Human label for a unit code; unknown codes are shown as-is."""
    return UNIT_LABELS.get(unit_code, unit_code)


@dataclass(frozen=True, slots=True)
class CookSlot:
    """A cook-type slot as read from the store."""

    recipe_id: UUID | None
    serving_multiplier: Decimal | float | None


@dataclass(frozen=True, slots=True)
class IngredientLine:
    """One ingredient row of a recipe."""

    recipe_id: UUID
    name: str
    amount: Decimal | float | int
    unit_code: str
    is_pantry_staple: bool


@dataclass(frozen=True, slots=True)
class ScaledIngredient:
    """An ingredient instance scaled by its slot's serving multiplier (pre-merge)."""

    name: str
    amount: Decimal
    unit_code: str
    is_pantry_staple: bool
    bucket_key: str


@dataclass(slots=True)
class MergedLineItem:
    """A grocery line after folding every instance that shares a bucket key."""

    ingredient_name: str
    amount: Decimal
    unit_code: str
    is_pantry_staple: bool
    bucket_key: str


@dataclass(frozen=True, slots=True)
class NewGroceryRow:
    """A row ready to be inserted by the reconciler."""

    meal_plan_id: UUID
    ingredient_name: str
    amount: Decimal
    unit_code: str
    is_pantry_staple: bool
    source_key: str
    is_on_hand: bool = False
    is_checked: bool = False


@dataclass(frozen=True, slots=True)
class GroceryItemRecord:
    """A persisted grocery row as read back from the store."""

    id: UUID
    ingredient_name: str
    amount: Decimal
    unit_code: str
    is_pantry_staple: bool
    is_on_hand: bool
    is_checked: bool
    source_key: str
