"""Expand a meal plan's cook slots into scaled ingredient instances."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from services.grocery.interfaces import GroceryStoreProtocol
from services.grocery.models import CookSlot, IngredientLine, ScaledIngredient
from services.grocery.normalizer import bucket_key


logger = logging.getLogger(__name__)

DEFAULT_MULTIPLIER = Decimal(1)


def to_decimal(value: Decimal | float | int | str) -> Decimal:
    """Convert a numeric store value to Decimal without float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def effective_multiplier(value: Decimal | float | None) -> Decimal:
    """Serving multiplier for a slot; missing or zero means one serving set."""
    if not value:
        return DEFAULT_MULTIPLIER
    return to_decimal(value)


def distinct_recipe_ids(slots: Iterable[CookSlot]) -> list[UUID]:
    """Recipe ids referenced by the slots, first-seen order, nulls dropped."""
    return list(dict.fromkeys(s.recipe_id for s in slots if s.recipe_id))


def expand_slots(
    slots: Iterable[CookSlot], ingredients: Iterable[IngredientLine]
) -> list[ScaledIngredient]:
    """Produce one scaled instance per (slot, ingredient) pair.

    Slots without a recipe are skipped. Amounts are multiplied as-is, so
    zero or negative amounts pass through unchanged in sign.
    """
    by_recipe: dict[UUID, list[IngredientLine]] = defaultdict(list)
    for line in ingredients:
        by_recipe[line.recipe_id].append(line)

    scaled: list[ScaledIngredient] = []
    for slot in slots:
        if not slot.recipe_id:
            continue
        multiplier = effective_multiplier(slot.serving_multiplier)
        for line in by_recipe.get(slot.recipe_id, []):
            scaled.append(
                ScaledIngredient(
                    name=line.name,
                    amount=to_decimal(line.amount) * multiplier,
                    unit_code=line.unit_code,
                    is_pantry_staple=bool(line.is_pantry_staple),
                    bucket_key=bucket_key(
                        line.name, line.unit_code, bool(line.is_pantry_staple)
                    ),
                )
            )
    return scaled


async def expand_plan(
    store: GroceryStoreProtocol, plan_id: UUID
) -> list[ScaledIngredient]:
    """Read the plan's cook slots and their recipes' ingredients, then expand.

    Ingredients are fetched with a single batched call across every distinct
    recipe referenced by the plan.

    Args:
        store: Source of cook slots and recipe ingredients
        plan_id: Plan to expand

    Returns:
        One scaled instance per (cook slot, ingredient) pair
    """
    slots = await store.fetch_cook_slots(plan_id)
    recipe_ids = distinct_recipe_ids(slots)

    ingredients: list[IngredientLine] = []
    if recipe_ids:
        ingredients = await store.fetch_ingredients(recipe_ids)

    scaled = expand_slots(slots, ingredients)
    logger.debug(
        "Expanded plan %s: %d cook slots, %d recipes, %d ingredient instances",
        plan_id,
        len(slots),
        len(recipe_ids),
        len(scaled),
    )
    return scaled
