"""Store interface consumed by the grocery list pipeline.

The pipeline never talks to the database directly; it only needs the
filter/insert/delete operations below. ``crud.grocery_lists`` provides the
SQLAlchemy implementation, tests provide in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol
from uuid import UUID

from services.grocery.models import (
    CookSlot,
    GroceryItemRecord,
    IngredientLine,
    NewGroceryRow,
)


class GroceryStoreProtocol(Protocol):
    """Operations the grocery pipeline needs from the relational store.

    Reads raise ``FetchFailure`` and writes raise ``WriteFailure`` when the
    underlying store fails. Writes are staged until ``commit``.
    """

    async def fetch_cook_slots(self, plan_id: UUID) -> list[CookSlot]:
        """Return the plan's slots with ``slot_type == "cook"``."""
        ...

    async def fetch_ingredients(
        self, recipe_ids: Iterable[UUID]
    ) -> list[IngredientLine]:
        """Return every ingredient of the given recipes in one call."""
        ...

    async def delete_grocery_items(self, plan_id: UUID) -> None:
        """Remove every grocery row of the plan."""
        ...

    async def insert_grocery_items(self, rows: Sequence[NewGroceryRow]) -> None:
        """Bulk insert merged, stamped rows."""
        ...

    async def fetch_grocery_items(self, plan_id: UUID) -> list[GroceryItemRecord]:
        """Return the plan's grocery rows ordered by ingredient name."""
        ...

    async def fetch_plan_version(self, plan_id: UUID) -> int:
        """Return the plan's current version counter."""
        ...

    async def count_cook_slots(self, plan_id: UUID) -> int:
        """Count the plan's cook slots that reference a recipe."""
        ...

    async def commit(self) -> None:
        """Make staged writes durable."""
        ...

    async def rollback(self) -> None:
        """Discard staged writes."""
        ...
