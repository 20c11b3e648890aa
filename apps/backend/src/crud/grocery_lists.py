"""SQLAlchemy-backed grocery store and grocery row mutations."""

from collections.abc import Iterable, Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import GroceryItemNotFoundError, PlanNotFoundError
from models.grocery_list_items import GroceryListItem
from models.meal_plans import MealPlan, MealPlanItem
from models.recipes import RecipeIngredient
from services.grocery.exceptions import FetchFailure, WriteFailure
from services.grocery.models import (
    CookSlot,
    GroceryItemRecord,
    IngredientLine,
    NewGroceryRow,
)


COOK_SLOT = "cook"


def to_record(item: GroceryListItem) -> GroceryItemRecord:
    return GroceryItemRecord(
        id=item.id,
        ingredient_name=item.ingredient_name,
        amount=Decimal(str(item.amount)),
        unit_code=item.unit_code,
        is_pantry_staple=bool(item.is_pantry_staple),
        is_on_hand=bool(item.is_on_hand),
        is_checked=bool(item.is_checked),
        source_key=item.source_key,
    )


class SqlAlchemyGroceryStore:
    """Grocery pipeline store over an ``AsyncSession``.

    Reads wrap driver errors in ``FetchFailure``; deletes, inserts and commits
    wrap them in ``WriteFailure``. Writes stay in the session's transaction
    until ``commit`` so a replace is all-or-nothing.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def fetch_cook_slots(self, plan_id: UUID) -> list[CookSlot]:
        stmt = select(MealPlanItem.recipe_id, MealPlanItem.serving_multiplier).where(
            MealPlanItem.meal_plan_id == plan_id,
            MealPlanItem.slot_type == COOK_SLOT,
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise FetchFailure("Could not load the plan's cook slots") from exc
        return [
            CookSlot(recipe_id=row.recipe_id, serving_multiplier=row.serving_multiplier)
            for row in result
        ]

    async def fetch_ingredients(self, recipe_ids: Iterable[UUID]) -> list[IngredientLine]:
        ids = list(recipe_ids)
        if not ids:
            return []
        stmt = select(
            RecipeIngredient.recipe_id,
            RecipeIngredient.name,
            RecipeIngredient.amount,
            RecipeIngredient.unit_code,
            RecipeIngredient.is_pantry_staple,
        ).where(RecipeIngredient.recipe_id.in_(ids))
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise FetchFailure("Could not load recipe ingredients") from exc
        return [
            IngredientLine(
                recipe_id=row.recipe_id,
                name=row.name,
                amount=row.amount,
                unit_code=row.unit_code,
                is_pantry_staple=bool(row.is_pantry_staple),
            )
            for row in result
        ]

    async def delete_grocery_items(self, plan_id: UUID) -> None:
        try:
            await self.db.execute(
                delete(GroceryListItem).where(GroceryListItem.meal_plan_id == plan_id)
            )
        except SQLAlchemyError as exc:
            raise WriteFailure("Could not clear the existing grocery list") from exc

    async def insert_grocery_items(self, rows: Sequence[NewGroceryRow]) -> None:
        if not rows:
            return
        values = [
            {
                "meal_plan_id": row.meal_plan_id,
                "ingredient_name": row.ingredient_name,
                "amount": row.amount,
                "unit_code": row.unit_code,
                "is_pantry_staple": row.is_pantry_staple,
                "is_on_hand": row.is_on_hand,
                "is_checked": row.is_checked,
                "source_key": row.source_key,
            }
            for row in rows
        ]
        try:
            await self.db.execute(insert(GroceryListItem), values)
        except SQLAlchemyError as exc:
            raise WriteFailure("Could not save the new grocery list") from exc

    async def fetch_grocery_items(self, plan_id: UUID) -> list[GroceryItemRecord]:
        stmt = (
            select(GroceryListItem)
            .where(GroceryListItem.meal_plan_id == plan_id)
            .order_by(GroceryListItem.ingredient_name.asc(), GroceryListItem.id.asc())
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise FetchFailure("Could not load the grocery list") from exc
        return [to_record(item) for item in result.scalars().all()]

    async def fetch_plan_version(self, plan_id: UUID) -> int:
        try:
            result = await self.db.execute(
                select(MealPlan.version).where(MealPlan.id == plan_id)
            )
        except SQLAlchemyError as exc:
            raise FetchFailure("Could not load the meal plan") from exc
        version = result.scalar_one_or_none()
        if version is None:
            raise PlanNotFoundError(f"Meal plan {plan_id} not found")
        return int(version)

    async def count_cook_slots(self, plan_id: UUID) -> int:
        stmt = select(func.count(MealPlanItem.id)).where(
            MealPlanItem.meal_plan_id == plan_id,
            MealPlanItem.slot_type == COOK_SLOT,
            MealPlanItem.recipe_id.is_not(None),
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise FetchFailure("Could not count the plan's cook slots") from exc
        return int(result.scalar() or 0)

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise WriteFailure("Could not commit the new grocery list") from exc

    async def rollback(self) -> None:
        await self.db.rollback()


class GroceryItemCRUD:
    """User edits to grocery rows. None of them touch the source key."""

    async def _get(self, db: AsyncSession, item_id: UUID) -> GroceryListItem:
        result = await db.execute(
            select(GroceryListItem).where(GroceryListItem.id == item_id)
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise GroceryItemNotFoundError(f"Grocery item {item_id} not found")
        return item

    async def update_flags(
        self,
        db: AsyncSession,
        item_id: UUID,
        *,
        is_checked: bool | None = None,
        is_on_hand: bool | None = None,
        move_to_main: bool = False,
    ) -> GroceryItemRecord:
        """Apply any combination of flag edits to one row and commit."""
        item = await self._get(db, item_id)
        if is_checked is not None:
            item.is_checked = is_checked
        if is_on_hand is not None:
            item.is_on_hand = is_on_hand
        if move_to_main:
            item.is_pantry_staple = False
        await db.commit()
        await db.refresh(item)
        return to_record(item)

    async def set_checked(
        self, db: AsyncSession, item_id: UUID, is_checked: bool
    ) -> GroceryItemRecord:
        return await self.update_flags(db, item_id, is_checked=is_checked)

    async def set_on_hand(
        self, db: AsyncSession, item_id: UUID, is_on_hand: bool
    ) -> GroceryItemRecord:
        return await self.update_flags(db, item_id, is_on_hand=is_on_hand)

    async def move_to_main(self, db: AsyncSession, item_id: UUID) -> GroceryItemRecord:
        """Demote a pantry staple onto the main list."""
        return await self.update_flags(db, item_id, move_to_main=True)

    async def set_checked_bulk(
        self,
        db: AsyncSession,
        plan_id: UUID,
        item_ids: Sequence[UUID],
        is_checked: bool,
    ) -> int:
        """Set ``is_checked`` on the given rows of one plan; returns rows changed."""
        if not item_ids:
            return 0
        result = await db.execute(
            update(GroceryListItem)
            .where(
                GroceryListItem.meal_plan_id == plan_id,
                GroceryListItem.id.in_(list(item_ids)),
            )
            .values(is_checked=is_checked)
        )
        await db.commit()
        return int(result.rowcount or 0)

    async def main_rows_for_plans(
        self, db: AsyncSession, plan_ids: Sequence[UUID]
    ) -> dict[UUID, list[GroceryItemRecord]]:
        """Stored non-pantry rows of several plans, grouped by plan id.

        Reads what is stored; no plan is regenerated here.

        Args:
            db: Database session
            plan_ids: Plans to preview

        Returns:
            Rows per plan id sorted by ingredient name; every requested id
            is present, possibly with an empty list
        """
        grouped: dict[UUID, list[GroceryItemRecord]] = {pid: [] for pid in plan_ids}
        if not plan_ids:
            return grouped
        result = await db.execute(
            select(GroceryListItem)
            .where(
                GroceryListItem.meal_plan_id.in_(list(plan_ids)),
                GroceryListItem.is_pantry_staple.is_(False),
            )
            .order_by(func.lower(GroceryListItem.ingredient_name))
        )
        for item in result.scalars().all():
            grouped[item.meal_plan_id].append(to_record(item))
        return grouped


# Singleton instance to use across the application
grocery_item_crud = GroceryItemCRUD()
