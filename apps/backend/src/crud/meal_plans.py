"""CRUD operations for meal plans and their slots.

Every structural slot change (add, remove, serving change) bumps the plan's
version in the same commit, which is what marks a generated grocery list as
stale.
"""

from collections.abc import Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import asc, delete, desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.exceptions import (
    PlanItemNotFoundError,
    PlanNotFoundError,
    PlanValidationError,
    SlotValidationError,
)
from models.grocery_list_items import GroceryListItem
from models.meal_plans import MealPlan, MealPlanItem
from models.recipes import Recipe
from schemas.mealplans import MealPlanIn, MealPlanItemIn, MealPlanPatch


MIN_SERVING_MULTIPLIER = Decimal("0.25")
SERVING_QUANTUM = Decimal("0.01")


def order_active_plans(plans: list[MealPlan], today: date) -> list[MealPlan]:
    """Current plans first, then future ones, each by start date.

    Plans that ended before ``today`` are dropped.
    """
    current = [p for p in plans if p.start_date <= today <= p.end_date]
    future = [p for p in plans if p.start_date > today]
    current.sort(key=lambda p: p.start_date)
    future.sort(key=lambda p: p.start_date)
    return current + future


def clamp_serving(value: Decimal) -> Decimal:
    """Round a multiplier to 2 places with a floor of 0.25."""
    rounded = value.quantize(SERVING_QUANTUM, rounding=ROUND_HALF_UP)
    return max(MIN_SERVING_MULTIPLIER, rounded)


def validate_slot(
    plan: MealPlan, entry: MealPlanItemIn, leftover_source: MealPlanItem | None
) -> None:
    """Check a new slot against the plan range and the slot type rules."""
    if not plan.start_date <= entry.plan_date <= plan.end_date:
        raise SlotValidationError("Slot date must fall within the plan's date range")

    if entry.slot_type == "cook":
        if entry.recipe_id is None:
            raise SlotValidationError("Cook slots require a recipe")
        if entry.leftover_source_item_id is not None:
            raise SlotValidationError("Only leftover slots may reference a source slot")
        return

    if entry.recipe_id is not None:
        raise SlotValidationError(f"{entry.slot_type} slots cannot reference a recipe")

    if entry.slot_type == "eat_out":
        if entry.leftover_source_item_id is not None:
            raise SlotValidationError("Only leftover slots may reference a source slot")
        return

    # leftover
    if entry.leftover_source_item_id is None:
        raise SlotValidationError("Leftover slots must reference a cook slot")
    if (
        leftover_source is None
        or leftover_source.meal_plan_id != plan.id
        or leftover_source.slot_type != "cook"
    ):
        raise SlotValidationError("Leftover source must be a cook slot in this plan")
    if leftover_source.plan_date > entry.plan_date:
        raise SlotValidationError("Leftover source must be on or before the leftover")


class MealPlanCRUD:
    """CRUD operations for meal plans."""

    async def get(self, db: AsyncSession, plan_id: UUID) -> MealPlan:
        result = await db.execute(
            select(MealPlan)
            .where(MealPlan.id == plan_id)
            .execution_options(populate_existing=True)
        )
        plan = result.scalar_one_or_none()
        if plan is None:
            raise PlanNotFoundError(f"Meal plan {plan_id} not found")
        return plan

    async def list_active(
        self, db: AsyncSession, today: date, user_id: UUID | None = None
    ) -> list[MealPlan]:
        """Plans ending on or after ``today``, ordered current-then-future."""
        stmt = select(MealPlan).where(MealPlan.end_date >= today)
        if user_id is not None:
            stmt = stmt.where(MealPlan.user_id == user_id)
        result = await db.execute(stmt)
        return order_active_plans(list(result.scalars().all()), today)

    async def list_recent(self, db: AsyncSession, limit: int) -> list[MealPlan]:
        """Newest plans first by start date, for the dashboard overview."""
        result = await db.execute(
            select(MealPlan).order_by(desc(MealPlan.start_date)).limit(limit)
        )
        return list(result.scalars().all())

    async def list_items_for_plans(
        self, db: AsyncSession, plan_ids: Sequence[UUID]
    ) -> dict[UUID, list[MealPlanItem]]:
        """Slots of several plans in one query, grouped by plan id."""
        grouped: dict[UUID, list[MealPlanItem]] = {pid: [] for pid in plan_ids}
        if not plan_ids:
            return grouped
        result = await db.execute(
            select(MealPlanItem)
            .where(MealPlanItem.meal_plan_id.in_(list(plan_ids)))
            .options(selectinload(MealPlanItem.recipe))
            .order_by(asc(MealPlanItem.plan_date), asc(MealPlanItem.meal_type))
        )
        for item in result.scalars().all():
            grouped[item.meal_plan_id].append(item)
        return grouped

    async def create(
        self, db: AsyncSession, payload: MealPlanIn, user_id: UUID | None = None
    ) -> MealPlan:
        plan = MealPlan(
            user_id=user_id,
            start_date=payload.start_date,
            end_date=payload.end_date,
            order_date=payload.order_date,
            pickup_date=payload.pickup_date,
            version=1,
        )
        db.add(plan)
        await db.commit()
        await db.refresh(plan)
        return plan

    async def update_dates(
        self, db: AsyncSession, plan_id: UUID, patch: MealPlanPatch
    ) -> MealPlan:
        """Change a plan's range or its order/pickup dates.

        Slots are untouched, so the version stays. A range that would leave
        existing slots outside it is refused; clear those days first.

        Args:
            db: Database session
            plan_id: Plan to update
            patch: Fields explicitly sent by the client

        Returns:
            The refreshed plan

        Raises:
            PlanNotFoundError: Unknown plan
            PlanValidationError: Inverted range, or slots outside the new range
        """
        plan = await self.get(db, plan_id)
        for field, value in patch.model_dump(exclude_unset=True).items():
            setattr(plan, field, value)
        if plan.start_date > plan.end_date:
            await db.rollback()
            raise PlanValidationError("start_date must be on or before end_date")

        outside = await db.scalar(
            select(func.count())
            .select_from(MealPlanItem)
            .where(
                MealPlanItem.meal_plan_id == plan_id,
                or_(
                    MealPlanItem.plan_date < plan.start_date,
                    MealPlanItem.plan_date > plan.end_date,
                ),
            )
        )
        if outside:
            await db.rollback()
            raise PlanValidationError(
                f"{outside} slot(s) fall outside the new date range; "
                "remove them before shrinking the plan"
            )
        await db.commit()
        await db.refresh(plan)
        return plan

    async def delete(self, db: AsyncSession, plan_id: UUID) -> None:
        """Delete a plan together with its slots and grocery rows."""
        await self.get(db, plan_id)
        await db.execute(
            delete(GroceryListItem).where(GroceryListItem.meal_plan_id == plan_id)
        )
        # Leftovers reference cook slots of the same plan; clear them first
        await db.execute(
            delete(MealPlanItem).where(
                MealPlanItem.meal_plan_id == plan_id,
                MealPlanItem.leftover_source_item_id.is_not(None),
            )
        )
        await db.execute(delete(MealPlanItem).where(MealPlanItem.meal_plan_id == plan_id))
        await db.execute(delete(MealPlan).where(MealPlan.id == plan_id))
        await db.commit()

    async def list_items(self, db: AsyncSession, plan_id: UUID) -> list[MealPlanItem]:
        await self.get(db, plan_id)
        stmt = (
            select(MealPlanItem)
            .where(MealPlanItem.meal_plan_id == plan_id)
            .options(selectinload(MealPlanItem.recipe))
            .execution_options(populate_existing=True)
            .order_by(
                asc(MealPlanItem.plan_date),
                asc(MealPlanItem.meal_type),
                asc(MealPlanItem.created_at),
            )
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def _get_item(
        self, db: AsyncSession, plan_id: UUID, item_id: UUID
    ) -> MealPlanItem:
        result = await db.execute(
            select(MealPlanItem)
            .where(MealPlanItem.id == item_id, MealPlanItem.meal_plan_id == plan_id)
            .options(selectinload(MealPlanItem.recipe))
            .execution_options(populate_existing=True)
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise PlanItemNotFoundError(f"Slot {item_id} not found in plan {plan_id}")
        return item

    async def _bump_version(self, db: AsyncSession, plan_id: UUID) -> None:
        await db.execute(
            update(MealPlan)
            .where(MealPlan.id == plan_id)
            .values(version=MealPlan.version + 1)
        )

    async def add_item(
        self, db: AsyncSession, plan_id: UUID, entry: MealPlanItemIn
    ) -> MealPlanItem:
        """Add one slot to a plan and bump the plan version in the same commit.

        Args:
            db: Database session
            plan_id: Plan receiving the slot
            entry: Slot to add; its multiplier is rounded to 2 places, floor 0.25

        Returns:
            The stored slot with its recipe loaded

        Raises:
            PlanNotFoundError: Unknown plan
            SlotValidationError: Date outside the plan, unknown recipe, or a
                cook/leftover/eat_out rule is broken
        """
        plan = await self.get(db, plan_id)

        leftover_source: MealPlanItem | None = None
        if entry.leftover_source_item_id is not None:
            leftover_source = await db.get(MealPlanItem, entry.leftover_source_item_id)
        if entry.recipe_id is not None and await db.get(Recipe, entry.recipe_id) is None:
            raise SlotValidationError("Recipe not found")
        validate_slot(plan, entry, leftover_source)

        item = MealPlanItem(
            meal_plan_id=plan_id,
            plan_date=entry.plan_date,
            meal_type=entry.meal_type,
            slot_type=entry.slot_type,
            recipe_id=entry.recipe_id,
            leftover_source_item_id=entry.leftover_source_item_id,
            serving_multiplier=clamp_serving(entry.serving_multiplier),
            note=entry.note,
        )
        db.add(item)
        await self._bump_version(db, plan_id)
        await db.commit()
        return await self._get_item(db, plan_id, item.id)

    async def update_serving(
        self,
        db: AsyncSession,
        plan_id: UUID,
        item_id: UUID,
        *,
        serving_multiplier: Decimal | None = None,
        serving_delta: Decimal | None = None,
    ) -> MealPlanItem:
        """Set or nudge a slot's multiplier (floor 0.25, 2 decimals)."""
        item = await self._get_item(db, plan_id, item_id)
        if serving_multiplier is not None:
            target = serving_multiplier
        else:
            target = Decimal(str(item.serving_multiplier)) + (serving_delta or Decimal(0))
        item.serving_multiplier = clamp_serving(target)
        await self._bump_version(db, plan_id)
        await db.commit()
        return await self._get_item(db, plan_id, item_id)

    async def remove_item(self, db: AsyncSession, plan_id: UUID, item_id: UUID) -> None:
        await self._get_item(db, plan_id, item_id)
        # Leftovers that pointed at this slot lose their source
        await db.execute(
            update(MealPlanItem)
            .where(MealPlanItem.leftover_source_item_id == item_id)
            .values(leftover_source_item_id=None)
        )
        await db.execute(delete(MealPlanItem).where(MealPlanItem.id == item_id))
        await self._bump_version(db, plan_id)
        await db.commit()

    async def clear_slot(
        self, db: AsyncSession, plan_id: UUID, plan_date: date, meal_type: str
    ) -> int:
        """Remove every entry in one day/meal slot; bumps the version once."""
        await self.get(db, plan_id)
        result = await db.execute(
            select(MealPlanItem.id).where(
                MealPlanItem.meal_plan_id == plan_id,
                MealPlanItem.plan_date == plan_date,
                MealPlanItem.meal_type == meal_type,
            )
        )
        ids = list(result.scalars().all())
        if not ids:
            return 0
        await db.execute(
            update(MealPlanItem)
            .where(MealPlanItem.leftover_source_item_id.in_(ids))
            .values(leftover_source_item_id=None)
        )
        await db.execute(delete(MealPlanItem).where(MealPlanItem.id.in_(ids)))
        await self._bump_version(db, plan_id)
        await db.commit()
        return len(ids)


def item_to_dict(item: MealPlanItem) -> dict[str, Any]:
    """Flatten a slot and its recipe name for the API layer."""
    return {
        "id": item.id,
        "meal_plan_id": item.meal_plan_id,
        "plan_date": item.plan_date,
        "meal_type": item.meal_type,
        "slot_type": item.slot_type,
        "recipe_id": item.recipe_id,
        "recipe_name": item.recipe.name if item.recipe is not None else None,
        "leftover_source_item_id": item.leftover_source_item_id,
        "serving_multiplier": Decimal(str(item.serving_multiplier)),
        "note": item.note,
    }


# Singleton instance to use across the application
meal_plan_crud = MealPlanCRUD()
