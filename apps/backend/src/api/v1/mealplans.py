from __future__ import annotations

import logging
from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.v1.grocery_lists import grocery_item_out
from crud.grocery_lists import grocery_item_crud
from crud.meal_plans import item_to_dict, meal_plan_crud
from dependencies.db import get_db
from schemas.api import ApiResponse
from schemas.mealplans import (
    ClearedSlotOut,
    MealPlanIn,
    MealPlanItemIn,
    MealPlanItemOut,
    MealPlanItemPatch,
    MealPlanOut,
    MealPlanPatch,
    MealType,
    PlanOverviewOut,
)


router = APIRouter(prefix="/mealplans", tags=["mealplans"])

logger = logging.getLogger(__name__)


@router.get(
    "",
    summary="List active meal plans",
    response_model=ApiResponse[list[MealPlanOut]],
    description="Current plans first, then future plans, each ordered by start date.",
)
async def list_meal_plans(
    db: Annotated[AsyncSession, Depends(get_db)],
    active_on: Annotated[
        date | None, Query(description="Reference day (defaults to today)")
    ] = None,
) -> ApiResponse[list[MealPlanOut]]:
    plans = await meal_plan_crud.list_active(db, active_on or date.today())
    return ApiResponse(data=[MealPlanOut.model_validate(p) for p in plans])


@router.post(
    "",
    summary="Create a meal plan",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[MealPlanOut],
)
async def create_meal_plan(
    payload: MealPlanIn,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[MealPlanOut]:
    plan = await meal_plan_crud.create(db, payload)
    logger.info("Created meal plan %s (%s to %s)", plan.id, plan.start_date, plan.end_date)
    return ApiResponse(data=MealPlanOut.model_validate(plan), message="Meal plan created")


@router.get(
    "/overview",
    summary="Dashboard overview of recent plans",
    response_model=ApiResponse[list[PlanOverviewOut]],
    description=(
        "The most recent plans by start date, each with its slots and the "
        "stored main-list grocery rows. Lists are not regenerated here; open "
        "a plan's grocery list to refresh it."
    ),
)
async def meal_plan_overview(
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: Annotated[int, Query(ge=1, le=12, description="Plans to include")] = 4,
) -> ApiResponse[list[PlanOverviewOut]]:
    plans = await meal_plan_crud.list_recent(db, limit)
    plan_ids = [p.id for p in plans]
    slots = await meal_plan_crud.list_items_for_plans(db, plan_ids)
    groceries = await grocery_item_crud.main_rows_for_plans(db, plan_ids)
    return ApiResponse(
        data=[
            PlanOverviewOut(
                plan=MealPlanOut.model_validate(p),
                slots=[MealPlanItemOut(**item_to_dict(i)) for i in slots[p.id]],
                grocery_preview=[grocery_item_out(r) for r in groceries[p.id]],
            )
            for p in plans
        ]
    )


@router.get(
    "/{plan_id}",
    summary="Get a meal plan",
    response_model=ApiResponse[MealPlanOut],
)
async def get_meal_plan(
    plan_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[MealPlanOut]:
    plan = await meal_plan_crud.get(db, plan_id)
    return ApiResponse(data=MealPlanOut.model_validate(plan))


@router.patch(
    "/{plan_id}",
    summary="Update meal plan dates",
    response_model=ApiResponse[MealPlanOut],
)
async def update_meal_plan(
    plan_id: UUID,
    patch: MealPlanPatch,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[MealPlanOut]:
    plan = await meal_plan_crud.update_dates(db, plan_id, patch)
    return ApiResponse(data=MealPlanOut.model_validate(plan))


@router.delete(
    "/{plan_id}",
    summary="Delete a meal plan",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_meal_plan(
    plan_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    await meal_plan_crud.delete(db, plan_id)
    logger.info("Deleted meal plan %s", plan_id)


@router.get(
    "/{plan_id}/items",
    summary="List a plan's slots",
    response_model=ApiResponse[list[MealPlanItemOut]],
)
async def list_plan_items(
    plan_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[list[MealPlanItemOut]]:
    items = await meal_plan_crud.list_items(db, plan_id)
    return ApiResponse(data=[MealPlanItemOut(**item_to_dict(i)) for i in items])


@router.post(
    "/{plan_id}/items",
    summary="Add a slot to a plan",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[MealPlanItemOut],
)
async def add_plan_item(
    plan_id: UUID,
    entry: MealPlanItemIn,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[MealPlanItemOut]:
    item = await meal_plan_crud.add_item(db, plan_id, entry)
    return ApiResponse(data=MealPlanItemOut(**item_to_dict(item)))


@router.patch(
    "/{plan_id}/items/{item_id}",
    summary="Change a slot's servings",
    response_model=ApiResponse[MealPlanItemOut],
    description=(
        "Set the serving multiplier or nudge it by a delta. The result is "
        "rounded to 2 decimals with a floor of 0.25."
    ),
)
async def update_plan_item(
    plan_id: UUID,
    item_id: UUID,
    patch: MealPlanItemPatch,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[MealPlanItemOut]:
    item = await meal_plan_crud.update_serving(
        db,
        plan_id,
        item_id,
        serving_multiplier=patch.serving_multiplier,
        serving_delta=patch.serving_delta,
    )
    return ApiResponse(data=MealPlanItemOut(**item_to_dict(item)))


@router.delete(
    "/{plan_id}/items/{item_id}",
    summary="Remove a slot",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_plan_item(
    plan_id: UUID,
    item_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    await meal_plan_crud.remove_item(db, plan_id, item_id)


@router.delete(
    "/{plan_id}/slots",
    summary="Clear one day/meal slot",
    response_model=ApiResponse[ClearedSlotOut],
)
async def clear_plan_slot(
    plan_id: UUID,
    plan_date: date,
    meal_type: MealType,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[ClearedSlotOut]:
    removed = await meal_plan_crud.clear_slot(db, plan_id, plan_date, meal_type)
    plan = await meal_plan_crud.get(db, plan_id)
    return ApiResponse(
        data=ClearedSlotOut(
            plan_date=plan_date,
            meal_type=meal_type,
            removed=removed,
            version=plan.version,
        )
    )
