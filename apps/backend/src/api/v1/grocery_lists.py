"""API endpoints for grocery list functionality."""

from collections.abc import Sequence
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.error_handler import StructuredLogger
from crud.grocery_lists import grocery_item_crud
from crud.meal_plans import meal_plan_crud
from dependencies.db import get_db
from dependencies.grocery import GroceryService
from schemas.api import ApiResponse
from schemas.grocery_lists import (
    GroceryCheckRequest,
    GroceryItemPatch,
    GroceryListItemOut,
    GroceryListOut,
)
from services.grocery.aggregator import format_amount
from services.grocery.models import GroceryItemRecord, unit_label


router = APIRouter(tags=["grocery-lists"])

log = StructuredLogger(__name__)

REGENERATED_MESSAGE = "Grocery list regenerated from current meal plan."


def grocery_item_out(item: GroceryItemRecord) -> GroceryListItemOut:
    return GroceryListItemOut(
        id=item.id,
        ingredient_name=item.ingredient_name,
        amount=item.amount,
        display_amount=format_amount(item.amount),
        unit_code=item.unit_code,
        unit_label=unit_label(item.unit_code),
        is_pantry_staple=item.is_pantry_staple,
        is_on_hand=item.is_on_hand,
        is_checked=item.is_checked,
        source_key=item.source_key,
    )


def build_grocery_list(
    plan_id: UUID, version: int, items: Sequence[GroceryItemRecord]
) -> GroceryListOut:
    """Split rows into main / pantry / on-hand, each sorted by name."""
    ordered = sorted(items, key=lambda i: i.ingredient_name.lower())
    return GroceryListOut(
        meal_plan_id=plan_id,
        version=version,
        main=[
            grocery_item_out(i) for i in ordered if not i.is_pantry_staple and not i.is_on_hand
        ],
        pantry=[grocery_item_out(i) for i in ordered if i.is_pantry_staple and not i.is_on_hand],
        on_hand=[grocery_item_out(i) for i in ordered if i.is_on_hand],
    )


@router.get(
    "/mealplans/{plan_id}/grocery-list",
    summary="Get grocery list",
    response_model=ApiResponse[GroceryListOut],
    description=(
        "Return the plan's grocery list. The list is regenerated silently when "
        "it was never generated for a plan with cook slots, or when the plan "
        "changed since it was generated."
    ),
    responses={
        200: {"description": "Grocery list loaded"},
        404: {"description": "Meal plan not found"},
        502: {"description": "The data store could not be read"},
    },
)
async def get_grocery_list(
    plan_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    service: GroceryService,
) -> ApiResponse[GroceryListOut]:
    plan = await meal_plan_crud.get(db, plan_id)
    items = await service.ensure_fresh(plan_id)
    return ApiResponse(data=build_grocery_list(plan_id, plan.version, items))


@router.post(
    "/mealplans/{plan_id}/grocery-list/regenerate",
    summary="Regenerate grocery list",
    response_model=ApiResponse[GroceryListOut],
    description=(
        "Rebuild the grocery list from the plan's current cook slots. Checked "
        "and on-hand marks are reset unless carry-forward is enabled."
    ),
)
async def regenerate_grocery_list(
    plan_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    service: GroceryService,
) -> ApiResponse[GroceryListOut]:
    plan = await meal_plan_crud.get(db, plan_id)
    items = await service.regenerate(plan_id)
    log.info(
        "Grocery list regenerated on request",
        plan_id=str(plan_id),
        version=plan.version,
        rows=len(items),
    )
    return ApiResponse(
        data=build_grocery_list(plan_id, plan.version, items),
        message=REGENERATED_MESSAGE,
    )


@router.patch(
    "/grocery-items/{item_id}",
    summary="Update a grocery item",
    response_model=ApiResponse[GroceryListItemOut],
)
async def update_grocery_item(
    item_id: UUID,
    patch: GroceryItemPatch,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[GroceryListItemOut]:
    """Check/uncheck, mark on hand, or move a pantry staple to the main list."""
    item = await grocery_item_crud.update_flags(
        db,
        item_id,
        is_checked=patch.is_checked,
        is_on_hand=patch.is_on_hand,
        move_to_main=patch.is_pantry_staple is False,
    )
    return ApiResponse(data=grocery_item_out(item))


@router.post(
    "/mealplans/{plan_id}/grocery-list/check",
    summary="Check or uncheck several grocery items",
    response_model=ApiResponse[dict[str, Any]],
)
async def check_grocery_items(
    plan_id: UUID,
    request: GroceryCheckRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[dict[str, Any]]:
    await meal_plan_crud.get(db, plan_id)
    updated = await grocery_item_crud.set_checked_bulk(
        db, plan_id, request.item_ids, request.is_checked
    )
    return ApiResponse(data={"updated": updated, "is_checked": request.is_checked})
