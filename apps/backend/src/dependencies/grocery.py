"""Grocery list service dependency."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from core.config import get_settings
from crud.grocery_lists import SqlAlchemyGroceryStore
from dependencies.db import DbSession
from services.grocery.staleness import GroceryListService


def get_grocery_service(db: DbSession) -> GroceryListService:
    """Build a service bound to the request's session and the shared guard."""
    settings = get_settings()
    return GroceryListService(
        SqlAlchemyGroceryStore(db),
        carry_forward_state=settings.GROCERY_CARRY_FORWARD_STATE,
    )


GroceryService = Annotated[GroceryListService, Depends(get_grocery_service)]
