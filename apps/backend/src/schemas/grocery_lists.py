"""Schemas for grocery list functionality."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class GroceryListItemOut(BaseModel):
    """A single merged grocery line of a meal plan."""

    id: Annotated[UUID, Field(description="Grocery item identifier")]
    ingredient_name: Annotated[str, Field(description="Display name")]
    amount: Annotated[
        Decimal, Field(description="Total amount across all cook slots (3 decimals)")
    ]
    display_amount: Annotated[
        str, Field(description="Amount with trailing zeros removed, e.g. '1.25'")
    ]
    unit_code: Annotated[str, Field(description="Unit for the amount")]
    unit_label: Annotated[str, Field(description="Readable unit, e.g. 'teaspoon'")]
    is_pantry_staple: bool
    is_on_hand: bool
    is_checked: bool
    source_key: Annotated[
        str, Field(description="v<plan version>|<name>|<unit>|<pantry bit>")
    ]

    model_config = ConfigDict(extra="forbid")


class GroceryListOut(BaseModel):
    """A plan's grocery list split the way the shopping screen shows it."""

    meal_plan_id: UUID
    version: Annotated[int, Field(description="Plan version the list reflects")]
    main: Annotated[
        list[GroceryListItemOut],
        Field(description="Items to buy: not pantry staples, not on hand"),
    ]
    pantry: Annotated[
        list[GroceryListItemOut],
        Field(description="Pantry staples not marked as on hand"),
    ]
    on_hand: Annotated[
        list[GroceryListItemOut], Field(description="Items the household already has")
    ]

    model_config = ConfigDict(extra="forbid")


class GroceryItemPatch(BaseModel):
    """User edits to one grocery row.

    ``is_pantry_staple`` only accepts ``False``: a staple can be moved to the
    main list, never the other way round.
    """

    is_checked: bool | None = None
    is_on_hand: bool | None = None
    is_pantry_staple: bool | None = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _validate(self) -> GroceryItemPatch:
        if self.is_checked is None and self.is_on_hand is None and self.is_pantry_staple is None:
            raise ValueError("Nothing to update")
        if self.is_pantry_staple is True:
            raise ValueError("Items can only be moved from pantry to the main list")
        return self


class GroceryCheckRequest(BaseModel):
    """Check or uncheck several rows at once (a whole section)."""

    item_ids: Annotated[list[UUID], Field(description="Rows to update")]
    is_checked: bool

    model_config = ConfigDict(extra="forbid")
