from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from schemas.grocery_lists import GroceryListItemOut


MealType = Literal["lunch", "dinner"]
SlotType = Literal["cook", "leftover", "eat_out"]


class MealPlanIn(BaseModel):
    """Input model for creating a meal plan."""

    start_date: Annotated[date, Field(description="First day of the plan")]
    end_date: Annotated[date, Field(description="Last day of the plan (inclusive)")]
    order_date: date | None = Field(default=None, description="Grocery order day")
    pickup_date: date | None = Field(default=None, description="Grocery pickup day")

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check_range(self) -> MealPlanIn:
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class MealPlanPatch(BaseModel):
    """Partial update of a plan's dates. Does not change the plan version."""

    start_date: date | None = None
    end_date: date | None = None
    order_date: date | None = None
    pickup_date: date | None = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _range_dates_not_null(self) -> MealPlanPatch:
        # order/pickup dates may be cleared; the plan range may not
        for field in ("start_date", "end_date"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        if (
            self.start_date is not None
            and self.end_date is not None
            and self.start_date > self.end_date
        ):
            raise ValueError("start_date must be on or before end_date")
        return self


class MealPlanOut(BaseModel):
    id: Annotated[UUID, Field(description="Unique identifier for the plan")]
    start_date: date
    end_date: date
    order_date: date | None = None
    pickup_date: date | None = None
    version: Annotated[int, Field(description="Bumped on every slot change")]

    model_config = ConfigDict(from_attributes=True)


class MealPlanItemIn(BaseModel):
    """Input model for adding a slot to a plan."""

    plan_date: Annotated[date, Field(description="Day within the plan range")]
    meal_type: MealType = Field(default="dinner", description="Meal type")
    slot_type: SlotType = Field(default="cook", description="Cook, leftover, or eat out")
    recipe_id: UUID | None = Field(
        default=None, description="Recipe to cook; required for cook slots only"
    )
    leftover_source_item_id: UUID | None = Field(
        default=None, description="Earlier cook slot a leftover slot reuses"
    )
    serving_multiplier: Decimal = Field(
        default=Decimal(1), gt=0, description="Scale applied to the recipe's amounts"
    )
    note: str | None = Field(default=None, description="Free text, e.g. restaurant")

    model_config = ConfigDict(extra="forbid")


class MealPlanItemPatch(BaseModel):
    """Change a slot's servings, either to an absolute value or by a delta."""

    serving_multiplier: Decimal | None = Field(default=None, gt=0)
    serving_delta: Decimal | None = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _exactly_one(self) -> MealPlanItemPatch:
        if (self.serving_multiplier is None) == (self.serving_delta is None):
            raise ValueError("Provide exactly one of serving_multiplier or serving_delta")
        return self


class MealPlanItemOut(BaseModel):
    id: UUID
    meal_plan_id: UUID
    plan_date: date
    meal_type: MealType
    slot_type: SlotType
    recipe_id: UUID | None = None
    recipe_name: str | None = None
    leftover_source_item_id: UUID | None = None
    serving_multiplier: Decimal
    note: str | None = None


class ClearedSlotOut(BaseModel):
    plan_date: date
    meal_type: MealType
    removed: Annotated[int, Field(description="Number of slot entries removed")]
    version: int


class PlanOverviewOut(BaseModel):
    """One plan on the dashboard: its slots and what is left to buy."""

    plan: MealPlanOut
    slots: list[MealPlanItemOut]
    grocery_preview: Annotated[
        list[GroceryListItemOut],
        Field(description="Stored main-list rows (no pantry staples), by name"),
    ]
