import uuid

from sqlalchemy import (
    UUID,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from .base import Base


class MealPlan(Base):
    __tablename__ = "meal_plans"
    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_meal_plans_date_order"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    order_date = Column(Date, nullable=True)
    pickup_date = Column(Date, nullable=True)
    # Incremented on every slot add/remove/serving change; stamped into grocery
    # source keys to detect stale lists.
    version = Column(Integer, nullable=False, default=1, server_default="1")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    items = relationship("MealPlanItem", back_populates="meal_plan", passive_deletes=True)


class MealPlanItem(Base):
    __tablename__ = "meal_plan_items"

    id = Column(UUID(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4)
    meal_plan_id = Column(
        UUID(as_uuid=True),
        ForeignKey("meal_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    plan_date = Column(Date, nullable=False)
    meal_type = Column(String(16), nullable=False, default="dinner")  # lunch | dinner
    slot_type = Column(String(16), nullable=False, default="cook")  # cook | leftover | eat_out
    recipe_id = Column(
        UUID(as_uuid=True), ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True
    )
    leftover_source_item_id = Column(
        UUID(as_uuid=True),
        ForeignKey("meal_plan_items.id", ondelete="SET NULL"),
        nullable=True,
    )
    serving_multiplier = Column(Numeric(6, 2), nullable=False, default=1)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    meal_plan = relationship("MealPlan", back_populates="items")
    recipe = relationship("Recipe")
