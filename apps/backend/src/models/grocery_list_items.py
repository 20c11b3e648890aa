import uuid

from sqlalchemy import (
    UUID,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    func,
)

from .base import Base


class GroceryListItem(Base):
    """One merged line of a meal plan's grocery list.

    Rows are replaced wholesale on regeneration; users only flip the flags.
    """

    __tablename__ = "grocery_list_items"

    id = Column(UUID(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4)
    meal_plan_id = Column(
        UUID(as_uuid=True),
        ForeignKey("meal_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ingredient_name = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 3), nullable=False)
    unit_code = Column(String(16), nullable=False)
    is_pantry_staple = Column(Boolean, nullable=False, default=False)
    is_on_hand = Column(Boolean, nullable=False, default=False)
    is_checked = Column(Boolean, nullable=False, default=False)
    # v<plan version>|<normalized name>|<unit code>|<pantry bit>
    source_key = Column(String(512), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
