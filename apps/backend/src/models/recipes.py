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
from sqlalchemy.orm import relationship

from .base import Base


class Recipe(Base):
    """Recipe header. Authored elsewhere; meal plan slots only reference it."""

    __tablename__ = "recipes"

    id = Column(UUID(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    base_servings = Column(Numeric(6, 2), nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    ingredients = relationship(
        "RecipeIngredient", back_populates="recipe", passive_deletes=True
    )


class RecipeIngredient(Base):
    __tablename__ = "ingredients"

    id = Column(UUID(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4)
    recipe_id = Column(
        UUID(as_uuid=True),
        ForeignKey("recipes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    # Not validated here: zero or negative amounts flow through the grocery math
    amount = Column(Numeric(12, 3), nullable=False)
    unit_code = Column(String(16), nullable=False)
    is_pantry_staple = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    recipe = relationship("Recipe", back_populates="ingredients")
