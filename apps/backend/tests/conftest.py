"""Shared test fixtures for pytest.

Settings are pinned to the test environment before the app is imported so
``setup_logging`` and ``get_settings`` never look for a developer .env file.
Database tests run against in-memory SQLite through aiosqlite.
"""

import os
from collections.abc import AsyncIterator
from datetime import date
from decimal import Decimal
from uuid import UUID

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool


os.environ.setdefault("ENVIRONMENT", "test")

from dependencies.db import get_db  # noqa: E402
from main import app  # noqa: E402
from models.base import Base  # noqa: E402
from models.grocery_list_items import GroceryListItem  # noqa: E402
from models.meal_plans import MealPlan, MealPlanItem  # noqa: E402
from models.recipes import Recipe, RecipeIngredient  # noqa: E402


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """In-memory SQLite engine with the full schema created from the models."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def api_client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncClient]:
    """Async client wired to the FastAPI app with get_db pointed at SQLite."""

    async def _override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.pop(get_db, None)


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------


async def seed_recipe(
    db: AsyncSession,
    name: str,
    ingredients: list[tuple[str, str, str, bool]],
) -> Recipe:
    """Create a recipe; ingredients are ``(name, amount, unit_code, pantry)``."""
    recipe = Recipe(name=name)
    db.add(recipe)
    await db.flush()
    for ing_name, amount, unit_code, pantry in ingredients:
        db.add(
            RecipeIngredient(
                recipe_id=recipe.id,
                name=ing_name,
                amount=Decimal(amount),
                unit_code=unit_code,
                is_pantry_staple=pantry,
            )
        )
    await db.commit()
    return recipe


async def seed_plan(
    db: AsyncSession,
    start: date = date(2025, 3, 3),
    end: date = date(2025, 3, 9),
    version: int = 1,
) -> MealPlan:
    plan = MealPlan(start_date=start, end_date=end, version=version)
    db.add(plan)
    await db.commit()
    return plan


async def seed_slot(
    db: AsyncSession,
    plan_id: UUID,
    plan_date: date,
    *,
    slot_type: str = "cook",
    recipe_id: UUID | None = None,
    meal_type: str = "dinner",
    serving_multiplier: str = "1",
    leftover_source_item_id: UUID | None = None,
) -> MealPlanItem:
    """Insert a slot directly, without bumping the plan version."""
    item = MealPlanItem(
        meal_plan_id=plan_id,
        plan_date=plan_date,
        meal_type=meal_type,
        slot_type=slot_type,
        recipe_id=recipe_id,
        serving_multiplier=Decimal(serving_multiplier),
        leftover_source_item_id=leftover_source_item_id,
    )
    db.add(item)
    await db.commit()
    return item


async def seed_grocery_row(
    db: AsyncSession,
    plan_id: UUID,
    name: str,
    amount: str,
    unit_code: str,
    source_key: str,
    *,
    pantry: bool = False,
    checked: bool = False,
    on_hand: bool = False,
) -> GroceryListItem:
    row = GroceryListItem(
        meal_plan_id=plan_id,
        ingredient_name=name,
        amount=Decimal(amount),
        unit_code=unit_code,
        is_pantry_staple=pantry,
        is_checked=checked,
        is_on_hand=on_hand,
        source_key=source_key,
    )
    db.add(row)
    await db.commit()
    return row
