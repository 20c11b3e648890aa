"""Tests for grocery list API functionality."""

from __future__ import annotations

from unittest.mock import patch
from uuid import uuid4

import pytest

from conftest import seed_recipe
from services.grocery.exceptions import FetchFailure, WriteFailure


PLANS = "/api/v1/mealplans"


async def _plan_with_cooking(client, db_session) -> str:
    """Plan with Garlic across two recipes and Salt in two units."""
    chili = await seed_recipe(
        db_session,
        "Chili",
        [("Garlic", "2", "clove", False), ("Salt", "1", "tsp", True)],
    )
    stew = await seed_recipe(
        db_session,
        "Stew",
        [("garlic", "3", "clove", False), ("Salt", "1", "tbsp", True)],
    )
    resp = await client.post(
        PLANS, json={"start_date": "2025-03-03", "end_date": "2025-03-09"}
    )
    plan_id = resp.json()["data"]["id"]
    for day, recipe in (("2025-03-03", chili), ("2025-03-04", stew)):
        created = await client.post(
            f"{PLANS}/{plan_id}/items",
            json={"plan_date": day, "recipe_id": str(recipe.id)},
        )
        assert created.status_code == 201
    return plan_id


class TestGroceryListAPI:
    @pytest.mark.asyncio
    async def test_first_load_generates_list(self, api_client, db_session) -> None:
        plan_id = await _plan_with_cooking(api_client, db_session)

        resp = await api_client.get(f"{PLANS}/{plan_id}/grocery-list")

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["version"] == 3
        assert [(i["ingredient_name"], i["display_amount"]) for i in data["main"]] == [
            ("Garlic", "5")
        ]
        assert data["main"][0]["source_key"] == "v3|garlic|clove|0"
        assert data["main"][0]["unit_label"] == "clove"
        assert sorted(i["unit_code"] for i in data["pantry"]) == ["tbsp", "tsp"]
        assert data["on_hand"] == []

    @pytest.mark.asyncio
    async def test_plan_change_refreshes_on_next_load(
        self, api_client, db_session
    ) -> None:
        plan_id = await _plan_with_cooking(api_client, db_session)
        await api_client.get(f"{PLANS}/{plan_id}/grocery-list")

        items = (await api_client.get(f"{PLANS}/{plan_id}/items")).json()["data"]
        await api_client.patch(
            f"{PLANS}/{plan_id}/items/{items[0]['id']}",
            json={"serving_multiplier": "2"},
        )

        data = (await api_client.get(f"{PLANS}/{plan_id}/grocery-list")).json()["data"]
        assert data["version"] == 4
        assert data["main"][0]["display_amount"] == "7"
        assert all(
            i["source_key"].startswith("v4|") for i in data["main"] + data["pantry"]
        )

    @pytest.mark.asyncio
    async def test_eat_out_only_plan_has_empty_list(self, api_client) -> None:
        resp = await api_client.post(
            PLANS, json={"start_date": "2025-03-03", "end_date": "2025-03-09"}
        )
        plan_id = resp.json()["data"]["id"]
        await api_client.post(
            f"{PLANS}/{plan_id}/items",
            json={"plan_date": "2025-03-03", "slot_type": "eat_out", "note": "Tacos"},
        )

        data = (await api_client.get(f"{PLANS}/{plan_id}/grocery-list")).json()["data"]

        assert data["main"] == data["pantry"] == data["on_hand"] == []

    @pytest.mark.asyncio
    async def test_manual_regenerate_resets_flags(self, api_client, db_session) -> None:
        plan_id = await _plan_with_cooking(api_client, db_session)
        data = (await api_client.get(f"{PLANS}/{plan_id}/grocery-list")).json()["data"]
        garlic_id = data["main"][0]["id"]
        await api_client.patch(f"/api/v1/grocery-items/{garlic_id}", json={"is_checked": True})

        resp = await api_client.post(f"{PLANS}/{plan_id}/grocery-list/regenerate")

        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Grocery list regenerated from current meal plan."
        assert body["data"]["main"][0]["is_checked"] is False

    @pytest.mark.asyncio
    async def test_item_edits_move_between_sections(
        self, api_client, db_session
    ) -> None:
        plan_id = await _plan_with_cooking(api_client, db_session)
        data = (await api_client.get(f"{PLANS}/{plan_id}/grocery-list")).json()["data"]
        salt_id = data["pantry"][0]["id"]
        garlic_id = data["main"][0]["id"]

        moved = await api_client.patch(
            f"/api/v1/grocery-items/{salt_id}", json={"is_pantry_staple": False}
        )
        assert moved.json()["data"]["is_pantry_staple"] is False
        await api_client.patch(
            f"/api/v1/grocery-items/{garlic_id}", json={"is_on_hand": True}
        )

        data = (await api_client.get(f"{PLANS}/{plan_id}/grocery-list")).json()["data"]
        assert [i["id"] for i in data["on_hand"]] == [garlic_id]
        assert [i["id"] for i in data["main"]] == [salt_id]
        assert len(data["pantry"]) == 1

    @pytest.mark.asyncio
    async def test_pantry_promotion_rejected(self, api_client) -> None:
        resp = await api_client.patch(
            f"/api/v1/grocery-items/{uuid4()}", json={"is_pantry_staple": True}
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_bulk_check(self, api_client, db_session) -> None:
        plan_id = await _plan_with_cooking(api_client, db_session)
        data = (await api_client.get(f"{PLANS}/{plan_id}/grocery-list")).json()["data"]
        pantry_ids = [i["id"] for i in data["pantry"]]

        resp = await api_client.post(
            f"{PLANS}/{plan_id}/grocery-list/check",
            json={"item_ids": pantry_ids, "is_checked": True},
        )

        assert resp.json()["data"] == {"updated": 2, "is_checked": True}
        data = (await api_client.get(f"{PLANS}/{plan_id}/grocery-list")).json()["data"]
        assert all(i["is_checked"] for i in data["pantry"])

    @pytest.mark.asyncio
    async def test_unknown_plan_and_item(self, api_client) -> None:
        resp = await api_client.get(f"{PLANS}/{uuid4()}/grocery-list")
        assert resp.status_code == 404

        resp = await api_client.patch(
            f"/api/v1/grocery-items/{uuid4()}", json={"is_checked": True}
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_store_failures_map_to_error_envelope(
        self, api_client, db_session
    ) -> None:
        plan_id = await _plan_with_cooking(api_client, db_session)

        with patch(
            "crud.grocery_lists.SqlAlchemyGroceryStore.fetch_ingredients",
            side_effect=FetchFailure("Could not load recipe ingredients"),
        ):
            resp = await api_client.get(f"{PLANS}/{plan_id}/grocery-list")
        assert resp.status_code == 502
        assert resp.json()["error"]["type"] == "fetch_failed"

        with patch(
            "crud.grocery_lists.SqlAlchemyGroceryStore.insert_grocery_items",
            side_effect=WriteFailure("Could not save the new grocery list"),
        ):
            resp = await api_client.post(f"{PLANS}/{plan_id}/grocery-list/regenerate")
        body = resp.json()
        assert resp.status_code == 500
        assert body["success"] is False
        assert body["error"]["type"] == "write_failed"

        # Nothing was committed by either failed attempt
        data = (await api_client.get(f"{PLANS}/{plan_id}/grocery-list")).json()["data"]
        assert data["main"][0]["display_amount"] == "5"
