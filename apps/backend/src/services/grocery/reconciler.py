"""Replace a plan's persisted grocery list with a freshly merged set."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from uuid import UUID

from services.grocery.exceptions import GroceryListError
from services.grocery.interfaces import GroceryStoreProtocol
from services.grocery.models import GroceryItemRecord, MergedLineItem, NewGroceryRow
from services.grocery.source_key import split_source_key, stamp_source_key


logger = logging.getLogger(__name__)


def build_rows(
    plan_id: UUID, version: int, merged: Sequence[MergedLineItem]
) -> list[NewGroceryRow]:
    """Stamp merged lines with the plan version; user flags start cleared."""
    return [
        NewGroceryRow(
            meal_plan_id=plan_id,
            ingredient_name=line.ingredient_name,
            amount=line.amount,
            unit_code=line.unit_code,
            is_pantry_staple=line.is_pantry_staple,
            source_key=stamp_source_key(version, line.bucket_key),
        )
        for line in merged
    ]


def carry_forward_state(
    rows: Sequence[NewGroceryRow], previous: Sequence[GroceryItemRecord]
) -> list[NewGroceryRow]:
    """Copy user flags from the previous generation for unchanged buckets.

    A bucket matches when the source key minus its version head is equal.
    Checked and on-hand flags are copied; a pantry staple the user moved to
    the main list stays on the main list.
    """
    by_bucket = {split_source_key(item.source_key)[1]: item for item in previous}
    carried: list[NewGroceryRow] = []
    for row in rows:
        old = by_bucket.get(split_source_key(row.source_key)[1])
        if old is None:
            carried.append(row)
            continue
        carried.append(
            NewGroceryRow(
                meal_plan_id=row.meal_plan_id,
                ingredient_name=row.ingredient_name,
                amount=row.amount,
                unit_code=row.unit_code,
                is_pantry_staple=row.is_pantry_staple and old.is_pantry_staple,
                source_key=row.source_key,
                is_on_hand=old.is_on_hand,
                is_checked=old.is_checked,
            )
        )
    return carried


async def replace_grocery_list(
    store: GroceryStoreProtocol,
    plan_id: UUID,
    version: int,
    merged: Sequence[MergedLineItem],
    *,
    carry_forward: bool = False,
) -> list[GroceryItemRecord]:
    """Delete the plan's grocery rows, insert the new set, and re-read.

    Delete and insert are committed together; on any store failure the
    staged writes are rolled back and the error propagates unchanged.

    Args:
        store: Grocery store the rows are written through
        plan_id: Plan whose list is replaced
        version: Plan version stamped into every source key
        merged: Aggregated lines; an empty sequence leaves an empty list
        carry_forward: Copy checked, on-hand and pantry demotion from the
            previous generation for buckets present in both

    Returns:
        The committed rows as read back from the store

    Raises:
        FetchFailure: Reading the previous or the new rows failed
        WriteFailure: Delete, insert or commit failed; nothing was changed
    """
    rows = build_rows(plan_id, version, merged)
    if carry_forward and rows:
        previous = await store.fetch_grocery_items(plan_id)
        rows = carry_forward_state(rows, previous)

    try:
        await store.delete_grocery_items(plan_id)
        if rows:
            await store.insert_grocery_items(rows)
        await store.commit()
    except GroceryListError:
        logger.warning("Grocery list replace for plan %s failed; rolling back", plan_id)
        await store.rollback()
        raise

    logger.info(
        "Replaced grocery list for plan %s at version %d with %d rows",
        plan_id,
        version,
        len(rows),
    )
    return await store.fetch_grocery_items(plan_id)
