"""Grocery list freshness: decide when to regenerate, and run the pipeline.

``GroceryListService.ensure_fresh`` is called whenever a plan's list is
loaded for display. It regenerates silently when the list was never
generated for a plan that has cook slots, or when any row carries a version
stamp other than the plan's current one. ``regenerate`` is the explicit,
user-triggered path. Both return the committed rows.

Regenerations for the same plan are serialized in-process so a stale load
racing a manual regenerate cannot interleave delete and insert calls.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from enum import Enum
from uuid import UUID

from services.grocery.aggregator import aggregate
from services.grocery.expander import expand_plan
from services.grocery.exceptions import GroceryListError
from services.grocery.interfaces import GroceryStoreProtocol
from services.grocery.models import GroceryItemRecord
from services.grocery.reconciler import replace_grocery_list
from services.grocery.source_key import is_current


logger = logging.getLogger(__name__)


class RegenerationTrigger(str, Enum):
    NEVER_GENERATED = "never_generated"
    STALE_VERSION = "stale_version"
    MANUAL = "manual"


def has_stale_version(items: Sequence[GroceryItemRecord], version: int) -> bool:
    """True if any row was stamped with a version other than ``version``."""
    return any(not is_current(item.source_key, version) for item in items)


def detect_trigger(
    items: Sequence[GroceryItemRecord], version: int, cook_slot_count: int | None
) -> RegenerationTrigger | None:
    """Pure staleness decision over already-loaded state.

    ``cook_slot_count`` is only consulted when ``items`` is empty; an empty
    list for a plan without cook slots is the correct final state.
    """
    if not items:
        if cook_slot_count:
            return RegenerationTrigger.NEVER_GENERATED
        return None
    if has_stale_version(items, version):
        return RegenerationTrigger.STALE_VERSION
    return None


class RegenerationGuard:
    """Per-plan asyncio locks; one regeneration per plan at a time."""

    def __init__(self) -> None:
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._holders: dict[UUID, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, plan_id: UUID) -> AsyncIterator[None]:
        lock = self._locks.setdefault(plan_id, asyncio.Lock())
        self._holders[plan_id] = self._holders.get(plan_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            # Drop the lock once nobody holds or waits on it
            self._holders[plan_id] -= 1
            if not self._holders[plan_id]:
                del self._holders[plan_id]
                del self._locks[plan_id]


# Shared across requests in one process
regeneration_guard = RegenerationGuard()


class GroceryListService:
    """Entry points the API layer uses to load and rebuild grocery lists."""

    def __init__(
        self,
        store: GroceryStoreProtocol,
        *,
        carry_forward_state: bool = False,
        guard: RegenerationGuard | None = None,
    ) -> None:
        self.store = store
        self.carry_forward_state = carry_forward_state
        self.guard = guard or regeneration_guard

    async def ensure_fresh(self, plan_id: UUID) -> list[GroceryItemRecord]:
        """Load the plan's list, regenerating silently when it is absent or stale.

        The check and any regeneration run under the plan's lock, so two
        concurrent loads of a stale plan rebuild it once.

        Args:
            plan_id: Plan whose grocery list is loaded

        Returns:
            Current rows; empty for a plan with no recipe-backed cook slots

        Raises:
            FetchFailure: A store read failed
            WriteFailure: The regeneration could not be committed
        """
        async with self.guard.hold(plan_id):
            version = await self.store.fetch_plan_version(plan_id)
            items = await self.store.fetch_grocery_items(plan_id)

            cook_slot_count: int | None = None
            if not items:
                cook_slot_count = await self.store.count_cook_slots(plan_id)

            trigger = detect_trigger(items, version, cook_slot_count)
            if trigger is None:
                return items
            return await self._regenerate(plan_id, version, trigger)

    async def regenerate(self, plan_id: UUID) -> list[GroceryItemRecord]:
        """Rebuild the plan's list now, whatever its current state.

        Args:
            plan_id: Plan to rebuild

        Returns:
            The rows stamped with the plan's current version

        Raises:
            FetchFailure: A store read failed
            WriteFailure: The new list could not be committed
        """
        async with self.guard.hold(plan_id):
            version = await self.store.fetch_plan_version(plan_id)
            return await self._regenerate(plan_id, version, RegenerationTrigger.MANUAL)

    async def _regenerate(
        self, plan_id: UUID, version: int, trigger: RegenerationTrigger
    ) -> list[GroceryItemRecord]:
        logger.info(
            "Regenerating grocery list for plan %s at version %d (%s)",
            plan_id,
            version,
            trigger.value,
        )
        try:
            merged = aggregate(await expand_plan(self.store, plan_id))
            return await replace_grocery_list(
                self.store,
                plan_id,
                version,
                merged,
                carry_forward=self.carry_forward_state,
            )
        except GroceryListError as exc:
            logger.error(
                "Grocery list regeneration for plan %s failed (%s): %s",
                plan_id,
                trigger.value,
                exc.error_code,
            )
            raise


async def ensure_fresh_grocery_list(
    store: GroceryStoreProtocol, plan_id: UUID, *, carry_forward_state: bool = False
) -> list[GroceryItemRecord]:
    """Functional form of ``GroceryListService.ensure_fresh``."""
    service = GroceryListService(store, carry_forward_state=carry_forward_state)
    return await service.ensure_fresh(plan_id)


async def regenerate_grocery_list(
    store: GroceryStoreProtocol, plan_id: UUID, *, carry_forward_state: bool = False
) -> list[GroceryItemRecord]:
    """Functional form of ``GroceryListService.regenerate``."""
    service = GroceryListService(store, carry_forward_state=carry_forward_state)
    return await service.regenerate(plan_id)
