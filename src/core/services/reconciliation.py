"""Log commit and inventory reconciliation.

Committing a service visit produces exactly one new `LogEntry` and a new
inventory snapshot, returned together as a new `AppState`. The prior state
is never mutated, so callers observe either the old snapshot or the new one.

Inventory matching is deliberately fuzzy: an adjustment matches an item when
either lower-cased name contains the other ("Muriatic Acid" matches "Acid").
Only the first item in stored order is considered, and it is decremented only
when the units are exactly equal. No unit conversion is attempted.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from core.domain.errors import PrecommitError
from core.domain.models import (
    AppState,
    ChemicalAdjustment,
    ChemicalReading,
    InventoryItem,
    LogEntry,
    PoolData,
    User,
    WaterEvents,
    utcnow,
)

logger = logging.getLogger(__name__)


def names_match(chemical_name: str, item_name: str) -> bool:
    """Case-insensitive bidirectional substring match."""

    adj = chemical_name.lower()
    item = item_name.lower()
    return item in adj or adj in item


def find_inventory_match(
    inventory: Sequence[InventoryItem], adjustment: ChemicalAdjustment
) -> int | None:
    """Index of the first item whose name matches the adjustment, or None."""

    matches = [i for i, item in enumerate(inventory) if names_match(adjustment.chemical_name, item.name)]
    if not matches:
        return None
    if len(matches) > 1:
        logger.debug(
            "Adjustment %r matches %d inventory items; using %r",
            adjustment.chemical_name,
            len(matches),
            inventory[matches[0]].name,
        )
    return matches[0]


def reconcile_inventory(
    inventory: Sequence[InventoryItem], adjustments: Sequence[ChemicalAdjustment]
) -> list[InventoryItem]:
    """Return a new inventory with matching items decremented (floor 0)."""

    items = list(inventory)
    for adj in adjustments:
        index = find_inventory_match(items, adj)
        if index is None:
            continue
        item = items[index]
        if item.unit != adj.unit:
            logger.debug(
                "Skipping %r: unit %r does not match inventory unit %r",
                adj.chemical_name,
                adj.unit,
                item.unit,
            )
            continue
        remaining = max(0.0, item.quantity - adj.amount)
        logger.debug("Decrementing %r: %g -> %g %s", item.name, item.quantity, remaining, item.unit)
        items[index] = item.model_copy(update={"quantity": remaining})
    return items


def commit_log(
    state: AppState,
    *,
    pool: PoolData | None,
    user: User | None,
    reading: ChemicalReading,
    adjustments: Sequence[ChemicalAdjustment],
    water_events: WaterEvents,
    notes: str = "",
    timestamp: datetime | None = None,
) -> tuple[AppState, LogEntry]:
    """Append one `LogEntry` and reconcile inventory in a single transition.

    Raises:
        PrecommitError: when the pool or the acting user is missing.
    """

    if pool is None:
        raise PrecommitError("No pool selected: cannot commit a log entry.")
    if user is None:
        raise PrecommitError("No user in session: cannot commit a log entry.")

    entry = LogEntry(
        pool_id=pool.id,
        timestamp=timestamp or utcnow(),
        user=user.username,
        readings=reading,
        adjustments=list(adjustments),
        water_events=water_events,
        notes=notes,
    )
    new_state = state.model_copy(
        update={
            "logs": [*state.logs, entry],
            "inventory": reconcile_inventory(state.inventory, entry.adjustments),
        }
    )
    logger.info("Committed log %s for pool %s (%d adjustments)", entry.id, pool.id, len(entry.adjustments))
    return new_state, entry
