"""
Gear pack expansion.

A pack is a gear item whose contents are other gear items, which may
themselves be packs. Expansion walks the contents with an explicit
visited-id path and fails fast on a cycle.
"""

import logging
from dataclasses import dataclass, field

from rankforge.models.catalog import Catalog, Gear
from rankforge.models.failure import DataIntegrityError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackEntry:
    """One expanded content line; `contents` is non-empty for nested packs."""

    gear: Gear
    quantity: int
    notes: str | None = None
    contents: tuple["PackEntry", ...] = field(default_factory=tuple)

    @property
    def total_weight(self) -> float:
        if self.contents:
            inner = sum(entry.total_weight for entry in self.contents)
            return self.quantity * inner
        return self.quantity * self.gear.weight


def is_pack(catalog: Catalog, gear_id: int) -> bool:
    return bool(catalog.pack_contents.get(gear_id))


def expand_pack(catalog: Catalog, gear_id: int) -> list[PackEntry]:
    """
    Expand a pack's contents recursively.

    Returns an empty list for gear that is not a pack.

    Raises:
        NotFoundError: A content line references unknown gear
        DataIntegrityError: A pack contains itself, directly or indirectly
    """
    catalog.gear_item(gear_id)
    return _expand(catalog, gear_id, path=(gear_id,))


def _expand(catalog: Catalog, gear_id: int, path: tuple[int, ...]) -> list[PackEntry]:
    entries = []
    for item in catalog.pack_contents.get(gear_id, []):
        if item.item_gear_id in path:
            cycle = " -> ".join(str(g) for g in (*path, item.item_gear_id))
            raise DataIntegrityError("Pack contents form a cycle", detail=cycle)
        gear = catalog.gear_item(item.item_gear_id)
        entries.append(
            PackEntry(
                gear=gear,
                quantity=item.quantity,
                notes=item.notes,
                contents=tuple(_expand(catalog, gear.id, (*path, gear.id))),
            )
        )
    return entries


def flatten_pack(catalog: Catalog, gear_id: int) -> dict[int, int]:
    """Leaf gear id -> total quantity across all nesting levels."""
    totals: dict[int, int] = {}

    def walk(entries: list[PackEntry] | tuple[PackEntry, ...], multiplier: int) -> None:
        for entry in entries:
            if entry.contents:
                walk(entry.contents, multiplier * entry.quantity)
            else:
                totals[entry.gear.id] = totals.get(entry.gear.id, 0) + multiplier * entry.quantity

    walk(expand_pack(catalog, gear_id), 1)
    logger.debug("Flattened pack %d into %d distinct items", gear_id, len(totals))
    return totals
