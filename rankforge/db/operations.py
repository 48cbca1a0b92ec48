"""
Database operations for advance history and rule records.

Advance rows are the one durable contract the engine defines:
`advance_number` ordering is authoritative, numbers start at 1 and have no
gaps. Appends are checked for continuity; removal is LIFO only.
"""

import logging
from collections.abc import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rankforge.models.advance import AdvanceRecord
from rankforge.models.db import (
    CharacterAdvanceDB,
    ModifierDB,
    RequirementDB,
    RequirementExpressionDB,
)
from rankforge.models.failure import DraftStateError
from rankforge.models.modifier import Modifier
from rankforge.models.requirement import RequirementNode
from rankforge.parsers.records import decode_advance, decode_requirement_trees, group_modifiers

logger = logging.getLogger(__name__)

# --- Advance History ---


async def get_advances(session: AsyncSession, character_id: int) -> list[CharacterAdvanceDB]:
    """All advance rows for a character, ordered by advance_number."""
    result = await session.execute(
        select(CharacterAdvanceDB)
        .where(CharacterAdvanceDB.character_id == character_id)
        .order_by(CharacterAdvanceDB.advance_number)
    )
    return list(result.scalars().all())


async def count_advances(session: AsyncSession, character_id: int) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(CharacterAdvanceDB)
        .where(CharacterAdvanceDB.character_id == character_id)
    )
    return int(result.scalar_one())


def advance_to_model(row: CharacterAdvanceDB) -> AdvanceRecord:
    """Convert a database row to a domain record."""
    return decode_advance(row)


def advance_to_row(character_id: int, record: AdvanceRecord) -> CharacterAdvanceDB:
    """Convert a domain record to a new database row."""
    return CharacterAdvanceDB(
        character_id=character_id,
        advance_number=record.advance_number,
        advance_type=record.advance_type.value,
        edge_id=record.edge_id,
        attribute_id=record.attribute_id,
        skill_id_1=record.skill_id_1,
        skill_id_2=record.skill_id_2,
        hindrance_id=record.hindrance_id,
        hindrance_action=record.hindrance_action.value if record.hindrance_action else None,
        notes=record.notes,
    )


async def load_advance_history(session: AsyncSession, character_id: int) -> list[AdvanceRecord]:
    """
    Load and decode a character's history.

    Raises:
        DraftStateError: If stored advance numbers are not 1..n
    """
    records = [advance_to_model(row) for row in await get_advances(session, character_id)]
    for expected, record in enumerate(records, start=1):
        if record.advance_number != expected:
            raise DraftStateError(
                f"Advance history of character {character_id} has a gap at {expected}"
            )
    return records


async def append_advance(
    session: AsyncSession, character_id: int, record: AdvanceRecord
) -> CharacterAdvanceDB:
    """
    Append one advance.

    Raises:
        DraftStateError: If the record's number is not the next number
    """
    expected = await count_advances(session, character_id) + 1
    if record.advance_number != expected:
        raise DraftStateError(
            f"Advance {record.advance_number} out of order for character {character_id}; "
            f"expected {expected}"
        )
    row = advance_to_row(character_id, record)
    session.add(row)
    await session.flush()
    return row


async def delete_last_advance(session: AsyncSession, character_id: int) -> bool:
    """
    Delete the most recent advance.

    Returns True if deleted, False if the history was empty.
    """
    advances = await get_advances(session, character_id)
    if not advances:
        return False
    await session.delete(advances[-1])
    await session.flush()
    return True


async def replace_advance_history(
    session: AsyncSession, character_id: int, records: Sequence[AdvanceRecord]
) -> list[CharacterAdvanceDB]:
    """Replace a character's whole history with `records` (e.g. on save)."""
    for expected, record in enumerate(records, start=1):
        if record.advance_number != expected:
            raise DraftStateError(
                f"Cannot save history: advance {record.advance_number} at position {expected}"
            )

    await session.execute(
        delete(CharacterAdvanceDB).where(CharacterAdvanceDB.character_id == character_id)
    )
    rows = [advance_to_row(character_id, record) for record in records]
    session.add_all(rows)
    await session.flush()
    logger.info("Saved %d advances for character %d", len(rows), character_id)
    return rows


# --- Rule Records ---


async def load_requirement_trees(
    session: AsyncSession,
) -> dict[tuple[str, int], RequirementNode | None]:
    """Load every requirement tree, keyed by (owner_type, owner_id)."""
    requirements = (await session.execute(select(RequirementDB))).scalars().all()
    expressions = (await session.execute(select(RequirementExpressionDB))).scalars().all()
    return decode_requirement_trees(requirements, expressions)


async def load_modifiers(session: AsyncSession) -> dict[tuple[str, int], tuple[Modifier, ...]]:
    """Load every modifier, grouped by (owner_type, owner_id)."""
    rows = (await session.execute(select(ModifierDB).order_by(ModifierDB.id))).scalars().all()
    return group_modifiers(rows)
