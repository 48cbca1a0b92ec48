"""
Character Draft — the mutable character value passed through the engine.

The draft is owned by the call site. Engine operations never mutate the
draft they are given; they work on a deep copy and return it.

INVARIANTS:
- `skills` holds one entry per catalog skill; die None means untrained
- `hindrances` is kept ordered by hindrance id
- `advances` is ordered by advance_number with no gaps, starting at 1
"""

import bisect
from dataclasses import dataclass, field

from rankforge.constants import SOURCE_CHOSEN
from rankforge.models.advance import AdvanceRecord
from rankforge.models.catalog import (
    Ancestry,
    ArcaneBackground,
    Attribute,
    Edge,
    Gear,
    Hindrance,
    Power,
    Skill,
)
from rankforge.models.die import DieRank
from rankforge.models.failure import NotFoundError
from rankforge.models.ledger import PointLedger
from rankforge.models.modifier import Modifier


@dataclass
class CharacterAttribute:
    attribute: Attribute
    die: DieRank


@dataclass
class CharacterSkill:
    skill: Skill
    die: DieRank | None = None


@dataclass
class CharacterEdge:
    edge: Edge
    advance_taken: int | None = None
    source: str = SOURCE_CHOSEN
    notes: str | None = None


@dataclass
class CharacterHindrance:
    hindrance: Hindrance
    source: str = SOURCE_CHOSEN


@dataclass
class CharacterPower:
    power: Power
    advance_taken: int | None = None


@dataclass
class CharacterGear:
    gear: Gear
    quantity: int = 1
    is_equipped: bool = False


@dataclass
class CharacterDraft:
    """A character being built or advanced."""

    name: str = ""
    id: int | None = None
    is_wild_card: bool = True
    ancestry: Ancestry | None = None
    attributes: list[CharacterAttribute] = field(default_factory=list)
    skills: list[CharacterSkill] = field(default_factory=list)
    edges: list[CharacterEdge] = field(default_factory=list)
    hindrances: list[CharacterHindrance] = field(default_factory=list)
    arcane_backgrounds: list[ArcaneBackground] = field(default_factory=list)
    powers: list[CharacterPower] = field(default_factory=list)
    gear: list[CharacterGear] = field(default_factory=list)
    modifiers: list[Modifier] = field(default_factory=list)
    ledger: PointLedger = field(default_factory=PointLedger)
    advances: list[AdvanceRecord] = field(default_factory=list)
    wealth: int = 0
    power_points: int = 0

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def attribute(self, attribute_id: int) -> CharacterAttribute:
        for attr in self.attributes:
            if attr.attribute.id == attribute_id:
                return attr
        raise NotFoundError("Character attribute", attribute_id)

    def skill(self, skill_id: int) -> CharacterSkill:
        for skill in self.skills:
            if skill.skill.id == skill_id:
                return skill
        raise NotFoundError("Character skill", skill_id)

    def find_hindrance(self, hindrance_id: int) -> CharacterHindrance | None:
        return next((h for h in self.hindrances if h.hindrance.id == hindrance_id), None)

    def find_edge(self, edge_id: int) -> CharacterEdge | None:
        """The most recently added instance of an edge."""
        return next((e for e in reversed(self.edges) if e.edge.id == edge_id), None)

    def has_edge(self, edge_id: int) -> bool:
        return self.find_edge(edge_id) is not None

    @property
    def edge_ids(self) -> frozenset[int]:
        return frozenset(e.edge.id for e in self.edges)

    @property
    def hindrance_ids(self) -> frozenset[int]:
        return frozenset(h.hindrance.id for h in self.hindrances)

    # -------------------------------------------------------------------------
    # Advances
    # -------------------------------------------------------------------------

    @property
    def advance_count(self) -> int:
        return len(self.advances)

    @property
    def next_advance_number(self) -> int:
        return len(self.advances) + 1

    # -------------------------------------------------------------------------
    # Hindrance ordering
    # -------------------------------------------------------------------------

    def insert_hindrance(self, entry: CharacterHindrance) -> None:
        """Insert keeping hindrances ordered by id."""
        keys = [h.hindrance.id for h in self.hindrances]
        self.hindrances.insert(bisect.bisect_left(keys, entry.hindrance.id), entry)

    def pop_hindrance(self, hindrance_id: int) -> CharacterHindrance:
        entry = self.find_hindrance(hindrance_id)
        if entry is None:
            raise NotFoundError("Character hindrance", hindrance_id)
        self.hindrances.remove(entry)
        return entry
