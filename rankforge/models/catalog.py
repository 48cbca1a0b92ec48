"""
Catalog — the ruleset's reference records.

Attributes, skills, edges, hindrances, ranks, arcane backgrounds, powers,
ancestries and gear. Records are decoded once at the storage boundary
(see `parsers.records`) and are read-only afterwards. Requirement trees and
modifiers are owned by the record they gate.

Lookups by id raise NotFoundError; lookups by name return None.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from rankforge.constants import DEFAULT_RANKS
from rankforge.models.die import DieRank
from rankforge.models.failure import NotFoundError
from rankforge.models.modifier import Modifier
from rankforge.models.requirement import RequirementNode


class Severity(str, Enum):
    """Hindrance severity."""

    MINOR = "minor"
    MAJOR = "major"


@dataclass(frozen=True)
class Attribute:
    id: int
    name: str
    base_die: DieRank = field(default_factory=DieRank.d4)
    description: str = ""


@dataclass(frozen=True)
class Skill:
    """
    A skill linked to an attribute.

    Core skills start at `default_die` and can never go untrained.
    """

    id: int
    name: str
    linked_attribute_id: int
    is_core_skill: bool = False
    default_die: DieRank | None = None
    max_die: DieRank = field(default_factory=DieRank.d12)
    description: str = ""


@dataclass(frozen=True)
class Edge:
    id: int
    name: str
    category: str = ""
    can_take_multiple_times: bool = False
    requirements: RequirementNode | None = None
    modifiers: tuple[Modifier, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class Hindrance:
    """
    A hindrance. Major hindrances may name a Minor companion they can be
    reduced to through advancement.
    """

    id: int
    name: str
    severity: Severity
    point_value: int
    companion_hindrance_id: int | None = None
    requirements: RequirementNode | None = None
    modifiers: tuple[Modifier, ...] = ()
    description: str = ""

    @property
    def is_major(self) -> bool:
        return self.severity == Severity.MAJOR


@dataclass(frozen=True)
class Rank:
    """A rank window. `max_advances` is None for the open-ended last rank."""

    id: int
    name: str
    min_advances: int
    max_advances: int | None = None

    def contains(self, advances: int) -> bool:
        if advances < self.min_advances:
            return False
        return self.max_advances is None or advances <= self.max_advances


@dataclass(frozen=True)
class ArcaneBackground:
    id: int
    name: str
    arcane_skill_id: int
    starting_powers: int = 0
    starting_power_points: int = 0
    requirements: RequirementNode | None = None
    description: str = ""


@dataclass(frozen=True)
class Power:
    id: int
    name: str
    power_points: int = 0
    requirements: RequirementNode | None = None
    modifiers: tuple[Modifier, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class Ancestry:
    id: int
    name: str
    requirements: RequirementNode | None = None
    modifiers: tuple[Modifier, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class Gear:
    id: int
    name: str
    cost: int = 0
    weight: float = 0.0
    requirements: RequirementNode | None = None
    modifiers: tuple[Modifier, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class PackItem:
    """One line of a gear pack's contents."""

    pack_gear_id: int
    item_gear_id: int
    quantity: int = 1
    notes: str | None = None


def _index(records: Iterable) -> dict:
    return {record.id: record for record in records}


@dataclass
class Catalog:
    """
    All reference records for a ruleset.

    Build with `Catalog.build(...)`; treat as read-only afterwards.
    """

    attributes: dict[int, Attribute] = field(default_factory=dict)
    skills: dict[int, Skill] = field(default_factory=dict)
    edges: dict[int, Edge] = field(default_factory=dict)
    hindrances: dict[int, Hindrance] = field(default_factory=dict)
    ranks: list[Rank] = field(default_factory=list)
    arcane_backgrounds: dict[int, ArcaneBackground] = field(default_factory=dict)
    powers: dict[int, Power] = field(default_factory=dict)
    ancestries: dict[int, Ancestry] = field(default_factory=dict)
    gear: dict[int, Gear] = field(default_factory=dict)
    pack_contents: dict[int, list[PackItem]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        attributes: Iterable[Attribute] = (),
        skills: Iterable[Skill] = (),
        edges: Iterable[Edge] = (),
        hindrances: Iterable[Hindrance] = (),
        ranks: Iterable[Rank] | None = None,
        arcane_backgrounds: Iterable[ArcaneBackground] = (),
        powers: Iterable[Power] = (),
        ancestries: Iterable[Ancestry] = (),
        gear: Iterable[Gear] = (),
        pack_items: Iterable[PackItem] = (),
    ) -> "Catalog":
        """Index records by id. Ranks default to the standard five windows."""
        if ranks is None:
            ranks = [Rank(*row) for row in DEFAULT_RANKS]
        contents: dict[int, list[PackItem]] = {}
        for item in pack_items:
            contents.setdefault(item.pack_gear_id, []).append(item)
        return cls(
            attributes=_index(attributes),
            skills=_index(skills),
            edges=_index(edges),
            hindrances=_index(hindrances),
            ranks=sorted(ranks, key=lambda r: r.min_advances),
            arcane_backgrounds=_index(arcane_backgrounds),
            powers=_index(powers),
            ancestries=_index(ancestries),
            gear=_index(gear),
            pack_contents=contents,
        )

    # -------------------------------------------------------------------------
    # Lookups by id
    # -------------------------------------------------------------------------

    def attribute(self, attribute_id: int) -> Attribute:
        if attribute_id not in self.attributes:
            raise NotFoundError("Attribute", attribute_id)
        return self.attributes[attribute_id]

    def skill(self, skill_id: int) -> Skill:
        if skill_id not in self.skills:
            raise NotFoundError("Skill", skill_id)
        return self.skills[skill_id]

    def edge(self, edge_id: int) -> Edge:
        if edge_id not in self.edges:
            raise NotFoundError("Edge", edge_id)
        return self.edges[edge_id]

    def hindrance(self, hindrance_id: int) -> Hindrance:
        if hindrance_id not in self.hindrances:
            raise NotFoundError("Hindrance", hindrance_id)
        return self.hindrances[hindrance_id]

    def arcane_background(self, arcane_background_id: int) -> ArcaneBackground:
        if arcane_background_id not in self.arcane_backgrounds:
            raise NotFoundError("Arcane background", arcane_background_id)
        return self.arcane_backgrounds[arcane_background_id]

    def power(self, power_id: int) -> Power:
        if power_id not in self.powers:
            raise NotFoundError("Power", power_id)
        return self.powers[power_id]

    def ancestry(self, ancestry_id: int) -> Ancestry:
        if ancestry_id not in self.ancestries:
            raise NotFoundError("Ancestry", ancestry_id)
        return self.ancestries[ancestry_id]

    def gear_item(self, gear_id: int) -> Gear:
        if gear_id not in self.gear:
            raise NotFoundError("Gear", gear_id)
        return self.gear[gear_id]

    # -------------------------------------------------------------------------
    # Lookups by name
    # -------------------------------------------------------------------------

    def attribute_by_name(self, name: str) -> Attribute | None:
        key = name.casefold()
        return next((a for a in self.attributes.values() if a.name.casefold() == key), None)

    def skill_by_name(self, name: str) -> Skill | None:
        key = name.casefold()
        return next((s for s in self.skills.values() if s.name.casefold() == key), None)

    # -------------------------------------------------------------------------
    # Ranks
    # -------------------------------------------------------------------------

    def rank_for_advances(self, advances: int) -> Rank:
        """The rank a character with `advances` advances is in."""
        for rank in self.ranks:
            if rank.contains(advances):
                return rank
        raise NotFoundError("Rank for advance count", advances)

    def rank_tier(self, rank: Rank) -> int:
        """1-based position of a rank (Novice = 1)."""
        return self.ranks.index(rank) + 1
