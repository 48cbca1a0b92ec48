"""
Advance records and advancement option models.

AdvanceRecord is the durable unit of the advancement history: one record per
advance number, appended by `apply_*` and popped by `undo_advance`.

The option models are read-only query results for rendering choices.
"""

from dataclasses import dataclass, field
from enum import Enum

from rankforge.models.die import DieRank


class AdvanceType(str, Enum):
    EDGE = "edge"
    ATTRIBUTE = "attribute"
    SKILL_EXPENSIVE = "skill_expensive"
    SKILL_CHEAP = "skill_cheap"
    HINDRANCE = "hindrance"


class HindranceAction(str, Enum):
    """What an advance does to a hindrance."""

    REMOVE_MINOR = "remove_minor"
    REDUCE_MAJOR = "reduce_major"
    REMOVE_MAJOR_HALF = "remove_major_half"
    # Second half of a banked removal; persisted as remove_major_half
    COMPLETE_MAJOR_REMOVAL = "complete_major_removal"

    @property
    def label(self) -> str:
        return _ACTION_LABELS[self]


_ACTION_LABELS: dict[HindranceAction, str] = {
    HindranceAction.REMOVE_MINOR: "Remove minor hindrance",
    HindranceAction.REDUCE_MAJOR: "Reduce major to minor",
    HindranceAction.REMOVE_MAJOR_HALF: "Start removing major hindrance (1 of 2)",
    HindranceAction.COMPLETE_MAJOR_REMOVAL: "Complete major hindrance removal (2 of 2)",
}


@dataclass(frozen=True)
class AdvanceRecord:
    """
    One entry in a character's advance history.

    Attributes:
        advance_number: 1-based, strictly increasing, no gaps
        advance_type: Which kind of advance
        edge_id: Edge gained (edge advances)
        attribute_id: Attribute raised (attribute advances)
        skill_id_1: Skill raised (skill advances)
        skill_id_2: Second skill raised (cheap skill advances)
        hindrance_id: Hindrance affected (hindrance advances)
        hindrance_action: Persisted action name (hindrance advances)
        notes: Free text; hindrance advances store the hindrance's prior source
    """

    advance_number: int
    advance_type: AdvanceType
    edge_id: int | None = None
    attribute_id: int | None = None
    skill_id_1: int | None = None
    skill_id_2: int | None = None
    hindrance_id: int | None = None
    hindrance_action: HindranceAction | None = None
    notes: str | None = None


# =============================================================================
# OPTIONS (read-only query results)
# =============================================================================


@dataclass(frozen=True)
class AttributeAdvanceOption:
    id: int
    name: str
    current_die: DieRank
    effective_die: DieRank
    next_die: DieRank
    effective_next_die: DieRank
    is_maxed: bool


@dataclass(frozen=True)
class SkillAdvanceOption:
    """Current/next dice are None for untrained skills."""

    id: int
    name: str
    current_die: DieRank | None
    effective_die: DieRank | None
    next_die: DieRank | None
    effective_next_die: DieRank | None
    is_maxed: bool


@dataclass(frozen=True)
class HindranceAdvanceOption:
    id: int
    name: str
    severity: str
    action: HindranceAction
    action_label: str
    is_banked: bool


@dataclass(frozen=True)
class AdvancementOptions:
    """Everything that is legal for the next advance."""

    next_advance_number: int
    current_rank: str
    rank_after_advance: str
    can_increase_attribute: bool
    attribute_blocked_reason: str | None
    attribute_options: list[AttributeAdvanceOption] = field(default_factory=list)
    expensive_skill_options: list[SkillAdvanceOption] = field(default_factory=list)
    cheap_skill_options: list[SkillAdvanceOption] = field(default_factory=list)
    hindrance_options: list[HindranceAdvanceOption] = field(default_factory=list)
    eligible_edge_ids: list[int] = field(default_factory=list)

    @property
    def can_take_edge(self) -> bool:
        return bool(self.eligible_edge_ids)

    @property
    def can_increase_expensive_skill(self) -> bool:
        return bool(self.expensive_skill_options)

    @property
    def can_increase_cheap_skills(self) -> bool:
        return bool(self.cheap_skill_options)

    @property
    def can_modify_hindrance(self) -> bool:
        return bool(self.hindrance_options)


@dataclass(frozen=True)
class AdvanceSummary:
    """A history record with a human-readable description."""

    advance_number: int
    advance_type: AdvanceType
    description: str
