"""
Modifiers — tagged effects attached to edges, hindrances, ancestries, gear
and powers that alter a base value.

Only die_increment, roll_bonus and flat_bonus carry a value the compositor
applies. description and the selection types are informational or need an
external choice resolved before composition.
"""

from dataclasses import dataclass
from enum import Enum


class ModifierTargetType(str, Enum):
    """What a modifier targets."""

    ATTRIBUTE = "attribute"
    SKILL = "skill"
    DERIVED_STAT = "derived_stat"
    EDGE_CHOICE = "edge_choice"
    HINDRANCE_CHOICE = "hindrance_choice"
    HERITAGE_CHOICE = "heritage_choice"
    SKILL_POINTS = "skill_points"
    ATTRIBUTE_POINTS = "attribute_points"
    POWER_SLOTS = "power_slots"
    POWER_POINTS = "power_points"
    WEALTH = "wealth"


class ModifierValueType(str, Enum):
    """How a modifier's value is interpreted."""

    DIE_INCREMENT = "die_increment"
    ROLL_BONUS = "roll_bonus"
    FLAT_BONUS = "flat_bonus"
    DESCRIPTION = "description"
    BONUS_SELECTION = "bonus_selection"
    MANDATORY_SELECTION = "mandatory_selection"

    @property
    def is_auto_applied(self) -> bool:
        """Whether the compositor applies this value type on its own."""
        return self in _AUTO_APPLIED


_AUTO_APPLIED = frozenset(
    {
        ModifierValueType.DIE_INCREMENT,
        ModifierValueType.ROLL_BONUS,
        ModifierValueType.FLAT_BONUS,
    }
)


class DerivedStat(str, Enum):
    """Target identifiers for derived_stat modifiers."""

    PACE = "pace"
    PARRY = "parry"
    TOUGHNESS = "toughness"
    SIZE = "size"


@dataclass(frozen=True)
class Modifier:
    """
    A single modifier record.

    Attributes:
        id: Stable id, used as the tie-break for application order
        target_type: Kind of value targeted (None for general abilities)
        target_identifier: Name of the targeted attribute/skill/stat
        value_type: How value is interpreted
        value: Numeric value (None for description/selection types)
        description: Human-readable text, always present
    """

    id: int
    target_type: ModifierTargetType | None
    target_identifier: str | None
    value_type: ModifierValueType
    value: int | None = None
    description: str = ""

    def targets(self, target_type: ModifierTargetType, target_identifier: str) -> bool:
        """Whether this modifier applies to the given target (case-insensitive)."""
        if self.target_type != target_type or self.target_identifier is None:
            return False
        return self.target_identifier.casefold() == target_identifier.casefold()
