"""
CharacterContext — read-only evaluation input for requirement checks.

A context is derived fresh from a character draft after every mutation
(see `services.modifier_compositor.build_context`) and is never persisted.
Dice are EFFECTIVE dice: purchased die plus modifiers.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from rankforge.models.die import DieRank


@dataclass(frozen=True)
class CharacterContext:
    """
    Snapshot of the character state that requirement leaves look at.

    Attributes:
        attribute_dies: attribute id -> effective die
        skill_dies: skill id -> effective die, None when untrained
        edge_ids: edges the character has
        hindrance_ids: hindrances the character has
        rank_tier: 1 = Novice ... 5 = Legendary
        arcane_background_ids: arcane backgrounds the character has
        arcane_skill_ids: arcane background id -> its arcane skill id
        is_wild_card: protagonist-tier flag
    """

    attribute_dies: Mapping[int, DieRank] = field(default_factory=dict)
    skill_dies: Mapping[int, DieRank | None] = field(default_factory=dict)
    edge_ids: frozenset[int] = frozenset()
    hindrance_ids: frozenset[int] = frozenset()
    rank_tier: int = 1
    arcane_background_ids: frozenset[int] = frozenset()
    arcane_skill_ids: Mapping[int, int] = field(default_factory=dict)
    is_wild_card: bool = False

    def attribute_die(self, attribute_id: int) -> DieRank | None:
        return self.attribute_dies.get(attribute_id)

    def skill_die(self, skill_id: int) -> DieRank | None:
        return self.skill_dies.get(skill_id)

    def with_attribute_die(self, attribute_id: int, die: DieRank) -> "CharacterContext":
        """Copy of this context with one attribute die replaced (what-if checks)."""
        dies = dict(self.attribute_dies)
        dies[attribute_id] = die
        return replace(self, attribute_dies=dies)
