"""
rankforge services.

Rule logic over character drafts: modifier composition, requirement tree
construction, advancement, character creation and pack expansion.
"""

from rankforge.services.advancement import (
    apply_attribute_advance,
    apply_cheap_skill_advance,
    apply_edge_advance,
    apply_expensive_skill_advance,
    apply_hindrance_advance,
    banked_hindrance_ids,
    get_advancement_history,
    get_advancement_options,
    undo_advance,
)
from rankforge.services.character_builder import (
    add_arcane_background,
    add_edge,
    add_gear,
    add_hindrance,
    add_power,
    allocate_hindrance_points,
    change_attribute,
    change_skill,
    check_attribute_decrement_impact,
    new_character,
    remove_edge,
    remove_hindrance,
    remove_invalid_edges,
    set_ancestry,
    set_gear_equipped,
)
from rankforge.services.modifier_compositor import (
    DerivedStats,
    EffectiveValue,
    EffectiveValues,
    Encumbrance,
    build_context,
    compute_effective,
    compute_effective_values,
)
from rankforge.services.pack_contents import PackEntry, expand_pack, flatten_pack
from rankforge.services.requirement_builder import ExpressionRow, build_requirement_tree
from rankforge.services.session import DraftSession

__all__ = [
    # Advancement
    "apply_attribute_advance",
    "apply_cheap_skill_advance",
    "apply_edge_advance",
    "apply_expensive_skill_advance",
    "apply_hindrance_advance",
    "banked_hindrance_ids",
    "get_advancement_history",
    "get_advancement_options",
    "undo_advance",
    # Character creation
    "add_arcane_background",
    "add_edge",
    "add_gear",
    "add_hindrance",
    "add_power",
    "allocate_hindrance_points",
    "change_attribute",
    "change_skill",
    "check_attribute_decrement_impact",
    "new_character",
    "remove_edge",
    "remove_hindrance",
    "remove_invalid_edges",
    "set_ancestry",
    "set_gear_equipped",
    # Modifier composition
    "DerivedStats",
    "EffectiveValue",
    "EffectiveValues",
    "Encumbrance",
    "build_context",
    "compute_effective",
    "compute_effective_values",
    # Packs
    "PackEntry",
    "expand_pack",
    "flatten_pack",
    # Requirement trees
    "ExpressionRow",
    "build_requirement_tree",
    # Session
    "DraftSession",
]
