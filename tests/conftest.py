import pytest

from rankforge.models import failure as failure_module
from rankforge.models.catalog import (
    Ancestry,
    ArcaneBackground,
    Attribute,
    Catalog,
    Edge,
    Gear,
    Hindrance,
    PackItem,
    Power,
    Severity,
    Skill,
)
from rankforge.models.character import CharacterDraft
from rankforge.models.die import DieRank
from rankforge.models.modifier import Modifier, ModifierTargetType, ModifierValueType
from rankforge.models.requirement import Requirement, RequirementNode, RequirementType
from rankforge.services.character_builder import new_character

# Attribute ids
AGILITY, SMARTS, SPIRIT, STRENGTH, VIGOR = 1, 2, 3, 4, 5

# Skill ids
ATHLETICS, FIGHTING, NOTICE, SHOOTING, SPELLCASTING, PERSUASION = 1, 2, 3, 4, 5, 6

# Edge ids
BRAWNY, QUICK, ARCANE_BACKGROUND, TRADEMARK_WEAPON, RICH, COMBAT_REFLEXES, KEEN_SENSES = (
    1,
    2,
    3,
    4,
    5,
    6,
    7,
)

# Hindrance ids
BAD_EYES_MINOR, BAD_EYES_MAJOR, LOYAL, WANTED = 1, 2, 3, 4

# Other catalog ids
MAGIC = 1
BOLT, ARMOR, BLAST = 1, 2, 3
DWARF = 1
BACKPACK, ROPE, TORCH, EXPLORERS_PACK, SHIELD, EXPEDITION_KIT = 1, 2, 3, 4, 5, 6


@pytest.fixture(autouse=True)
def clear_finalized_responses():
    """Clear the finalized responses set between tests.

    This prevents test isolation issues where Python reuses memory
    addresses for new objects, causing id() collisions with previously
    finalized responses.
    """
    failure_module._finalized_responses.clear()
    yield
    failure_module._finalized_responses.clear()


def leaf(
    requirement_id: int,
    requirement_type: RequirementType,
    target_id: int | None = None,
    value: int | None = None,
    description: str = "",
) -> RequirementNode:
    """Shorthand for a single-requirement tree."""
    return RequirementNode.leaf(
        Requirement(requirement_id, requirement_type, target_id, value, description)
    )


@pytest.fixture
def catalog() -> Catalog:
    """A small ruleset with enough content to exercise every rule."""
    attributes = [
        Attribute(AGILITY, "Agility"),
        Attribute(SMARTS, "Smarts"),
        Attribute(SPIRIT, "Spirit"),
        Attribute(STRENGTH, "Strength"),
        Attribute(VIGOR, "Vigor"),
    ]
    skills = [
        Skill(ATHLETICS, "Athletics", AGILITY, is_core_skill=True, default_die=DieRank.d4()),
        Skill(FIGHTING, "Fighting", AGILITY),
        Skill(NOTICE, "Notice", SMARTS, is_core_skill=True, default_die=DieRank.d4()),
        Skill(SHOOTING, "Shooting", AGILITY),
        Skill(SPELLCASTING, "Spellcasting", SMARTS),
        Skill(PERSUASION, "Persuasion", SPIRIT, is_core_skill=True, default_die=DieRank.d4()),
    ]
    edges = [
        Edge(
            BRAWNY,
            "Brawny",
            category="Background",
            requirements=RequirementNode.all_of(
                leaf(1, RequirementType.ATTRIBUTE, STRENGTH, 6, "Strength d6+"),
                leaf(2, RequirementType.ATTRIBUTE, VIGOR, 6, "Vigor d6+"),
            ),
            modifiers=(
                Modifier(
                    1,
                    ModifierTargetType.DERIVED_STAT,
                    "toughness",
                    ModifierValueType.FLAT_BONUS,
                    1,
                    "+1 Toughness",
                ),
            ),
        ),
        Edge(
            QUICK,
            "Quick",
            category="Background",
            requirements=leaf(3, RequirementType.ATTRIBUTE, AGILITY, 8, "Agility d8+"),
        ),
        Edge(ARCANE_BACKGROUND, "Arcane Background", category="Background"),
        Edge(
            TRADEMARK_WEAPON,
            "Trademark Weapon",
            category="Combat",
            can_take_multiple_times=True,
            requirements=RequirementNode.any_of(
                leaf(4, RequirementType.SKILL, FIGHTING, 8, "Fighting d8+"),
                leaf(5, RequirementType.SKILL, SHOOTING, 8, "Shooting d8+"),
            ),
        ),
        Edge(
            RICH,
            "Rich",
            category="Background",
            modifiers=(
                Modifier(
                    2, ModifierTargetType.WEALTH, "wealth", ModifierValueType.FLAT_BONUS, 1000
                ),
            ),
        ),
        Edge(
            COMBAT_REFLEXES,
            "Combat Reflexes",
            category="Combat",
            requirements=leaf(6, RequirementType.RANK, value=2, description="Seasoned"),
        ),
        Edge(
            KEEN_SENSES,
            "Keen Senses",
            category="Background",
            modifiers=(
                Modifier(3, ModifierTargetType.SKILL, "Notice", ModifierValueType.DIE_INCREMENT),
            ),
        ),
    ]
    hindrances = [
        Hindrance(BAD_EYES_MINOR, "Bad Eyes (Minor)", Severity.MINOR, 1),
        Hindrance(
            BAD_EYES_MAJOR,
            "Bad Eyes (Major)",
            Severity.MAJOR,
            2,
            companion_hindrance_id=BAD_EYES_MINOR,
        ),
        Hindrance(LOYAL, "Loyal", Severity.MINOR, 1),
        Hindrance(WANTED, "Wanted", Severity.MAJOR, 2),
    ]
    arcane_backgrounds = [
        ArcaneBackground(
            MAGIC,
            "Magic",
            arcane_skill_id=SPELLCASTING,
            starting_powers=2,
            starting_power_points=10,
            requirements=leaf(
                7, RequirementType.EDGE, ARCANE_BACKGROUND, description="Arcane Background"
            ),
        ),
    ]
    powers = [
        Power(BOLT, "Bolt", power_points=1),
        Power(ARMOR, "Armor", power_points=2),
        Power(
            BLAST,
            "Blast",
            power_points=3,
            requirements=leaf(8, RequirementType.RANK, value=2, description="Seasoned"),
        ),
    ]
    ancestries = [
        Ancestry(
            DWARF,
            "Dwarf",
            modifiers=(
                Modifier(
                    4, ModifierTargetType.ATTRIBUTE, "Vigor", ModifierValueType.DIE_INCREMENT
                ),
                Modifier(
                    5,
                    ModifierTargetType.DERIVED_STAT,
                    "pace",
                    ModifierValueType.FLAT_BONUS,
                    -1,
                    "Reduced Pace",
                ),
                Modifier(
                    6,
                    ModifierTargetType.HERITAGE_CHOICE,
                    None,
                    ModifierValueType.DESCRIPTION,
                    None,
                    "Infravision",
                ),
            ),
        ),
    ]
    gear = [
        Gear(BACKPACK, "Backpack", cost=50, weight=2),
        Gear(ROPE, "Rope", cost=10, weight=15),
        Gear(TORCH, "Torch", cost=5, weight=1),
        Gear(EXPLORERS_PACK, "Explorer's Pack", cost=80),
        Gear(
            SHIELD,
            "Small Shield",
            cost=25,
            weight=4,
            modifiers=(
                Modifier(
                    7, ModifierTargetType.DERIVED_STAT, "parry", ModifierValueType.FLAT_BONUS, 1
                ),
            ),
        ),
        Gear(EXPEDITION_KIT, "Expedition Kit", cost=200),
    ]
    pack_items = [
        PackItem(EXPLORERS_PACK, BACKPACK, 1),
        PackItem(EXPLORERS_PACK, ROPE, 1),
        PackItem(EXPLORERS_PACK, TORCH, 5, "pitch-soaked"),
        PackItem(EXPEDITION_KIT, EXPLORERS_PACK, 2),
        PackItem(EXPEDITION_KIT, SHIELD, 1),
    ]
    return Catalog.build(
        attributes=attributes,
        skills=skills,
        edges=edges,
        hindrances=hindrances,
        arcane_backgrounds=arcane_backgrounds,
        powers=powers,
        ancestries=ancestries,
        gear=gear,
        pack_items=pack_items,
    )


@pytest.fixture
def draft(catalog: Catalog) -> CharacterDraft:
    """A fresh Novice Wild Card."""
    return new_character(catalog, "Test Hero")
