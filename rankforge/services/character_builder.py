"""
Character creation rules.

Point-bought changes to a draft before (or between) advances: hindrances,
edges bought with hindrance points, attribute and skill purchases, arcane
backgrounds, powers, ancestry and gear.

Like the advancement engine, every operation returns a new draft and leaves
its input untouched.

Costs:
- Attributes: 1 attribute point per step, from the base die up to d12
- Skills: 1 skill point per step up to the linked attribute's effective die,
  2 per step above it; training an untrained skill to d4 costs 1
- Edges: 1 edge point each (edge points come from hindrance points, 2:1)
"""

import copy
import logging

from rankforge.constants import (
    ARCANE_BACKGROUND_EDGE_NAME,
    SOURCE_CHOSEN,
    SOURCE_HINDRANCE_POINTS,
    STARTING_ATTRIBUTE_POINTS,
    STARTING_SKILL_POINTS,
    STARTING_WEALTH,
)
from rankforge.models.catalog import Catalog, Edge
from rankforge.models.character import (
    CharacterAttribute,
    CharacterDraft,
    CharacterEdge,
    CharacterGear,
    CharacterHindrance,
    CharacterPower,
    CharacterSkill,
)
from rankforge.models.die import DieRank
from rankforge.models.failure import FailureKind, NotFoundError, RuleValidationError
from rankforge.models.ledger import Category, PointLedger
from rankforge.models.modifier import ModifierTargetType
from rankforge.models.requirement import RequirementNode, evaluate_requirements, unmet_requirements
from rankforge.services.modifier_compositor import (
    build_context,
    collect_modifiers,
    compute_effective,
    compute_effective_values,
)

logger = logging.getLogger(__name__)


def new_character(catalog: Catalog, name: str, is_wild_card: bool = True) -> CharacterDraft:
    """
    A fresh Novice draft.

    Attributes start at their base die; core skills at their default die
    (d4 if none), all other skills untrained.
    """
    return CharacterDraft(
        name=name,
        is_wild_card=is_wild_card,
        attributes=[
            CharacterAttribute(attribute=attr, die=attr.base_die)
            for attr in sorted(catalog.attributes.values(), key=lambda a: a.id)
        ],
        skills=[
            CharacterSkill(
                skill=skill,
                die=(skill.default_die or DieRank.d4()) if skill.is_core_skill else None,
            )
            for skill in sorted(catalog.skills.values(), key=lambda s: s.id)
        ],
        ledger=PointLedger(
            attribute_points_earned=STARTING_ATTRIBUTE_POINTS,
            skill_points_earned=STARTING_SKILL_POINTS,
        ),
        wealth=STARTING_WEALTH,
    )


def _check_requirements(
    name: str, requirements: RequirementNode | None, draft: CharacterDraft, catalog: Catalog
) -> None:
    context = build_context(draft, catalog)
    if not evaluate_requirements(requirements, context):
        unmet = unmet_requirements(requirements, context)
        raise RuleValidationError(
            f"Requirements not met for {name}: {', '.join(unmet)}",
            kind=FailureKind.REQUIREMENTS_NOT_MET,
        )


# =============================================================================
# HINDRANCES
# =============================================================================


def add_hindrance(draft: CharacterDraft, catalog: Catalog, hindrance_id: int) -> CharacterDraft:
    """Take a hindrance and earn its points."""
    if draft.find_hindrance(hindrance_id) is not None:
        raise RuleValidationError("Hindrance already added", FailureKind.DUPLICATE_SELECTION)
    hindrance = catalog.hindrance(hindrance_id)
    _check_requirements(hindrance.name, hindrance.requirements, draft, catalog)

    result = copy.deepcopy(draft)
    result.insert_hindrance(CharacterHindrance(hindrance=hindrance, source=SOURCE_CHOSEN))
    result.ledger.earn(Category.HINDRANCES, hindrance.point_value)
    return result


def remove_hindrance(draft: CharacterDraft, catalog: Catalog, hindrance_id: int) -> CharacterDraft:
    """Drop a chosen hindrance and forfeit its points."""
    entry = draft.find_hindrance(hindrance_id)
    if entry is None or entry.source != SOURCE_CHOSEN:
        raise NotFoundError("Removable hindrance", hindrance_id)

    result = copy.deepcopy(draft)
    result.pop_hindrance(hindrance_id)
    result.ledger.forfeit(Category.HINDRANCES, entry.hindrance.point_value)
    return result


# =============================================================================
# EDGES
# =============================================================================


def _wealth_bonus(edge: Edge) -> int:
    return sum(
        m.value or 0 for m in edge.modifiers if m.target_type == ModifierTargetType.WEALTH
    )


def add_edge(
    draft: CharacterDraft,
    catalog: Catalog,
    edge_id: int,
    notes: str | None = None,
) -> CharacterDraft:
    """Buy an edge with edge points."""
    edge = catalog.edge(edge_id)
    if not edge.can_take_multiple_times and draft.has_edge(edge_id):
        raise RuleValidationError(
            "Edge already taken and cannot be taken multiple times",
            kind=FailureKind.DUPLICATE_SELECTION,
        )
    _check_requirements(edge.name, edge.requirements, draft, catalog)
    if edge.can_take_multiple_times and not notes:
        raise RuleValidationError(
            "This edge requires notes (e.g., specify the skill or weapon)",
            kind=FailureKind.INVALID_INPUT,
        )

    result = copy.deepcopy(draft)
    result.ledger.spend(Category.EDGES, 1)
    bonus = _wealth_bonus(edge)
    if bonus > 0:
        result.wealth += bonus
    result.edges.append(CharacterEdge(edge=edge, source=SOURCE_HINDRANCE_POINTS, notes=notes))
    return result


def remove_edge(draft: CharacterDraft, catalog: Catalog, edge_id: int) -> CharacterDraft:
    """Remove an edge bought with edge points and refund it."""
    result = copy.deepcopy(draft)
    _drop_bought_edge(result, edge_id)
    return result


def _drop_bought_edge(draft: CharacterDraft, edge_id: int) -> CharacterEdge:
    for index in range(len(draft.edges) - 1, -1, -1):
        entry = draft.edges[index]
        if entry.edge.id == edge_id and entry.source == SOURCE_HINDRANCE_POINTS:
            del draft.edges[index]
            break
    else:
        raise NotFoundError("Removable edge", edge_id)

    draft.ledger.refund(Category.EDGES, 1)
    if entry.edge.name == ARCANE_BACKGROUND_EDGE_NAME:
        _clear_arcane_backgrounds(draft)
    bonus = _wealth_bonus(entry.edge)
    if bonus > 0:
        draft.wealth = max(0, draft.wealth - bonus)
    return entry


def _clear_arcane_backgrounds(draft: CharacterDraft) -> None:
    granted = sum(ab.starting_power_points for ab in draft.arcane_backgrounds)
    draft.power_points = max(0, draft.power_points - granted)
    draft.arcane_backgrounds.clear()
    draft.powers.clear()


def remove_invalid_edges(draft: CharacterDraft, catalog: Catalog) -> CharacterDraft:
    """Remove bought edges whose requirements are no longer met."""
    result = copy.deepcopy(draft)
    _remove_invalid_edges(result, catalog)
    return result


def _remove_invalid_edges(draft: CharacterDraft, catalog: Catalog) -> list[str]:
    """In-place removal, repeated until stable (one edge may gate another)."""
    removed: list[str] = []
    while True:
        context = build_context(draft, catalog)
        invalid = next(
            (
                entry
                for entry in draft.edges
                if entry.source == SOURCE_HINDRANCE_POINTS
                and not evaluate_requirements(entry.edge.requirements, context)
            ),
            None,
        )
        if invalid is None:
            break
        _drop_bought_edge(draft, invalid.edge.id)
        removed.append(invalid.edge.name)
    if removed:
        logger.info("Removed edges that no longer qualify on %r: %s", draft.name, removed)
    return removed


# =============================================================================
# ATTRIBUTES AND SKILLS
# =============================================================================


def change_attribute(
    draft: CharacterDraft, catalog: Catalog, attribute_id: int, increment: bool
) -> CharacterDraft:
    """Buy or sell one step of an attribute."""
    attr = draft.attribute(attribute_id)
    result = copy.deepcopy(draft)
    target = result.attribute(attribute_id)

    if increment:
        if attr.die >= DieRank.d12():
            raise RuleValidationError("Attribute already at maximum", FailureKind.AT_MAXIMUM)
        result.ledger.spend(Category.ATTRIBUTES, 1)
        target.die = attr.die.increment()
        return result

    if attr.die <= attr.attribute.base_die:
        raise RuleValidationError("Attribute already at base value", FailureKind.AT_MINIMUM)
    lower = attr.die.decrement()
    if lower is None:
        raise RuleValidationError("Cannot decrement below d4", FailureKind.AT_MINIMUM)
    target.die = lower
    result.ledger.refund(Category.ATTRIBUTES, 1)
    _remove_invalid_edges(result, catalog)
    return result


def check_attribute_decrement_impact(
    draft: CharacterDraft, catalog: Catalog, attribute_id: int
) -> list[str]:
    """Names of edges whose requirements a one-step decrement would break."""
    attr = draft.attribute(attribute_id)
    if attr.die <= attr.attribute.base_die:
        return []

    name = attr.attribute.name
    lowered = compute_effective(
        attr.die.decrement() or DieRank.d4(),
        collect_modifiers(draft),
        ModifierTargetType.ATTRIBUTE,
        name,
    )
    before = build_context(draft, catalog)
    after = before.with_attribute_die(attribute_id, lowered.require_die(name))
    return [
        entry.edge.name
        for entry in draft.edges
        if evaluate_requirements(entry.edge.requirements, before)
        and not evaluate_requirements(entry.edge.requirements, after)
    ]


def skill_step_cost(draft: CharacterDraft, catalog: Catalog, skill_id: int) -> int:
    """Skill points the next step of a skill costs."""
    entry = draft.skill(skill_id)
    if entry.die is None:
        return 1
    linked_die = _linked_effective_die(draft, catalog, entry)
    return 2 if entry.die.increment() > linked_die else 1


def _linked_effective_die(
    draft: CharacterDraft, catalog: Catalog, entry: CharacterSkill
) -> DieRank:
    linked_id = entry.skill.linked_attribute_id
    values = compute_effective_values(draft, catalog)
    if linked_id not in values.attributes:
        raise NotFoundError("Linked attribute", linked_id)
    return values.attributes[linked_id].require_die("Linked attribute")


def change_skill(
    draft: CharacterDraft, catalog: Catalog, skill_id: int, increment: bool
) -> CharacterDraft:
    """Buy or sell one step of a skill."""
    entry = draft.skill(skill_id)
    linked_die = _linked_effective_die(draft, catalog, entry)
    result = copy.deepcopy(draft)
    target = result.skill(skill_id)

    if increment:
        if entry.die is not None and entry.die >= entry.skill.max_die:
            raise RuleValidationError("Skill already at maximum", FailureKind.AT_MAXIMUM)
        if entry.die is None:
            cost, next_die = 1, DieRank.d4()
        else:
            next_die = entry.die.increment()
            cost = 2 if next_die > linked_die else 1
        result.ledger.spend(Category.SKILLS, cost)
        target.die = next_die
        return result

    if entry.die is None:
        raise RuleValidationError("Skill is untrained", FailureKind.AT_MINIMUM)
    if entry.skill.is_core_skill and entry.die <= DieRank.d4():
        raise RuleValidationError("Core skills cannot go below d4", FailureKind.AT_MINIMUM)

    refund = 2 if entry.die > linked_die else 1
    previous = entry.die.decrement()
    if previous is None:
        refund = 1
    target.die = previous
    result.ledger.refund(Category.SKILLS, refund)
    _remove_invalid_edges(result, catalog)
    return result


def allocate_hindrance_points(
    draft: CharacterDraft, catalog: Catalog, category: Category, amount: int
) -> CharacterDraft:
    """Convert hindrance points into `amount` units of a category (negative deallocates)."""
    result = copy.deepcopy(draft)
    result.ledger.convert(amount, category)
    return result


# =============================================================================
# ARCANE BACKGROUNDS AND POWERS
# =============================================================================


def add_arcane_background(
    draft: CharacterDraft, catalog: Catalog, arcane_background_id: int
) -> CharacterDraft:
    """Gain an arcane background and its starting power points."""
    if any(ab.id == arcane_background_id for ab in draft.arcane_backgrounds):
        raise RuleValidationError(
            "Arcane background already added", FailureKind.DUPLICATE_SELECTION
        )
    arcane_background = catalog.arcane_background(arcane_background_id)
    _check_requirements(arcane_background.name, arcane_background.requirements, draft, catalog)

    result = copy.deepcopy(draft)
    result.arcane_backgrounds.append(arcane_background)
    result.power_points += arcane_background.starting_power_points
    return result


def power_slots(draft: CharacterDraft) -> int:
    """Starting power slots from arcane backgrounds plus power_slots edge modifiers."""
    base = sum(ab.starting_powers for ab in draft.arcane_backgrounds)
    bonus = sum(
        m.value or 0
        for entry in draft.edges
        for m in entry.edge.modifiers
        if m.target_type == ModifierTargetType.POWER_SLOTS
    )
    return base + bonus


def add_power(draft: CharacterDraft, catalog: Catalog, power_id: int) -> CharacterDraft:
    """Learn a starting power."""
    if any(p.power.id == power_id for p in draft.powers):
        raise RuleValidationError("Power already added", FailureKind.DUPLICATE_SELECTION)
    if not draft.arcane_backgrounds:
        raise RuleValidationError(
            "Character must have an Arcane Background to select powers",
            kind=FailureKind.REQUIREMENTS_NOT_MET,
        )
    slots = power_slots(draft)
    if len(draft.powers) >= slots:
        raise RuleValidationError(
            f"Cannot add more powers. You have {len(draft.powers)} of {slots} starting powers.",
            kind=FailureKind.AT_MAXIMUM,
        )
    power = catalog.power(power_id)
    _check_requirements(power.name, power.requirements, draft, catalog)

    result = copy.deepcopy(draft)
    result.powers.append(CharacterPower(power=power))
    return result


# =============================================================================
# ANCESTRY AND GEAR
# =============================================================================


def set_ancestry(
    draft: CharacterDraft, catalog: Catalog, ancestry_id: int | None
) -> CharacterDraft:
    """Choose (or clear, with None) the character's ancestry."""
    result = copy.deepcopy(draft)
    if ancestry_id is None:
        result.ancestry = None
        return result
    ancestry = catalog.ancestry(ancestry_id)
    _check_requirements(ancestry.name, ancestry.requirements, draft, catalog)
    result.ancestry = ancestry
    return result


def add_gear(
    draft: CharacterDraft,
    catalog: Catalog,
    gear_id: int,
    quantity: int = 1,
    is_equipped: bool = False,
) -> CharacterDraft:
    """Carry a gear item (no purchase; wealth is unchanged)."""
    if quantity < 1:
        raise RuleValidationError("Quantity must be at least 1", FailureKind.INVALID_INPUT)
    gear = catalog.gear_item(gear_id)
    _check_requirements(gear.name, gear.requirements, draft, catalog)

    result = copy.deepcopy(draft)
    result.gear.append(CharacterGear(gear=gear, quantity=quantity, is_equipped=is_equipped))
    return result


def set_gear_equipped(
    draft: CharacterDraft, catalog: Catalog, gear_id: int, is_equipped: bool
) -> CharacterDraft:
    result = copy.deepcopy(draft)
    entry = next((g for g in result.gear if g.gear.id == gear_id), None)
    if entry is None:
        raise NotFoundError("Character gear", gear_id)
    entry.is_equipped = is_equipped
    return result
