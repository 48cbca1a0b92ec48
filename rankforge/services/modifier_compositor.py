"""
Modifier Compositor — turns purchased values into effective values.

Composition rules:
- die_increment modifiers apply in ascending modifier-id order; each applies
  `value` ladder steps (default 1). Negative steps floor at d4.
- roll_bonus / flat_bonus accumulate into a separate integer bonus.
- description and selection modifiers are never applied; their text is
  surfaced as notes.

INVARIANT:
Recomputation is always from the purchased base, never onto a previous
effective value. Calling any function here twice with the same inputs yields
the same output.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from rankforge.constants import (
    BASE_PACE,
    BASE_PARRY,
    BASE_SIZE,
    BASE_TOUGHNESS,
    ENCUMBRANCE_PENALTY,
    FIGHTING_SKILL_NAME,
    STRENGTH_ATTRIBUTE_NAME,
    VIGOR_ATTRIBUTE_NAME,
)
from rankforge.models.catalog import Catalog
from rankforge.models.character import CharacterDraft
from rankforge.models.character_context import CharacterContext
from rankforge.models.die import DieRank
from rankforge.models.failure import DraftStateError
from rankforge.models.modifier import DerivedStat, Modifier, ModifierTargetType, ModifierValueType

logger = logging.getLogger(__name__)

# Load limit (weight units) per Strength die size; +20 per step past d12
LOAD_LIMITS: dict[int, int] = {4: 20, 6: 40, 8: 60, 10: 80, 12: 100}
LOAD_LIMIT_PER_EXTRA_STEP = 20


@dataclass(frozen=True)
class EffectiveValue:
    """A composed value: die (None when untrained), additive bonus, notes."""

    die: DieRank | None
    bonus: int = 0
    notes: tuple[str, ...] = ()

    def require_die(self, name: str) -> DieRank:
        """The die of a value that cannot be untrained, such as an attribute."""
        if self.die is None:
            raise DraftStateError(f"{name} has no effective die")
        return self.die


@dataclass(frozen=True)
class DerivedStats:
    pace: int = BASE_PACE
    parry: int = BASE_PARRY
    toughness: int = BASE_TOUGHNESS
    size: int = BASE_SIZE


@dataclass(frozen=True)
class Encumbrance:
    current_weight: float
    load_limit: float
    is_encumbered: bool
    penalty: int


@dataclass(frozen=True)
class EffectiveValues:
    """Every effective value of a draft, keyed by attribute / skill id."""

    attributes: dict[int, EffectiveValue] = field(default_factory=dict)
    skills: dict[int, EffectiveValue] = field(default_factory=dict)
    derived: DerivedStats = field(default_factory=DerivedStats)
    encumbrance: Encumbrance | None = None


# =============================================================================
# CORE COMPOSITION
# =============================================================================


def apply_die_steps(die: DieRank | None, steps: int) -> DieRank | None:
    """Move a die `steps` ladder steps. Untrained stays untrained; floors at d4."""
    if die is None:
        return None
    for _ in range(steps):
        die = die.increment()
    for _ in range(-steps):
        lower = die.decrement()
        if lower is None:
            break
        die = lower
    return die


def compute_effective(
    base: DieRank | None,
    modifiers: Iterable[Modifier],
    target_type: ModifierTargetType,
    target_identifier: str,
) -> EffectiveValue:
    """Compose a base die with the modifiers that target it."""
    applicable = sorted(
        (m for m in modifiers if m.targets(target_type, target_identifier)),
        key=lambda m: m.id,
    )
    die = base
    bonus = 0
    notes: list[str] = []

    for modifier in applicable:
        match modifier.value_type:
            case ModifierValueType.DIE_INCREMENT:
                steps = 1 if modifier.value is None else modifier.value
                die = apply_die_steps(die, steps)
            case ModifierValueType.ROLL_BONUS | ModifierValueType.FLAT_BONUS:
                bonus += modifier.value or 0
            case _:
                if modifier.description:
                    notes.append(modifier.description)

    return EffectiveValue(die=die, bonus=bonus, notes=tuple(notes))


def compute_derived_stat(stat: DerivedStat, modifiers: Iterable[Modifier]) -> int:
    """Sum of flat/roll bonuses targeting a derived stat."""
    return compute_effective(None, modifiers, ModifierTargetType.DERIVED_STAT, stat.value).bonus


def compute_derived_stats(
    modifiers: Iterable[Modifier],
    fighting_die: DieRank | None = None,
    vigor_die: DieRank | None = None,
) -> DerivedStats:
    """
    Pace, parry, toughness and size.

    Parry adds half the Fighting die, toughness half the Vigor die plus size.
    """
    modifiers = list(modifiers)
    size = BASE_SIZE + compute_derived_stat(DerivedStat.SIZE, modifiers)
    return DerivedStats(
        pace=BASE_PACE + compute_derived_stat(DerivedStat.PACE, modifiers),
        parry=BASE_PARRY
        + _half_die(fighting_die)
        + compute_derived_stat(DerivedStat.PARRY, modifiers),
        toughness=BASE_TOUGHNESS
        + _half_die(vigor_die)
        + size
        + compute_derived_stat(DerivedStat.TOUGHNESS, modifiers),
        size=size,
    )


def _half_die(die: DieRank | None) -> int:
    if die is None:
        return 0
    return (die.size + die.modifier) // 2


def load_limit(strength_die: DieRank) -> int:
    return LOAD_LIMITS[strength_die.size] + strength_die.modifier * LOAD_LIMIT_PER_EXTRA_STEP


def compute_encumbrance(current_weight: float, strength_die: DieRank) -> Encumbrance:
    limit = load_limit(strength_die)
    encumbered = current_weight > limit
    return Encumbrance(
        current_weight=current_weight,
        load_limit=float(limit),
        is_encumbered=encumbered,
        penalty=ENCUMBRANCE_PENALTY if encumbered else 0,
    )


# =============================================================================
# DRAFT-LEVEL COMPOSITION
# =============================================================================


def collect_modifiers(draft: CharacterDraft) -> list[Modifier]:
    """Modifiers from direct entries, ancestry, edges, hindrances and equipped gear."""
    return list(_iter_modifiers(draft))


def _iter_modifiers(draft: CharacterDraft) -> Iterator[Modifier]:
    yield from draft.modifiers
    if draft.ancestry is not None:
        yield from draft.ancestry.modifiers
    for edge in draft.edges:
        yield from edge.edge.modifiers
    for hindrance in draft.hindrances:
        yield from hindrance.hindrance.modifiers
    for item in draft.gear:
        if item.is_equipped:
            yield from item.gear.modifiers


def compute_effective_values(draft: CharacterDraft, catalog: Catalog) -> EffectiveValues:
    """Derive every effective value of a draft from its purchased values."""
    modifiers = collect_modifiers(draft)

    attributes = {
        attr.attribute.id: compute_effective(
            attr.die, modifiers, ModifierTargetType.ATTRIBUTE, attr.attribute.name
        )
        for attr in draft.attributes
    }
    skills = {
        skill.skill.id: compute_effective(
            skill.die, modifiers, ModifierTargetType.SKILL, skill.skill.name
        )
        for skill in draft.skills
    }

    fighting = catalog.skill_by_name(FIGHTING_SKILL_NAME)
    vigor = catalog.attribute_by_name(VIGOR_ATTRIBUTE_NAME)
    derived = compute_derived_stats(
        modifiers,
        fighting_die=skills[fighting.id].die if fighting and fighting.id in skills else None,
        vigor_die=attributes[vigor.id].die if vigor and vigor.id in attributes else None,
    )

    encumbrance = None
    strength = catalog.attribute_by_name(STRENGTH_ATTRIBUTE_NAME)
    if strength is not None and strength.id in attributes:
        strength_die = attributes[strength.id].require_die(strength.name)
        weight = sum(item.gear.weight * item.quantity for item in draft.gear)
        encumbrance = compute_encumbrance(weight, strength_die)

    return EffectiveValues(
        attributes=attributes,
        skills=skills,
        derived=derived,
        encumbrance=encumbrance,
    )


def build_context(
    draft: CharacterDraft,
    catalog: Catalog,
    values: EffectiveValues | None = None,
) -> CharacterContext:
    """Build the requirement-evaluation context from a draft's effective values."""
    if values is None:
        values = compute_effective_values(draft, catalog)
    rank = catalog.rank_for_advances(draft.advance_count)
    context = CharacterContext(
        attribute_dies={
            attr_id: value.die for attr_id, value in values.attributes.items() if value.die
        },
        skill_dies={skill_id: value.die for skill_id, value in values.skills.items()},
        edge_ids=draft.edge_ids,
        hindrance_ids=draft.hindrance_ids,
        rank_tier=catalog.rank_tier(rank),
        arcane_background_ids=frozenset(ab.id for ab in draft.arcane_backgrounds),
        arcane_skill_ids={ab.id: ab.arcane_skill_id for ab in draft.arcane_backgrounds},
        is_wild_card=draft.is_wild_card,
    )
    logger.debug(
        "Built context for %r: rank tier %d, %d edges",
        draft.name,
        context.rank_tier,
        len(context.edge_ids),
    )
    return context
