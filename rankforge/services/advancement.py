"""
Advancement Engine — one rule-governed change per advance, with undo.

Every operation takes a draft and a catalog and returns a NEW draft; the
input is never mutated. All validation happens before any change is made,
so an operation either fully succeeds or raises with nothing applied.

Rank windows:
- The rank an advance is taken in is the rank for the advance count BEFORE it
- Outside Legendary: at most one attribute advance per rank
- In Legendary: one attribute advance every other advance

Hindrance actions:
- remove_minor: delete a Minor hindrance, forfeit its points
- reduce_major: swap a Major for its Minor companion, forfeit the difference
- remove_major_half: first use banks (record only), second use on the SAME
  hindrance id removes it and forfeits its points
- complete_major_removal: explicit second half; recorded as remove_major_half

Hindrance records store the hindrance's prior source in `notes` so undo can
restore it exactly. Buying off a hindrance is refused while its points are
spent or converted; the ledger never goes overspent.

INVARIANTS:
- next_advance_number == len(history) + 1
- undo_advance only ever retracts the most recent record
- apply_* followed by undo_advance restores the draft exactly
"""

import copy
import logging
from collections import Counter

from rankforge.constants import (
    LEGENDARY_RANK_NAME,
    SOURCE_ADVANCEMENT,
    SOURCE_ADVANCEMENT_REDUCED,
    SOURCE_CHOSEN,
)
from rankforge.models.advance import (
    AdvancementOptions,
    AdvanceRecord,
    AdvanceSummary,
    AdvanceType,
    AttributeAdvanceOption,
    HindranceAction,
    HindranceAdvanceOption,
    SkillAdvanceOption,
)
from rankforge.models.catalog import Catalog, Hindrance, Rank
from rankforge.models.character import (
    CharacterDraft,
    CharacterEdge,
    CharacterHindrance,
    CharacterSkill,
)
from rankforge.models.die import DieRank
from rankforge.models.failure import (
    DraftStateError,
    FailureKind,
    NotFoundError,
    RuleValidationError,
)
from rankforge.models.ledger import Category
from rankforge.models.modifier import ModifierTargetType
from rankforge.models.requirement import evaluate_requirements, unmet_requirements
from rankforge.services.modifier_compositor import (
    build_context,
    collect_modifiers,
    compute_effective,
)

logger = logging.getLogger(__name__)

# Hindrance sources whose points were earned by the character
EARNING_SOURCES = frozenset({SOURCE_CHOSEN, SOURCE_ADVANCEMENT_REDUCED})

# First advance number that falls in the Legendary window
LEGENDARY_START = 16


# =============================================================================
# QUERIES
# =============================================================================


def banked_hindrance_ids(draft: CharacterDraft) -> set[int]:
    """Hindrances with an odd number of remove_major_half records."""
    counts = _major_half_counts(draft.advances)
    return {hindrance_id for hindrance_id, count in counts.items() if count % 2 == 1}


def _major_half_counts(advances: list[AdvanceRecord]) -> Counter[int]:
    return Counter(
        record.hindrance_id
        for record in advances
        if record.advance_type == AdvanceType.HINDRANCE
        and record.hindrance_action == HindranceAction.REMOVE_MAJOR_HALF
        and record.hindrance_id is not None
    )


def check_attribute_advance_available(
    draft: CharacterDraft, catalog: Catalog
) -> tuple[bool, str | None]:
    """Whether the rank window allows an attribute advance now, and why not."""
    current_count = draft.advance_count
    current_rank = catalog.rank_for_advances(current_count)
    attribute_numbers = [
        record.advance_number
        for record in draft.advances
        if record.advance_type == AdvanceType.ATTRIBUTE
    ]

    if current_rank.name == LEGENDARY_RANK_NAME:
        legendary_index = current_count - LEGENDARY_START + 1
        taken = sum(1 for n in attribute_numbers if n - 1 >= LEGENDARY_START)
        if legendary_index // 2 > taken:
            return True, None
        return False, "Can only increase an attribute every other Legendary advance"

    taken_in_rank = sum(
        1 for n in attribute_numbers if rank_for_advance_number(catalog, n) == current_rank
    )
    if taken_in_rank == 0:
        return True, None
    return False, f"Already increased an attribute this rank ({current_rank.name})"


def resolve_hindrance_action(hindrance: Hindrance, is_banked: bool) -> HindranceAction:
    """The action an advance would take on a hindrance."""
    if is_banked:
        return HindranceAction.COMPLETE_MAJOR_REMOVAL
    if not hindrance.is_major:
        return HindranceAction.REMOVE_MINOR
    if hindrance.companion_hindrance_id is not None:
        return HindranceAction.REDUCE_MAJOR
    return HindranceAction.REMOVE_MAJOR_HALF


def get_advancement_options(draft: CharacterDraft, catalog: Catalog) -> AdvancementOptions:
    """Compute, read-only, every choice that is legal for the next advance."""
    current_rank = catalog.rank_for_advances(draft.advance_count)
    next_rank = catalog.rank_for_advances(draft.next_advance_number)
    can_increase_attribute, blocked_reason = check_attribute_advance_available(draft, catalog)
    modifiers = collect_modifiers(draft)

    attribute_options = []
    for attr in draft.attributes:
        name = attr.attribute.name
        is_maxed = attr.die >= DieRank.d12()
        next_die = attr.die if is_maxed else attr.die.increment()
        effective = compute_effective(attr.die, modifiers, ModifierTargetType.ATTRIBUTE, name)
        effective_next = compute_effective(next_die, modifiers, ModifierTargetType.ATTRIBUTE, name)
        attribute_options.append(
            AttributeAdvanceOption(
                id=attr.attribute.id,
                name=name,
                current_die=attr.die,
                effective_die=effective.require_die(name),
                next_die=next_die,
                effective_next_die=effective_next.require_die(name),
                is_maxed=is_maxed,
            )
        )

    expensive, cheap = [], []
    for entry in draft.skills:
        skill = entry.skill
        is_maxed = entry.die is not None and entry.die >= skill.max_die
        if entry.die is None:
            skill_next: DieRank | None = DieRank.d4()
        else:
            skill_next = entry.die if is_maxed else entry.die.increment()
        option = SkillAdvanceOption(
            id=skill.id,
            name=skill.name,
            current_die=entry.die,
            effective_die=compute_effective(
                entry.die, modifiers, ModifierTargetType.SKILL, skill.name
            ).die,
            next_die=skill_next,
            effective_next_die=compute_effective(
                skill_next, modifiers, ModifierTargetType.SKILL, skill.name
            ).die,
            is_maxed=is_maxed,
        )
        if _is_cheap(draft, entry):
            cheap.append(option)
        else:
            expensive.append(option)

    banked = banked_hindrance_ids(draft)
    hindrance_options = []
    for held in draft.hindrances:
        hindrance = held.hindrance
        is_banked = hindrance.id in banked
        action = resolve_hindrance_action(hindrance, is_banked)
        hindrance_options.append(
            HindranceAdvanceOption(
                id=hindrance.id,
                name=hindrance.name,
                severity=hindrance.severity.value,
                action=action,
                action_label=action.label,
                is_banked=is_banked,
            )
        )

    context = build_context(draft, catalog)
    eligible_edges = sorted(
        edge.id
        for edge in catalog.edges.values()
        if (edge.can_take_multiple_times or not draft.has_edge(edge.id))
        and evaluate_requirements(edge.requirements, context)
    )

    return AdvancementOptions(
        next_advance_number=draft.next_advance_number,
        current_rank=current_rank.name,
        rank_after_advance=next_rank.name,
        can_increase_attribute=can_increase_attribute,
        attribute_blocked_reason=blocked_reason,
        attribute_options=attribute_options,
        expensive_skill_options=expensive,
        cheap_skill_options=cheap,
        hindrance_options=hindrance_options,
        eligible_edge_ids=eligible_edges,
    )


def _is_cheap(draft: CharacterDraft, entry: CharacterSkill) -> bool:
    """Untrained, or purchased die below the linked attribute's purchased die."""
    if entry.die is None:
        return True
    linked = draft.attribute(entry.skill.linked_attribute_id)
    return entry.die < linked.die


# =============================================================================
# APPLY
# =============================================================================


def apply_edge_advance(
    draft: CharacterDraft,
    catalog: Catalog,
    edge_id: int,
    notes: str | None = None,
) -> CharacterDraft:
    """
    Gain an edge as an advance.

    Raises:
        NotFoundError: Unknown edge
        RuleValidationError: Already taken (non-repeatable) or requirements unmet
    """
    edge = catalog.edge(edge_id)
    if draft.has_edge(edge_id) and not edge.can_take_multiple_times:
        raise RuleValidationError(
            f"{edge.name} has already been taken and cannot be taken again",
            kind=FailureKind.DUPLICATE_SELECTION,
        )
    context = build_context(draft, catalog)
    if not evaluate_requirements(edge.requirements, context):
        unmet = unmet_requirements(edge.requirements, context)
        raise RuleValidationError(
            f"Requirements not met for {edge.name}: {', '.join(unmet)}",
            kind=FailureKind.REQUIREMENTS_NOT_MET,
        )

    result = copy.deepcopy(draft)
    number = result.next_advance_number
    result.edges.append(
        CharacterEdge(edge=edge, advance_taken=number, source=SOURCE_ADVANCEMENT, notes=notes)
    )
    return _append(
        result,
        AdvanceRecord(number, AdvanceType.EDGE, edge_id=edge_id, notes=notes),
    )


def apply_attribute_advance(
    draft: CharacterDraft, catalog: Catalog, attribute_id: int
) -> CharacterDraft:
    """
    Raise an attribute's purchased die by one step.

    Raises:
        NotFoundError: Attribute not on the character
        RuleValidationError: Already d12, or the rank window forbids it
    """
    attr = draft.attribute(attribute_id)
    if attr.die >= DieRank.d12():
        raise RuleValidationError(
            f"{attr.attribute.name} is already at maximum (d12)",
            kind=FailureKind.AT_MAXIMUM,
        )
    allowed, reason = check_attribute_advance_available(draft, catalog)
    if not allowed:
        raise RuleValidationError(reason or "Attribute advance not allowed", FailureKind.RANK_LIMIT)

    result = copy.deepcopy(draft)
    target = result.attribute(attribute_id)
    target.die = target.die.increment()
    return _append(
        result,
        AdvanceRecord(result.next_advance_number, AdvanceType.ATTRIBUTE, attribute_id=attribute_id),
    )


def apply_expensive_skill_advance(
    draft: CharacterDraft, catalog: Catalog, skill_id: int
) -> CharacterDraft:
    """
    Raise one skill at or above its linked attribute by one step.

    Raises:
        NotFoundError: Skill not on the character
        RuleValidationError: Untrained, below the attribute, or at maximum
    """
    entry = draft.skill(skill_id)
    name = entry.skill.name
    if entry.die is None:
        raise RuleValidationError(
            f"{name} is untrained. Use a cheap skill advance.",
            kind=FailureKind.INVALID_INPUT,
        )
    linked = draft.attribute(entry.skill.linked_attribute_id)
    if entry.die < linked.die:
        raise RuleValidationError(
            f"{name} ({entry.die}) is below linked attribute ({linked.die}). "
            "Use cheap skill advance.",
            kind=FailureKind.INVALID_INPUT,
        )
    if entry.die >= entry.skill.max_die:
        raise RuleValidationError(
            f"{name} is already at maximum ({entry.skill.max_die})",
            kind=FailureKind.AT_MAXIMUM,
        )

    result = copy.deepcopy(draft)
    _increase_skill(result.skill(skill_id))
    return _append(
        result,
        AdvanceRecord(result.next_advance_number, AdvanceType.SKILL_EXPENSIVE, skill_id_1=skill_id),
    )


def apply_cheap_skill_advance(
    draft: CharacterDraft, catalog: Catalog, skill_id_1: int, skill_id_2: int
) -> CharacterDraft:
    """
    Raise two different skills below their linked attributes by one step each.

    Untrained skills count as below and become d4. Both share one record.
    """
    if skill_id_1 == skill_id_2:
        raise RuleValidationError(
            "Cheap skill advance requires two different skills",
            kind=FailureKind.DUPLICATE_SELECTION,
        )
    for skill_id in (skill_id_1, skill_id_2):
        _validate_cheap_skill(draft, skill_id)

    result = copy.deepcopy(draft)
    _increase_skill(result.skill(skill_id_1))
    _increase_skill(result.skill(skill_id_2))
    return _append(
        result,
        AdvanceRecord(
            result.next_advance_number,
            AdvanceType.SKILL_CHEAP,
            skill_id_1=skill_id_1,
            skill_id_2=skill_id_2,
        ),
    )


def _validate_cheap_skill(draft: CharacterDraft, skill_id: int) -> None:
    entry = draft.skill(skill_id)
    if entry.die is None:
        return
    name = entry.skill.name
    linked = draft.attribute(entry.skill.linked_attribute_id)
    if entry.die >= linked.die:
        raise RuleValidationError(
            f"{name} ({entry.die}) is at or above linked attribute ({linked.die}). "
            "Use expensive skill advance.",
            kind=FailureKind.INVALID_INPUT,
        )
    if entry.die >= entry.skill.max_die:
        raise RuleValidationError(
            f"{name} is already at maximum ({entry.skill.max_die})",
            kind=FailureKind.AT_MAXIMUM,
        )


def _increase_skill(entry: CharacterSkill) -> None:
    entry.die = DieRank.d4() if entry.die is None else entry.die.increment()


def apply_hindrance_advance(
    draft: CharacterDraft,
    catalog: Catalog,
    hindrance_id: int,
    action: HindranceAction | str,
) -> CharacterDraft:
    """
    Remove or reduce a hindrance as an advance.

    Raises:
        NotFoundError: Hindrance not on the character, or missing companion
        RuleValidationError: Unknown action, or the action does not fit the
            hindrance's severity / banked state
    """
    action = _parse_action(action)
    entry = draft.find_hindrance(hindrance_id)
    if entry is None:
        raise NotFoundError("Character hindrance", hindrance_id)
    hindrance = entry.hindrance
    is_banked = hindrance_id in banked_hindrance_ids(draft)

    if action == HindranceAction.COMPLETE_MAJOR_REMOVAL:
        if not is_banked:
            raise RuleValidationError(
                f"{hindrance.name} has no banked removal to complete",
                kind=FailureKind.INVALID_INPUT,
            )
        action = HindranceAction.REMOVE_MAJOR_HALF

    if action == HindranceAction.REMOVE_MINOR and hindrance.is_major:
        raise RuleValidationError(
            f"{hindrance.name} is a Major hindrance; remove_minor applies to Minor hindrances",
            kind=FailureKind.INVALID_INPUT,
        )
    if action != HindranceAction.REMOVE_MINOR and not hindrance.is_major:
        raise RuleValidationError(
            f"{hindrance.name} is a Minor hindrance; use remove_minor",
            kind=FailureKind.INVALID_INPUT,
        )
    if action == HindranceAction.REDUCE_MAJOR and is_banked:
        raise RuleValidationError(
            f"{hindrance.name} has a banked removal; complete it instead",
            kind=FailureKind.INVALID_INPUT,
        )

    companion = None
    if action == HindranceAction.REDUCE_MAJOR:
        if hindrance.companion_hindrance_id is None:
            raise RuleValidationError(
                f"{hindrance.name} has no minor companion to reduce to",
                kind=FailureKind.INVALID_INPUT,
            )
        companion = catalog.hindrance(hindrance.companion_hindrance_id)
        if draft.find_hindrance(companion.id) is not None:
            raise RuleValidationError(
                f"Character already has {companion.name}",
                kind=FailureKind.DUPLICATE_SELECTION,
            )

    earns = entry.source in EARNING_SOURCES
    forfeit = 0
    if earns:
        if companion is not None:
            forfeit = max(0, hindrance.point_value - companion.point_value)
        elif action == HindranceAction.REMOVE_MINOR or is_banked:
            forfeit = hindrance.point_value
    unspent = draft.ledger.available(Category.HINDRANCES)
    if forfeit > unspent:
        raise RuleValidationError(
            f"Cannot buy off {hindrance.name}: its hindrance points are already spent",
            kind=FailureKind.INSUFFICIENT_POINTS,
            detail=f"forfeit {forfeit}, unspent {max(0, unspent)}",
            suggestion="Free up hindrance points first.",
        )

    result = copy.deepcopy(draft)
    if action == HindranceAction.REMOVE_MINOR or is_banked:
        result.pop_hindrance(hindrance_id)
    elif companion is not None:
        result.pop_hindrance(hindrance_id)
        result.insert_hindrance(
            CharacterHindrance(
                hindrance=companion,
                source=SOURCE_ADVANCEMENT_REDUCED if earns else entry.source,
            )
        )
    if forfeit:
        result.ledger.forfeit(Category.HINDRANCES, forfeit)

    return _append(
        result,
        AdvanceRecord(
            result.next_advance_number,
            AdvanceType.HINDRANCE,
            hindrance_id=hindrance_id,
            hindrance_action=action,
            notes=entry.source,
        ),
    )


def _parse_action(action: HindranceAction | str) -> HindranceAction:
    if isinstance(action, HindranceAction):
        return action
    try:
        return HindranceAction(action)
    except ValueError:
        raise RuleValidationError(
            f"Unknown hindrance action: {action}",
            kind=FailureKind.INVALID_INPUT,
        ) from None


def _append(draft: CharacterDraft, record: AdvanceRecord) -> CharacterDraft:
    draft.advances.append(record)
    logger.info(
        "Applied advance %d (%s) to %r",
        record.advance_number,
        record.advance_type.value,
        draft.name,
    )
    return draft


# =============================================================================
# UNDO
# =============================================================================


def undo_advance(draft: CharacterDraft, catalog: Catalog) -> CharacterDraft:
    """
    Retract the most recent advance and reverse its effect exactly.

    Raises:
        NotFoundError: History is empty
        DraftStateError: The draft no longer matches its history
    """
    if not draft.advances:
        raise NotFoundError("Advance to undo")

    result = copy.deepcopy(draft)
    record = result.advances.pop()

    match record.advance_type:
        case AdvanceType.EDGE:
            _undo_edge(result, record)
        case AdvanceType.ATTRIBUTE:
            attr = result.attribute(_required(record.attribute_id, record))
            lower = attr.die.decrement()
            if lower is None:
                raise DraftStateError(
                    f"Cannot undo advance {record.advance_number}: attribute at d4"
                )
            attr.die = lower
        case AdvanceType.SKILL_EXPENSIVE:
            _revert_skill(result, _required(record.skill_id_1, record))
        case AdvanceType.SKILL_CHEAP:
            _revert_skill(result, _required(record.skill_id_1, record))
            _revert_skill(result, _required(record.skill_id_2, record))
        case AdvanceType.HINDRANCE:
            _undo_hindrance(result, catalog, record)

    logger.info(
        "Undid advance %d (%s) on %r",
        record.advance_number,
        record.advance_type.value,
        result.name,
    )
    return result


def _required(value: int | None, record: AdvanceRecord) -> int:
    if value is None:
        raise DraftStateError(f"Advance {record.advance_number} is missing its target id")
    return value


def _undo_edge(draft: CharacterDraft, record: AdvanceRecord) -> None:
    edge_id = _required(record.edge_id, record)
    for index in range(len(draft.edges) - 1, -1, -1):
        entry = draft.edges[index]
        if entry.edge.id == edge_id and entry.advance_taken == record.advance_number:
            del draft.edges[index]
            return
    raise DraftStateError(
        f"Edge {edge_id} from advance {record.advance_number} is no longer on the character"
    )


def _revert_skill(draft: CharacterDraft, skill_id: int) -> None:
    entry = draft.skill(skill_id)
    if entry.die is None:
        raise DraftStateError(f"Cannot undo increase of untrained skill {entry.skill.name}")
    # A d4 after an advance was reached from untrained
    entry.die = entry.die.decrement()


def _undo_hindrance(draft: CharacterDraft, catalog: Catalog, record: AdvanceRecord) -> None:
    hindrance = catalog.hindrance(_required(record.hindrance_id, record))
    source = record.notes or SOURCE_CHOSEN
    earns = source in EARNING_SOURCES

    match record.hindrance_action:
        case HindranceAction.REMOVE_MINOR:
            draft.insert_hindrance(CharacterHindrance(hindrance=hindrance, source=source))
            if earns:
                draft.ledger.earn(Category.HINDRANCES, hindrance.point_value)
        case HindranceAction.REDUCE_MAJOR:
            if hindrance.companion_hindrance_id is None:
                raise DraftStateError(f"{hindrance.name} has no companion to restore from")
            companion = draft.pop_hindrance(hindrance.companion_hindrance_id).hindrance
            draft.insert_hindrance(CharacterHindrance(hindrance=hindrance, source=source))
            if earns:
                draft.ledger.earn(
                    Category.HINDRANCES, max(0, hindrance.point_value - companion.point_value)
                )
        case HindranceAction.REMOVE_MAJOR_HALF | HindranceAction.COMPLETE_MAJOR_REMOVAL:
            # With the record popped, an odd remaining count means it completed a removal
            remaining = _major_half_counts(draft.advances)[hindrance.id]
            if remaining % 2 == 1:
                draft.insert_hindrance(CharacterHindrance(hindrance=hindrance, source=source))
                if earns:
                    draft.ledger.earn(Category.HINDRANCES, hindrance.point_value)
        case _:
            raise DraftStateError(f"Advance {record.advance_number} has no hindrance action")


# =============================================================================
# HISTORY
# =============================================================================


def get_advancement_history(draft: CharacterDraft, catalog: Catalog) -> list[AdvanceSummary]:
    """Every advance with a human-readable description, oldest first."""
    return [
        AdvanceSummary(
            advance_number=record.advance_number,
            advance_type=record.advance_type,
            description=describe_advance(record, catalog),
        )
        for record in draft.advances
    ]


def describe_advance(record: AdvanceRecord, catalog: Catalog) -> str:
    match record.advance_type:
        case AdvanceType.EDGE:
            return f"Gained edge: {_name(catalog.edges, record.edge_id, 'Unknown')}"
        case AdvanceType.ATTRIBUTE:
            return f"Increased {_name(catalog.attributes, record.attribute_id, 'attribute')}"
        case AdvanceType.SKILL_EXPENSIVE:
            return f"Increased {_name(catalog.skills, record.skill_id_1, 'skill')} (expensive)"
        case AdvanceType.SKILL_CHEAP:
            first = _name(catalog.skills, record.skill_id_1, "skill 1")
            second = _name(catalog.skills, record.skill_id_2, "skill 2")
            return f"Increased {first} and {second}"
        case AdvanceType.HINDRANCE:
            name = _name(catalog.hindrances, record.hindrance_id, "hindrance")
            match record.hindrance_action:
                case HindranceAction.REMOVE_MINOR:
                    return f"Removed minor: {name}"
                case HindranceAction.REDUCE_MAJOR:
                    return f"Reduced major: {name}"
                case HindranceAction.REMOVE_MAJOR_HALF:
                    return f"Progress toward removing: {name}"
                case _:
                    return f"Modified: {name}"


def _name(records: dict, record_id: int | None, default: str) -> str:
    record = records.get(record_id) if record_id is not None else None
    return record.name if record is not None else default


def rank_for_advance_number(catalog: Catalog, advance_number: int) -> Rank:
    """The rank an advance with this number was taken in."""
    return catalog.rank_for_advances(advance_number - 1)
