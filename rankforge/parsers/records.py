"""
Record decoding at the storage boundary.

Raw persisted rows (dicts or ORM objects) are validated with pydantic record
models, then decoded exactly once into typed catalog records, modifiers and
requirement trees.

Unrecognized enum strings:
- decode to a fallback variant and are logged as a warning
- raise DataIntegrityError instead when `settings.strict_enum_decoding` is set

Fallbacks: requirement type -> description, node type -> and,
severity -> minor, modifier value type -> description, modifier target
type -> none.

Advance history rows have no fallback: an unknown advance type or hindrance
action always raises DataIntegrityError, since undo depends on it.
"""

import logging
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from rankforge.config import settings
from rankforge.models.advance import AdvanceRecord, AdvanceType, HindranceAction
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
    Rank,
    Severity,
    Skill,
)
from rankforge.models.die import DieRank
from rankforge.models.failure import DataIntegrityError
from rankforge.models.modifier import Modifier, ModifierTargetType, ModifierValueType
from rankforge.models.requirement import NodeType, Requirement, RequirementNode, RequirementType
from rankforge.services.requirement_builder import ExpressionRow, build_requirement_trees

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)
R = TypeVar("R", bound=BaseModel)


# =============================================================================
# RECORD MODELS
# =============================================================================


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")


class AttributeRecord(_Record):
    id: int
    name: str
    base_value: int = 4
    description: str = ""


class SkillRecord(_Record):
    id: int
    name: str
    linked_attribute_id: int
    is_core_skill: bool = False
    default_die_size: int | None = None
    max_die_size: int = 12
    max_die_modifier: int = 0
    description: str = ""


class EdgeRecord(_Record):
    id: int
    name: str
    background: str = ""
    can_take_multiple_times: bool = False
    description: str = ""


class HindranceRecord(_Record):
    id: int
    name: str
    severity: str
    point_value: int
    companion_hindrance_id: int | None = None
    description: str = ""


class RankRecord(_Record):
    id: int
    name: str
    min_advances: int
    max_advances: int | None = None


class ArcaneBackgroundRecord(_Record):
    id: int
    name: str
    arcane_skill_id: int
    starting_powers: int = 0
    starting_power_points: int = 0
    description: str = ""


class PowerRecord(_Record):
    id: int
    name: str
    power_points: int = 0
    description: str = ""


class AncestryRecord(_Record):
    id: int
    name: str
    description: str = ""


class GearRecord(_Record):
    id: int
    name: str
    cost: int = 0
    weight: float = 0.0
    description: str | None = None


class PackContentsRecord(_Record):
    pack_gear_id: int
    item_gear_id: int
    quantity: int = 1
    notes: str | None = None


class RequirementRecord(_Record):
    id: int
    requirement_type: str
    target_id: int | None = None
    value: int | None = None
    description: str = ""


class RequirementExpressionRecord(_Record):
    id: int
    owner_type: str
    owner_id: int
    node_type: str
    parent_id: int | None = None
    requirement_id: int | None = None
    position: int = 0


class ModifierRecord(_Record):
    id: int
    owner_type: str = ""
    owner_id: int = 0
    target_type: str | None = None
    target_identifier: str | None = None
    value_type: str
    value: int | None = None
    description: str = ""


class AdvanceRow(_Record):
    advance_number: int
    advance_type: str
    edge_id: int | None = None
    attribute_id: int | None = None
    skill_id_1: int | None = None
    skill_id_2: int | None = None
    hindrance_id: int | None = None
    hindrance_action: str | None = None
    notes: str | None = None


def parse_record(model: type[R], raw: Any) -> R:
    """Validate one raw row, mapping validation errors to DataIntegrityError."""
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise DataIntegrityError(
            f"Malformed {model.__name__} row",
            detail=str(e),
        ) from e


def parse_records(model: type[R], rows: Iterable[Any]) -> list[R]:
    return [parse_record(model, row) for row in rows]


# =============================================================================
# ENUM DECODING
# =============================================================================


def decode_enum(enum_cls: type[E], raw: str, fallback: E, field_name: str) -> E:
    """
    Decode a persisted enum string, tolerating case and surrounding space.

    Unknown values fall back (with a warning) unless strict decoding is on.
    """
    normalized = raw.strip().lower()
    for member in enum_cls:
        if member.value == normalized:
            return member
    if settings.strict_enum_decoding:
        raise DataIntegrityError(
            f"Unknown {field_name} value: {raw!r}",
            detail=f"expected one of {[m.value for m in enum_cls]}",
        )
    logger.warning(
        "Unknown %s value %r; falling back to %s",
        field_name,
        raw,
        fallback.value,
    )
    return fallback


def decode_strict_enum(enum_cls: type[E], raw: str, field_name: str) -> E:
    """Decode an enum string with no fallback."""
    try:
        return enum_cls(raw.strip().lower())
    except ValueError as e:
        raise DataIntegrityError(f"Unknown {field_name} value: {raw!r}") from e


def decode_die(size: int, modifier: int = 0, field_name: str = "die size") -> DieRank:
    die = DieRank.with_modifier(size, modifier)
    if die is None:
        raise DataIntegrityError(f"Invalid {field_name}: d{size}+{modifier}")
    return die


# =============================================================================
# LEAF DECODERS
# =============================================================================


def decode_requirement(record: RequirementRecord) -> Requirement:
    requirement_type = decode_enum(
        RequirementType, record.requirement_type, RequirementType.DESCRIPTION, "requirement type"
    )
    value = record.value
    if requirement_type == RequirementType.RANK and value is None:
        # Legacy rows carried the rank tier in target_id
        value = record.target_id
    return Requirement(
        id=record.id,
        type=requirement_type,
        target_id=record.target_id,
        value=value,
        description=record.description,
    )


def decode_modifier(record: ModifierRecord) -> Modifier:
    target_type = None
    if record.target_type is not None:
        normalized = record.target_type.strip().lower()
        target_type = next((t for t in ModifierTargetType if t.value == normalized), None)
        if target_type is None:
            if settings.strict_enum_decoding:
                raise DataIntegrityError(
                    f"Unknown modifier target type value: {record.target_type!r}"
                )
            logger.warning(
                "Unknown modifier target type value %r on modifier %d; treating as none",
                record.target_type,
                record.id,
            )
    value_type = decode_enum(
        ModifierValueType, record.value_type, ModifierValueType.DESCRIPTION, "modifier value type"
    )
    return Modifier(
        id=record.id,
        target_type=target_type,
        target_identifier=record.target_identifier,
        value_type=value_type,
        value=record.value if value_type.is_auto_applied else None,
        description=record.description,
    )


def decode_expression_row(record: RequirementExpressionRecord) -> ExpressionRow:
    return ExpressionRow(
        id=record.id,
        node_type=decode_enum(NodeType, record.node_type, NodeType.AND, "node type"),
        parent_id=record.parent_id,
        requirement_id=record.requirement_id,
        position=record.position,
    )


def decode_advance(row: Any) -> AdvanceRecord:
    """Decode a persisted advance row. Unknown enum values always raise."""
    record = parse_record(AdvanceRow, row)
    action = None
    if record.hindrance_action is not None:
        action = decode_strict_enum(HindranceAction, record.hindrance_action, "hindrance action")
    return AdvanceRecord(
        advance_number=record.advance_number,
        advance_type=decode_strict_enum(AdvanceType, record.advance_type, "advance type"),
        edge_id=record.edge_id,
        attribute_id=record.attribute_id,
        skill_id_1=record.skill_id_1,
        skill_id_2=record.skill_id_2,
        hindrance_id=record.hindrance_id,
        hindrance_action=action,
        notes=record.notes,
    )


# =============================================================================
# CATALOG
# =============================================================================


def decode_requirement_trees(
    requirement_rows: Iterable[Any],
    expression_rows: Iterable[Any],
) -> dict[tuple[str, int], RequirementNode | None]:
    """Decode requirement and expression rows into one tree per owner."""
    requirements = {
        record.id: decode_requirement(record)
        for record in parse_records(RequirementRecord, requirement_rows)
    }
    expressions = parse_records(RequirementExpressionRecord, expression_rows)
    owners = {record.id: (record.owner_type, record.owner_id) for record in expressions}
    return build_requirement_trees(
        [decode_expression_row(record) for record in expressions],
        owners,
        requirements,
    )


def group_modifiers(modifier_rows: Iterable[Any]) -> dict[tuple[str, int], tuple[Modifier, ...]]:
    """Decode modifier rows grouped by (owner_type, owner_id)."""
    grouped: dict[tuple[str, int], list[Modifier]] = {}
    for record in parse_records(ModifierRecord, modifier_rows):
        grouped.setdefault((record.owner_type, record.owner_id), []).append(
            decode_modifier(record)
        )
    return {owner: tuple(mods) for owner, mods in grouped.items()}


def load_catalog(tables: Mapping[str, Iterable[Any]]) -> Catalog:
    """
    Build a Catalog from raw tables.

    Recognized keys: attributes, skills, edges, hindrances, ranks,
    arcane_backgrounds, powers, ancestries, gear, pack_contents,
    requirements, requirement_expressions, modifiers. Missing keys are empty;
    a missing `ranks` table uses the default ranks.
    """
    trees = decode_requirement_trees(
        tables.get("requirements", ()), tables.get("requirement_expressions", ())
    )
    modifiers = group_modifiers(tables.get("modifiers", ()))

    def owned(owner_type: str, owner_id: int) -> dict[str, Any]:
        return {
            "requirements": trees.get((owner_type, owner_id)),
            "modifiers": modifiers.get((owner_type, owner_id), ()),
        }

    attributes = [
        Attribute(
            id=r.id,
            name=r.name,
            base_die=decode_die(r.base_value, field_name=f"base die of attribute {r.id}"),
            description=r.description,
        )
        for r in parse_records(AttributeRecord, tables.get("attributes", ()))
    ]
    skills = [
        Skill(
            id=r.id,
            name=r.name,
            linked_attribute_id=r.linked_attribute_id,
            is_core_skill=r.is_core_skill,
            default_die=(
                decode_die(r.default_die_size, field_name=f"default die of skill {r.id}")
                if r.default_die_size
                else None
            ),
            max_die=decode_die(r.max_die_size, r.max_die_modifier, f"max die of skill {r.id}"),
            description=r.description,
        )
        for r in parse_records(SkillRecord, tables.get("skills", ()))
    ]
    edges = [
        Edge(
            id=r.id,
            name=r.name,
            category=r.background,
            can_take_multiple_times=r.can_take_multiple_times,
            description=r.description,
            **owned("edge", r.id),
        )
        for r in parse_records(EdgeRecord, tables.get("edges", ()))
    ]
    hindrances = [
        Hindrance(
            id=r.id,
            name=r.name,
            severity=decode_enum(Severity, r.severity, Severity.MINOR, "severity"),
            point_value=r.point_value,
            companion_hindrance_id=r.companion_hindrance_id,
            description=r.description,
            **owned("hindrance", r.id),
        )
        for r in parse_records(HindranceRecord, tables.get("hindrances", ()))
    ]
    ranks = None
    if "ranks" in tables:
        ranks = [
            Rank(id=r.id, name=r.name, min_advances=r.min_advances, max_advances=r.max_advances)
            for r in parse_records(RankRecord, tables["ranks"])
        ]
    arcane_backgrounds = [
        ArcaneBackground(
            id=r.id,
            name=r.name,
            arcane_skill_id=r.arcane_skill_id,
            starting_powers=r.starting_powers,
            starting_power_points=r.starting_power_points,
            requirements=trees.get(("arcane_background", r.id)),
            description=r.description,
        )
        for r in parse_records(ArcaneBackgroundRecord, tables.get("arcane_backgrounds", ()))
    ]
    powers = [
        Power(
            id=r.id,
            name=r.name,
            power_points=r.power_points,
            description=r.description,
            **owned("power", r.id),
        )
        for r in parse_records(PowerRecord, tables.get("powers", ()))
    ]
    ancestries = [
        Ancestry(id=r.id, name=r.name, description=r.description, **owned("ancestry", r.id))
        for r in parse_records(AncestryRecord, tables.get("ancestries", ()))
    ]
    gear = [
        Gear(
            id=r.id,
            name=r.name,
            cost=r.cost,
            weight=r.weight,
            description=r.description or "",
            **owned("gear", r.id),
        )
        for r in parse_records(GearRecord, tables.get("gear", ()))
    ]
    pack_items = [
        PackItem(
            pack_gear_id=r.pack_gear_id,
            item_gear_id=r.item_gear_id,
            quantity=r.quantity,
            notes=r.notes,
        )
        for r in parse_records(PackContentsRecord, tables.get("pack_contents", ()))
    ]

    catalog = Catalog.build(
        attributes=attributes,
        skills=skills,
        edges=edges,
        hindrances=hindrances,
        ranks=ranks,
        arcane_backgrounds=arcane_backgrounds,
        powers=powers,
        ancestries=ancestries,
        gear=gear,
        pack_items=pack_items,
    )
    logger.info(
        "Loaded catalog: %d attributes, %d skills, %d edges, %d hindrances",
        len(catalog.attributes),
        len(catalog.skills),
        len(catalog.edges),
        len(catalog.hindrances),
    )
    return catalog
