"""
Requirement Expressions — boolean gates on edges, powers, gear, ancestries
and arcane backgrounds.

A requirement tree is an owned, nested value:

    And(Rank >= Seasoned, Or(Fighting >= d8, Shooting >= d8))

INVARIANTS:
- A REQUIREMENT node has no children and exactly one leaf requirement
- A NOT node has exactly one child
- AND / OR nodes have one or more children, ordered by position
- An absent tree (None) means "no requirements" and always passes

Evaluation is pure recursion over the tree; nothing is cached because
contexts are small and rebuilt after every mutation.
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from rankforge.models.character_context import CharacterContext
from rankforge.models.die import DieRank
from rankforge.models.failure import DataIntegrityError

logger = logging.getLogger(__name__)


class RequirementType(str, Enum):
    """Kinds of leaf requirement."""

    ATTRIBUTE = "attribute"
    SKILL = "skill"
    RANK = "rank"
    ARCANE_SKILL = "arcane_skill"
    EDGE = "edge"
    ARCANE_BACKGROUND = "arcane_background"
    WILD_CARD = "wild_card"
    DESCRIPTION = "description"


class NodeType(str, Enum):
    """Kinds of expression node."""

    REQUIREMENT = "requirement"
    AND = "and"
    OR = "or"
    NOT = "not"


@dataclass(frozen=True)
class Requirement:
    """
    A single machine-checkable (or descriptive) requirement.

    Attributes:
        id: Stable record id
        type: What is being checked
        target_id: Attribute/skill/edge/arcane background id, when relevant
        value: Die size threshold, rank tier, or wild card flag
        description: Human-readable text ("Agility d8+")
    """

    id: int
    type: RequirementType
    target_id: int | None = None
    value: int | None = None
    description: str = ""

    def evaluate(self, ctx: CharacterContext) -> bool:
        """Evaluate this leaf against a character context."""
        match self.type:
            case RequirementType.ATTRIBUTE:
                if self.target_id is None:
                    return True
                die = ctx.attribute_die(self.target_id)
                if die is None:
                    # Every character has every attribute; no die means no such attribute
                    return False
                return _meets_threshold(die, self.value, self)
            case RequirementType.SKILL:
                if self.target_id is None:
                    return True
                return _meets_threshold(ctx.skill_die(self.target_id), self.value, self)
            case RequirementType.RANK:
                if self.value is None:
                    return True
                return ctx.rank_tier >= self.value
            case RequirementType.EDGE:
                if self.target_id is None:
                    return True
                return self.target_id in ctx.edge_ids
            case RequirementType.ARCANE_BACKGROUND:
                if self.target_id is None:
                    return bool(ctx.arcane_background_ids)
                return self.target_id in ctx.arcane_background_ids
            case RequirementType.ARCANE_SKILL:
                if self.target_id is not None:
                    return _meets_threshold(ctx.skill_die(self.target_id), self.value, self)
                return any(
                    _meets_threshold(ctx.skill_die(skill_id), self.value, self)
                    for skill_id in ctx.arcane_skill_ids.values()
                )
            case RequirementType.WILD_CARD:
                expected = self.value is None or self.value != 0
                return ctx.is_wild_card == expected
            case RequirementType.DESCRIPTION:
                # Not machine-checkable ("GM approval"); never blocks
                return True


def _meets_threshold(die: DieRank | None, value: int | None, requirement: Requirement) -> bool:
    """
    Compare a die against a threshold encoded as a die size.

    A missing or zero threshold means "untrained allowed" and always passes.
    """
    if not value:
        return True
    if die is None:
        return False
    threshold = DieRank.new(value)
    if threshold is None:
        logger.warning(
            "Requirement %d has invalid die threshold %r; treating as unmet",
            requirement.id,
            value,
        )
        return False
    return die >= threshold


@dataclass(frozen=True)
class RequirementStatus:
    """Status of a single leaf requirement after evaluation."""

    description: str
    is_met: bool


@dataclass(frozen=True)
class RequirementNode:
    """A node in a requirement expression tree."""

    node_type: NodeType
    children: tuple["RequirementNode", ...] = ()
    requirement: Requirement | None = None

    def __post_init__(self) -> None:
        if self.node_type == NodeType.REQUIREMENT:
            if self.requirement is None or self.children:
                raise ValueError("A requirement node needs exactly one requirement and no children")
        elif self.requirement is not None:
            raise ValueError(f"{self.node_type.value} node cannot carry a requirement")
        elif self.node_type == NodeType.NOT and len(self.children) != 1:
            raise ValueError(f"NOT node needs exactly one child, got {len(self.children)}")
        elif not self.children:
            raise ValueError(f"{self.node_type.value.upper()} node needs at least one child")

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def leaf(cls, requirement: Requirement) -> "RequirementNode":
        return cls(NodeType.REQUIREMENT, requirement=requirement)

    @classmethod
    def all_of(cls, *children: "RequirementNode") -> "RequirementNode":
        return cls(NodeType.AND, children=tuple(children))

    @classmethod
    def any_of(cls, *children: "RequirementNode") -> "RequirementNode":
        return cls(NodeType.OR, children=tuple(children))

    @classmethod
    def negate(cls, child: "RequirementNode") -> "RequirementNode":
        return cls(NodeType.NOT, children=(child,))

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate(self, ctx: CharacterContext) -> bool:
        match self.node_type:
            case NodeType.AND:
                return all(child.evaluate(ctx) for child in self.children)
            case NodeType.OR:
                return any(child.evaluate(ctx) for child in self.children)
            case NodeType.NOT:
                return not self.children[0].evaluate(ctx)
            case NodeType.REQUIREMENT:
                return self._leaf().evaluate(ctx)

    def evaluate_detailed(self, ctx: CharacterContext) -> list[RequirementStatus]:
        """
        Evaluate every leaf and report its status.

        Leaves under a NOT report the negated result, so `is_met` always
        means "this leaf is not what blocks the tree".
        """
        return [
            RequirementStatus(description=req.description, is_met=req.evaluate(ctx) != negated)
            for req, negated in self._leaves(negated=False)
        ]

    def _leaf(self) -> Requirement:
        if self.requirement is None:
            raise DataIntegrityError(f"{self.node_type.value} node has no leaf requirement")
        return self.requirement

    def _leaves(self, negated: bool) -> Iterator[tuple[Requirement, bool]]:
        if self.node_type == NodeType.REQUIREMENT:
            yield self._leaf(), negated
            return
        child_negated = not negated if self.node_type == NodeType.NOT else negated
        for child in self.children:
            yield from child._leaves(child_negated)

    def requirements(self) -> list[Requirement]:
        """All leaf requirements in position order."""
        return [req for req, _ in self._leaves(negated=False)]


def evaluate_requirements(tree: RequirementNode | None, ctx: CharacterContext) -> bool:
    """Evaluate a possibly-absent tree. No tree means no requirements."""
    if tree is None:
        return True
    return tree.evaluate(ctx)


def unmet_requirements(tree: RequirementNode | None, ctx: CharacterContext) -> list[str]:
    """Descriptions of the leaves that are not met."""
    if tree is None:
        return []
    return [status.description for status in tree.evaluate_detailed(ctx) if not status.is_met]
