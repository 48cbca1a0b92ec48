"""
Requirement tree construction from parent/child/position-addressed rows.

Persisted expression nodes reference their parent by id. This module turns
a flat list of such rows into an owned, nested RequirementNode tree, once,
at load time.

INVARIANTS:
- Children are ordered by (position, id)
- A cycle, an orphaned node, or a malformed node raises DataIntegrityError
- A missing leaf requirement raises NotFoundError
- AND / OR nodes with no evaluable children collapse to "no requirement"
- Multiple roots for one owner are joined with AND
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from rankforge.models.failure import DataIntegrityError, NotFoundError
from rankforge.models.requirement import NodeType, Requirement, RequirementNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpressionRow:
    """A decoded expression node row."""

    id: int
    node_type: NodeType
    parent_id: int | None = None
    requirement_id: int | None = None
    position: int = 0


def build_requirement_tree(
    rows: Sequence[ExpressionRow],
    requirements: Mapping[int, Requirement],
) -> RequirementNode | None:
    """
    Build the requirement tree for one owning entity.

    Returns None when the owner has no requirements.

    Raises:
        DataIntegrityError: On cycles, orphans or malformed nodes
        NotFoundError: If a leaf references an unknown requirement
    """
    if not rows:
        return None

    by_id = {row.id: row for row in rows}
    children: dict[int | None, list[ExpressionRow]] = {}
    for row in rows:
        if row.parent_id is not None and row.parent_id not in by_id:
            raise DataIntegrityError(
                f"Requirement node {row.id} references missing parent {row.parent_id}"
            )
        children.setdefault(row.parent_id, []).append(row)
    for siblings in children.values():
        siblings.sort(key=lambda r: (r.position, r.id))

    builder = _TreeBuilder(children, requirements)
    roots = [node for row in children.get(None, []) if (node := builder.build(row)) is not None]

    unreached = set(by_id) - builder.visited
    if unreached:
        raise DataIntegrityError(
            "Requirement nodes unreachable from any root (cycle)",
            detail=f"node ids: {sorted(unreached)}",
        )

    if not roots:
        return None
    if len(roots) == 1:
        return roots[0]
    return RequirementNode.all_of(*roots)


class _TreeBuilder:
    """Depth-first builder with explicit cycle detection."""

    def __init__(
        self,
        children: Mapping[int | None, list[ExpressionRow]],
        requirements: Mapping[int, Requirement],
    ):
        self.children = children
        self.requirements = requirements
        self.visited: set[int] = set()
        self._path: set[int] = set()

    def build(self, row: ExpressionRow) -> RequirementNode | None:
        if row.id in self._path or row.id in self.visited:
            raise DataIntegrityError(f"Cycle detected at requirement node {row.id}")
        self._path.add(row.id)
        self.visited.add(row.id)
        try:
            return self._build_node(row)
        finally:
            self._path.discard(row.id)

    def _build_node(self, row: ExpressionRow) -> RequirementNode | None:
        child_rows = self.children.get(row.id, [])

        if row.node_type == NodeType.REQUIREMENT:
            if child_rows:
                raise DataIntegrityError(f"Requirement leaf {row.id} has children")
            if row.requirement_id is None:
                raise DataIntegrityError(f"Requirement leaf {row.id} has no requirement")
            requirement = self.requirements.get(row.requirement_id)
            if requirement is None:
                raise NotFoundError("Requirement", row.requirement_id)
            return RequirementNode.leaf(requirement)

        built = [node for child in child_rows if (node := self.build(child)) is not None]

        if row.node_type == NodeType.NOT:
            if len(child_rows) != 1:
                raise DataIntegrityError(
                    f"NOT node {row.id} needs exactly one child, has {len(child_rows)}"
                )
            if not built:
                raise DataIntegrityError(f"NOT node {row.id} negates an empty expression")
            return RequirementNode.negate(built[0])

        if not built:
            logger.info(
                "%s node %d has no children; treating as no requirement",
                row.node_type.value.upper(),
                row.id,
            )
            return None
        if row.node_type == NodeType.AND:
            return RequirementNode.all_of(*built)
        return RequirementNode.any_of(*built)


def build_requirement_trees(
    rows: Sequence[ExpressionRow],
    owners: Mapping[int, tuple[str, int]],
    requirements: Mapping[int, Requirement],
) -> dict[tuple[str, int], RequirementNode | None]:
    """
    Build one tree per owning entity.

    Args:
        rows: Every expression row
        owners: Node id -> (owner_type, owner_id)
        requirements: Requirement id -> decoded leaf
    """
    grouped: dict[tuple[str, int], list[ExpressionRow]] = {}
    for row in rows:
        grouped.setdefault(owners[row.id], []).append(row)
    return {owner: build_requirement_tree(group, requirements) for owner, group in grouped.items()}
