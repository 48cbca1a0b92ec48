"""Tests for building requirement trees from parent/child rows."""

import logging

import pytest

from rankforge.models.character_context import CharacterContext
from rankforge.models.failure import DataIntegrityError, NotFoundError
from rankforge.models.requirement import NodeType, Requirement, RequirementType
from rankforge.services.requirement_builder import (
    ExpressionRow,
    build_requirement_tree,
    build_requirement_trees,
)

REQUIREMENTS = {
    1: Requirement(1, RequirementType.RANK, value=2, description="Seasoned"),
    2: Requirement(2, RequirementType.EDGE, target_id=7, description="Quick"),
    3: Requirement(3, RequirementType.DESCRIPTION, description="GM approval"),
}


class TestBuildTree:
    """Tests for build_requirement_tree."""

    def test_no_rows(self) -> None:
        """An owner without rows has no requirements."""
        assert build_requirement_tree([], REQUIREMENTS) is None

    def test_single_leaf(self) -> None:
        tree = build_requirement_tree(
            [ExpressionRow(1, NodeType.REQUIREMENT, requirement_id=1)], REQUIREMENTS
        )
        assert tree is not None
        assert tree.node_type == NodeType.REQUIREMENT
        assert tree.requirement == REQUIREMENTS[1]

    def test_children_ordered_by_position(self) -> None:
        """Children follow position, not row order."""
        rows = [
            ExpressionRow(10, NodeType.AND),
            ExpressionRow(11, NodeType.REQUIREMENT, parent_id=10, requirement_id=1, position=2),
            ExpressionRow(12, NodeType.REQUIREMENT, parent_id=10, requirement_id=2, position=0),
            ExpressionRow(13, NodeType.REQUIREMENT, parent_id=10, requirement_id=3, position=1),
        ]
        tree = build_requirement_tree(rows, REQUIREMENTS)
        assert tree is not None
        assert [r.id for r in tree.requirements()] == [2, 3, 1]

    def test_nested_not(self) -> None:
        """And(Seasoned, Not(Quick)) evaluates like the rows say."""
        rows = [
            ExpressionRow(1, NodeType.AND),
            ExpressionRow(2, NodeType.REQUIREMENT, parent_id=1, requirement_id=1),
            ExpressionRow(3, NodeType.NOT, parent_id=1, position=1),
            ExpressionRow(4, NodeType.REQUIREMENT, parent_id=3, requirement_id=2),
        ]
        tree = build_requirement_tree(rows, REQUIREMENTS)
        assert tree is not None
        assert tree.evaluate(CharacterContext(rank_tier=2))
        assert not tree.evaluate(CharacterContext(rank_tier=2, edge_ids=frozenset({7})))

    def test_multiple_roots_are_joined_with_and(self) -> None:
        rows = [
            ExpressionRow(1, NodeType.REQUIREMENT, requirement_id=1),
            ExpressionRow(2, NodeType.REQUIREMENT, requirement_id=2, position=1),
        ]
        tree = build_requirement_tree(rows, REQUIREMENTS)
        assert tree is not None
        assert tree.node_type == NodeType.AND
        assert len(tree.children) == 2

    def test_empty_branch_collapses(self, caplog: pytest.LogCaptureFixture) -> None:
        """An AND with no children means no requirement."""
        with caplog.at_level(logging.INFO):
            tree = build_requirement_tree([ExpressionRow(1, NodeType.AND)], REQUIREMENTS)
        assert tree is None
        assert "no children" in caplog.text

    def test_empty_child_branch_is_dropped(self) -> None:
        rows = [
            ExpressionRow(1, NodeType.OR),
            ExpressionRow(2, NodeType.AND, parent_id=1),
            ExpressionRow(3, NodeType.REQUIREMENT, parent_id=1, requirement_id=1, position=1),
        ]
        tree = build_requirement_tree(rows, REQUIREMENTS)
        assert tree is not None
        assert len(tree.children) == 1


class TestMalformedRows:
    """Malformed persisted trees fail fast."""

    def test_orphan(self) -> None:
        with pytest.raises(DataIntegrityError):
            build_requirement_tree(
                [ExpressionRow(1, NodeType.REQUIREMENT, parent_id=99, requirement_id=1)],
                REQUIREMENTS,
            )

    def test_cycle(self) -> None:
        """Nodes that only reach each other are detected."""
        rows = [
            ExpressionRow(1, NodeType.REQUIREMENT, requirement_id=1),
            ExpressionRow(2, NodeType.AND, parent_id=3),
            ExpressionRow(3, NodeType.AND, parent_id=2),
        ]
        with pytest.raises(DataIntegrityError) as exc_info:
            build_requirement_tree(rows, REQUIREMENTS)
        assert "2" in (exc_info.value.detail or "")

    def test_self_parent(self) -> None:
        with pytest.raises(DataIntegrityError):
            build_requirement_tree([ExpressionRow(1, NodeType.AND, parent_id=1)], REQUIREMENTS)

    def test_missing_requirement(self) -> None:
        with pytest.raises(NotFoundError):
            build_requirement_tree(
                [ExpressionRow(1, NodeType.REQUIREMENT, requirement_id=42)], REQUIREMENTS
            )

    def test_leaf_without_requirement(self) -> None:
        with pytest.raises(DataIntegrityError):
            build_requirement_tree([ExpressionRow(1, NodeType.REQUIREMENT)], REQUIREMENTS)

    def test_leaf_with_children(self) -> None:
        rows = [
            ExpressionRow(1, NodeType.REQUIREMENT, requirement_id=1),
            ExpressionRow(2, NodeType.REQUIREMENT, parent_id=1, requirement_id=2),
        ]
        with pytest.raises(DataIntegrityError):
            build_requirement_tree(rows, REQUIREMENTS)

    def test_not_with_two_children(self) -> None:
        rows = [
            ExpressionRow(1, NodeType.NOT),
            ExpressionRow(2, NodeType.REQUIREMENT, parent_id=1, requirement_id=1),
            ExpressionRow(3, NodeType.REQUIREMENT, parent_id=1, requirement_id=2),
        ]
        with pytest.raises(DataIntegrityError):
            build_requirement_tree(rows, REQUIREMENTS)

    def test_not_of_empty_branch(self) -> None:
        rows = [ExpressionRow(1, NodeType.NOT), ExpressionRow(2, NodeType.AND, parent_id=1)]
        with pytest.raises(DataIntegrityError):
            build_requirement_tree(rows, REQUIREMENTS)


class TestBuildTrees:
    def test_grouped_by_owner(self) -> None:
        """Each owner gets its own tree."""
        rows = [
            ExpressionRow(1, NodeType.REQUIREMENT, requirement_id=1),
            ExpressionRow(2, NodeType.REQUIREMENT, requirement_id=2),
        ]
        owners = {1: ("edge", 5), 2: ("power", 9)}
        trees = build_requirement_trees(rows, owners, REQUIREMENTS)
        assert set(trees) == {("edge", 5), ("power", 9)}
        assert trees[("edge", 5)].requirement == REQUIREMENTS[1]
