"""Read-only lookups over a forest snapshot."""

from __future__ import annotations

from typing import Iterator, Optional, Set, Tuple

from featuretree.errors import ErrorCode, FeatureTreeError
from featuretree.tree import weights
from featuretree.tree.models import FeatureNode, Forest


def iter_nodes(forest: Forest, depth: int = 0) -> Iterator[Tuple[FeatureNode, int]]:
    """Pre-order walk yielding (node, depth); roots are depth 0."""
    for node in forest:
        yield node, depth
        yield from iter_nodes(node.children, depth + 1)


def find_by_id(forest: Forest, feature_id: str) -> Optional[FeatureNode]:
    for node in forest:
        if node.id == feature_id:
            return node
        found = find_by_id(node.children, feature_id)
        if found is not None:
            return found
    return None


def contains(forest: Forest, feature_id: str) -> bool:
    return find_by_id(forest, feature_id) is not None


def find_parent(forest: Forest, feature_id: str) -> Optional[FeatureNode]:
    """Parent node of `feature_id`; None for a root or an unknown id."""
    for node in forest:
        for child in node.children:
            if child.id == feature_id:
                return node
        found = find_parent(node.children, feature_id)
        if found is not None:
            return found
    return None


def sibling_set(forest: Forest, feature_id: str) -> Optional[Forest]:
    """The sequence the node lives in (itself included), or None if unknown."""
    if any(node.id == feature_id for node in forest):
        return forest
    parent = find_parent(forest, feature_id)
    return parent.children if parent is not None else None


def siblings_of(forest: Forest, feature_id: str) -> Forest:
    """Nodes sharing the parent of `feature_id`, excluding the node itself."""
    group = sibling_set(forest, feature_id) or ()
    return tuple(node for node in group if node.id != feature_id)


def are_siblings(forest: Forest, first_id: str, second_id: str) -> bool:
    """True when both ids exist, differ, and share a parent (two roots count)."""
    if first_id == second_id:
        return False
    group = sibling_set(forest, first_id)
    return group is not None and any(node.id == second_id for node in group)


def is_descendant(forest: Forest, ancestor_id: str, descendant_id: str) -> bool:
    """True when `descendant_id` lies strictly below `ancestor_id`."""
    ancestor = find_by_id(forest, ancestor_id)
    if ancestor is None:
        return False
    return find_by_id(ancestor.children, descendant_id) is not None


def is_ancestor(forest: Forest, feature_id: str, candidate_id: str) -> bool:
    """True when `candidate_id` appears on the parent chain of `feature_id`."""
    current = find_by_id(forest, feature_id)
    while current is not None and current.parent_id is not None:
        if current.parent_id == candidate_id:
            return True
        current = find_by_id(forest, current.parent_id)
    return False


def count_nodes(forest: Forest) -> int:
    return sum(1 for _ in iter_nodes(forest))


def contribution_of(forest: Forest, feature_id: str) -> Optional[float]:
    """Sibling contribution of a node inside `forest`; None for roots and unknown ids."""
    node = find_by_id(forest, feature_id)
    if node is None or node.parent_id is None:
        return None
    return weights.contribution(node, sibling_set(forest, feature_id))


def validate_forest(forest: Forest) -> None:
    """
    Check id uniqueness and parent/children consistency.

    Raises:
        FeatureTreeError(TREE_INVARIANT_VIOLATED) naming the first offending id.
    """
    seen: Set[str] = set()

    def _check(nodes: Forest, expected_parent: Optional[str]) -> None:
        for node in nodes:
            if node.id in seen:
                raise FeatureTreeError(
                    ErrorCode.TREE_INVARIANT_VIOLATED,
                    "Duplicate feature id in forest",
                    details={"feature_id": node.id},
                )
            seen.add(node.id)
            if node.parent_id != expected_parent:
                raise FeatureTreeError(
                    ErrorCode.TREE_INVARIANT_VIOLATED,
                    "parentId does not match the owning node",
                    details={
                        "feature_id": node.id,
                        "parent_id": node.parent_id,
                        "expected_parent_id": expected_parent,
                    },
                )
            _check(node.children, node.id)

    _check(forest, None)
