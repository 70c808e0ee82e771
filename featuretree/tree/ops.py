"""
Structural edits over forest snapshots.

Every function takes a forest and returns a forest; none of them mutates its
input. When an edit has nothing to do (unknown id, no field actually
changed, non-siblings) the *same* forest object is returned, so callers can
detect no-ops with `is`.

Not-found ids are no-ops. Edits that would break the forest (moving a node
under itself or its own descendant, attaching to a parent that does not
exist) raise FeatureTreeError and leave the input untouched.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Optional, Tuple

from featuretree.errors import ErrorCode, FeatureTreeError
from featuretree.tree import queries
from featuretree.tree.models import (
    FeatureNode,
    FeatureStatus,
    Forest,
    clamp_score,
    new_feature_id,
    parse_status,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {"name", "description", "frequency", "damage", "required", "status", "expanded"}
)


def _replace_node(
    forest: Forest,
    feature_id: str,
    fn: Callable[[FeatureNode], FeatureNode],
) -> Forest:
    """Rebuild the path to `feature_id` with fn(node) in its place."""
    changed = False
    rebuilt = []
    for node in forest:
        if node.id == feature_id:
            new_node = fn(node)
        elif node.children:
            children = _replace_node(node.children, feature_id, fn)
            new_node = node if children is node.children else replace(node, children=children)
        else:
            new_node = node
        changed = changed or new_node is not node
        rebuilt.append(new_node)
    return tuple(rebuilt) if changed else forest


def _detach(forest: Forest, feature_id: str) -> Tuple[Forest, Optional[FeatureNode]]:
    """Remove `feature_id` from wherever it occurs; returns (forest, removed subtree)."""
    for i, node in enumerate(forest):
        if node.id == feature_id:
            return forest[:i] + forest[i + 1:], node
    for i, node in enumerate(forest):
        if not node.children:
            continue
        children, removed = _detach(node.children, feature_id)
        if removed is not None:
            return forest[:i] + (replace(node, children=children),) + forest[i + 1:], removed
    return forest, None


def _unique_id(forest: Forest) -> str:
    feature_id = new_feature_id()
    while queries.contains(forest, feature_id):
        feature_id = new_feature_id()
    return feature_id


def add(
    forest: Forest,
    name: str,
    description: str = "",
    frequency: Any = 0,
    damage: Any = 0,
    required: bool = False,
    parent_id: Optional[str] = None,
) -> Tuple[Forest, FeatureNode]:
    """
    Append a new feature under `parent_id`, or as a new root.

    Raises:
        FeatureTreeError(TREE_PARENT_NOT_FOUND): `parent_id` is given but unknown.
    """
    if parent_id is not None and not queries.contains(forest, parent_id):
        raise FeatureTreeError(
            ErrorCode.TREE_PARENT_NOT_FOUND,
            "Parent feature does not exist",
            details={"parent_id": parent_id},
        )

    node = FeatureNode(
        id=_unique_id(forest),
        name=name,
        description=description or "",
        frequency=clamp_score(frequency),
        damage=clamp_score(damage),
        required=bool(required),
        parent_id=parent_id,
    )

    if parent_id is None:
        return forest + (node,), node
    return _replace_node(forest, parent_id, lambda p: replace(p, children=p.children + (node,))), node


def update(forest: Forest, feature_id: str, **fields: Any) -> Forest:
    """Replace the listed fields of one node; unlisted fields are untouched."""
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

    values = dict(fields)
    for score in ("frequency", "damage"):
        if score in values:
            values[score] = clamp_score(values[score])
    if "status" in values:
        values["status"] = parse_status(values["status"])
    for flag in ("required", "expanded"):
        if flag in values:
            values[flag] = bool(values[flag])

    def _apply(node: FeatureNode) -> FeatureNode:
        if all(getattr(node, key) == value for key, value in values.items()):
            return node
        return replace(node, **values)

    return _replace_node(forest, feature_id, _apply)


def set_status(forest: Forest, feature_id: str, status: Optional[FeatureStatus]) -> Forest:
    return update(forest, feature_id, status=status)


def delete(forest: Forest, feature_id: str) -> Forest:
    """Remove a node together with its entire subtree."""
    remaining, _ = _detach(forest, feature_id)
    return remaining


def toggle_expand(forest: Forest, feature_id: str) -> Forest:
    return _replace_node(forest, feature_id, lambda n: replace(n, expanded=not n.expanded))


def swap_siblings(forest: Forest, first_id: str, second_id: str) -> Forest:
    """Exchange two siblings' positions; anything else is a no-op."""
    if not queries.are_siblings(forest, first_id, second_id):
        return forest

    group = queries.sibling_set(forest, first_id)
    i = next(idx for idx, n in enumerate(group) if n.id == first_id)
    j = next(idx for idx, n in enumerate(group) if n.id == second_id)
    swapped = list(group)
    swapped[i], swapped[j] = swapped[j], swapped[i]
    swapped = tuple(swapped)

    if group is forest:
        return swapped
    parent = queries.find_parent(forest, first_id)
    return _replace_node(forest, parent.id, lambda p: replace(p, children=swapped))


def move(forest: Forest, feature_id: str, new_parent_id: Optional[str]) -> Forest:
    """
    Reattach the subtree rooted at `feature_id` as the last child of
    `new_parent_id` (or as the last root when it is None).

    The subtree is relocated as-is; only the moved node's parent_id changes.
    The new parent is expanded so the moved node is visible.

    Raises:
        FeatureTreeError: TREE_SELF_MOVE, TREE_CYCLE_DETECTED or
            TREE_PARENT_NOT_FOUND. The input forest is never modified.
    """
    details = {"feature_id": feature_id, "new_parent_id": new_parent_id}

    if feature_id == new_parent_id:
        raise FeatureTreeError(ErrorCode.TREE_SELF_MOVE, "A feature cannot be moved under itself", details)

    if not queries.contains(forest, feature_id):
        return forest

    if new_parent_id is not None and queries.is_descendant(forest, feature_id, new_parent_id):
        raise FeatureTreeError(
            ErrorCode.TREE_CYCLE_DETECTED,
            "A feature cannot be moved under its own descendant",
            details,
        )

    detached, subtree = _detach(forest, feature_id)

    if new_parent_id is None:
        return detached + (replace(subtree, parent_id=None),)

    if not queries.contains(detached, new_parent_id):
        raise FeatureTreeError(ErrorCode.TREE_PARENT_NOT_FOUND, "Target parent does not exist", details)

    moved = replace(subtree, parent_id=new_parent_id)
    return _replace_node(
        detached,
        new_parent_id,
        lambda p: replace(p, expanded=True, children=p.children + (moved,)),
    )
