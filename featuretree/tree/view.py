"""Render-ready rows: each node with its derived weight, share and colour."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from featuretree.tree import weights
from featuretree.tree.models import FeatureNode, Forest


def _row(
    node: FeatureNode,
    siblings: Optional[Forest],
    depth: int,
    visible: bool,
    low: int,
    high: int,
) -> Dict[str, Any]:
    node_weight = weights.weight(node)
    return {
        "id": node.id,
        "name": node.name,
        "description": node.description,
        "parentId": node.parent_id,
        "depth": depth,
        "visible": visible,
        "expanded": node.expanded,
        "required": node.required,
        "status": node.status.value if node.status else None,
        "frequency": node.frequency,
        "damage": node.damage,
        "weight": node_weight,
        "contribution": weights.contribution(node, siblings),
        "subtreeWeight": weights.subtree_weight(node),
        "color": weights.weight_color(node_weight, low, high),
        "childCount": len(node.children),
    }


def annotate_forest(forest: Forest) -> List[Dict[str, Any]]:
    """
    Flatten the forest in display (pre-)order.

    `visible` is False for nodes hidden under a collapsed ancestor.
    """
    low, high = weights.weight_range(forest)
    rows: List[Dict[str, Any]] = []

    def _walk(nodes: Forest, siblings: Optional[Forest], depth: int, visible: bool) -> None:
        for node in nodes:
            rows.append(_row(node, siblings, depth, visible, low, high))
            _walk(node.children, node.children, depth + 1, visible and node.expanded)

    _walk(forest, None, 0, True)
    return rows


def describe_node(forest: Forest, feature_id: str) -> Optional[Dict[str, Any]]:
    for row in annotate_forest(forest):
        if row["id"] == feature_id:
            return row
    return None
