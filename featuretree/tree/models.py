"""
Feature Tree Models.

A forest is a tuple of root FeatureNodes; every node owns a tuple of
children. Nodes are frozen, so a snapshot handed out by the store can never
change underneath its holder. Edits build new nodes along the changed path
and share every untouched subtree, which makes "did anything change" an
identity check (`new is old`).
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

SCORE_MIN = 0
SCORE_MAX = 10


class FeatureStatus(str, Enum):
    """Test outcome of a feature. Absence of a status is modelled as None."""
    PASS = "pass"
    FAILED = "failed"


@dataclass(frozen=True)
class FeatureNode:
    id: str
    name: str
    description: str = ""
    frequency: int = 0
    damage: int = 0
    required: bool = False
    status: Optional[FeatureStatus] = None
    expanded: bool = True
    parent_id: Optional[str] = None
    children: Tuple["FeatureNode", ...] = field(default_factory=tuple)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "frequency": self.frequency,
            "damage": self.damage,
            "required": self.required,
            "status": self.status.value if self.status else None,
            "expanded": self.expanded,
            "parentId": self.parent_id,
            "children": [child.to_dict() for child in self.children],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], parent_id: Optional[str] = None) -> "FeatureNode":
        """
        Build a node (and its subtree) from its serialized form.

        `parent_id` is taken from the enclosing structure, never from the
        stored `parentId`, so a loaded forest always satisfies the
        parent/children consistency invariant.
        """
        node_id = str(data["id"])
        try:
            status = parse_status(data.get("status"))
        except ValueError:
            logger.warning(f"[FeatureNode] Ignoring invalid stored status {data.get('status')!r} on {node_id}")
            status = None
        return cls(
            id=node_id,
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            frequency=clamp_score(data.get("frequency", 0)),
            damage=clamp_score(data.get("damage", 0)),
            required=bool(data.get("required", False)),
            status=status,
            expanded=bool(data.get("expanded", True)),
            parent_id=parent_id,
            children=tuple(cls.from_dict(c, node_id) for c in data.get("children") or ()),
        )


Forest = Tuple[FeatureNode, ...]


def clamp_score(value: Any) -> int:
    """Coerce a frequency/damage input to an int in [0, 10]; junk reads as 0."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = 0
    return max(SCORE_MIN, min(SCORE_MAX, number))


def parse_status(value: Any) -> Optional[FeatureStatus]:
    """
    Parse a wire status value.

    None stays None (the absent state). Anything other than "pass" or
    "failed" raises ValueError.
    """
    if value is None or isinstance(value, FeatureStatus):
        return value
    try:
        return FeatureStatus(value)
    except ValueError:
        raise ValueError(f'status must be "pass", "failed", or null (got {value!r})') from None


def new_feature_id() -> str:
    return uuid.uuid4().hex


def forest_to_list(forest: Iterable[FeatureNode]) -> List[Dict[str, Any]]:
    return [node.to_dict() for node in forest]


def forest_from_list(items: Iterable[Dict[str, Any]]) -> Forest:
    return tuple(FeatureNode.from_dict(item) for item in items)
