"""
Drop handling for drag-and-drop edits.

The drag source, the drop target and the drag mode arrive as explicit
arguments; there is no process-wide "currently dragged" state.

    SWAP  exchange the source with a sibling target
    MOVE  reparent the source under the target (None = make it a root)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from featuretree.errors import FeatureTreeError
from featuretree.tree import queries
from featuretree.tree.store import TreeStore

logger = logging.getLogger(__name__)


class DragMode(str, Enum):
    SWAP = "swap"
    MOVE = "move"


def can_drop(store: TreeStore, source_id: str, target_id: Optional[str], mode: DragMode) -> bool:
    """Whether a drop would be accepted; used for drag-over feedback."""
    forest = store.snapshot
    if source_id == target_id or not queries.contains(forest, source_id):
        return False
    if mode is DragMode.SWAP:
        return target_id is not None and queries.are_siblings(forest, source_id, target_id)
    if target_id is None:
        return True
    return queries.contains(forest, target_id) and not queries.is_descendant(forest, source_id, target_id)


def handle_drop(store: TreeStore, source_id: str, target_id: Optional[str], mode: DragMode) -> bool:
    """
    Apply a drop. Returns True when the forest changed.

    SWAP drops onto a non-sibling (or onto the source itself) return False.
    MOVE drops that would break the forest raise FeatureTreeError
    (TREE_SELF_MOVE, TREE_CYCLE_DETECTED, TREE_PARENT_NOT_FOUND); an
    unknown source is a no-op and returns False.
    """
    mode = DragMode(mode)

    if mode is DragMode.SWAP:
        if target_id is None or not queries.are_siblings(store.snapshot, source_id, target_id):
            logger.debug(f"[DragDrop] Swap rejected: {source_id} and {target_id} are not siblings")
            return False
        return store.swap_siblings(source_id, target_id)

    try:
        return store.move(source_id, target_id)
    except FeatureTreeError as e:
        logger.info(f"[DragDrop] Move rejected: {e.message}", extra=e.details)
        raise
