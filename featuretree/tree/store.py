"""Module store: the single writer of the feature forest."""
#
# PURPOSE:
# Holds the current forest snapshot, applies structural edits through the
# pure functions in featuretree.tree.ops, persists every new snapshot and
# notifies observers.
#
# FLOW:
# 1. Caller issues a command (add / update / delete / move / ...)
# 2. ops computes the next snapshot from the current one
# 3. If the snapshot changed: commit, save through the adapter, emit
#    tree_changed(snapshot)
#
# FAILURE MODES:
# - Unknown ids are no-ops: the command returns False
# - Structural violations raise FeatureTreeError; nothing is committed
# - A failed save is logged; the in-memory snapshot stays authoritative
#

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from featuretree.tree import ops
from featuretree.tree.models import FeatureNode, FeatureStatus, Forest
from featuretree.utils.observer import Signal

logger = logging.getLogger(__name__)


class PersistenceAdapter(Protocol):
    def load(self) -> Optional[Forest]:
        ...

    def save(self, forest: Forest) -> bool:
        ...


class TreeStore:
    """
    Owns the forest. Readers get immutable snapshots via `snapshot`.
    """

    def __init__(self, persistence: Optional[PersistenceAdapter] = None, forest: Forest = ()):
        self.tree_changed = Signal("tree_changed")
        self._persistence = persistence
        self._forest: Forest = tuple(forest)

    @property
    def snapshot(self) -> Forest:
        return self._forest

    def _commit(self, forest: Forest) -> bool:
        if forest is self._forest:
            return False
        self._forest = forest
        self._persist()
        self.tree_changed.emit(forest)
        return True

    def _persist(self) -> None:
        if self._persistence is None:
            return
        try:
            saved = self._persistence.save(self._forest)
        except Exception as e:
            logger.error(f"[TreeStore] Save raised, keeping in-memory forest: {e}")
            return
        if not saved:
            logger.warning("[TreeStore] Save failed, keeping in-memory forest as source of truth")

    def replace(self, forest: Forest) -> bool:
        """Swap in a whole forest (load, import, status merge)."""
        return self._commit(tuple(forest))

    def add(
        self,
        name: str,
        description: str = "",
        frequency: Any = 0,
        damage: Any = 0,
        required: bool = False,
        parent_id: Optional[str] = None,
    ) -> FeatureNode:
        forest, node = ops.add(self._forest, name, description, frequency, damage, required, parent_id)
        self._commit(forest)
        logger.info(f"[TreeStore] Added feature {node.id} under {parent_id or '<root>'}")
        return node

    def update(self, feature_id: str, **fields: Any) -> bool:
        return self._commit(ops.update(self._forest, feature_id, **fields))

    def set_status(self, feature_id: str, status: Optional[FeatureStatus]) -> bool:
        return self._commit(ops.set_status(self._forest, feature_id, status))

    def delete(self, feature_id: str) -> bool:
        changed = self._commit(ops.delete(self._forest, feature_id))
        if changed:
            logger.info(f"[TreeStore] Deleted feature {feature_id} and its subtree")
        return changed

    def toggle_expand(self, feature_id: str) -> bool:
        return self._commit(ops.toggle_expand(self._forest, feature_id))

    def swap_siblings(self, first_id: str, second_id: str) -> bool:
        return self._commit(ops.swap_siblings(self._forest, first_id, second_id))

    def move(self, feature_id: str, new_parent_id: Optional[str]) -> bool:
        changed = self._commit(ops.move(self._forest, feature_id, new_parent_id))
        if changed:
            logger.info(f"[TreeStore] Moved feature {feature_id} under {new_parent_id or '<root>'}")
        return changed
