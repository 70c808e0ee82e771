"""Feature forest: model, weight scoring, edits and status sync."""

from featuretree.tree.models import FeatureNode, FeatureStatus, Forest
from featuretree.tree.store import TreeStore

__all__ = ["FeatureNode", "FeatureStatus", "Forest", "TreeStore"]
