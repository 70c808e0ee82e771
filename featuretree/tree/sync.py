"""
Status synchronisation between the local forest and a status source.

Direction of authority:
    - structure: the local forest, always
    - status value: the status source, at load time

On load the source's mapping is overlaid onto the forest and the merged
forest is committed (and therefore persisted). During editing, status writes
are local-first: the store commits and persists, then the source is notified
in the background. A failed notification is retried with backoff and finally
logged; it never rolls back the local change.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Dict, Mapping, Optional, Protocol, Set

from featuretree.data.db import Database
from featuretree.tree.models import FeatureNode, FeatureStatus, Forest, parse_status
from featuretree.tree.seed import sample_forest
from featuretree.tree.store import PersistenceAdapter, TreeStore
from featuretree.utils.async_helpers import create_safe_task, retry_with_backoff

logger = logging.getLogger(__name__)


class StatusSource(Protocol):
    async def fetch_all(self) -> Mapping[str, Optional[FeatureStatus]]:
        ...

    async def set_status(self, feature_id: str, status: Optional[FeatureStatus]) -> Any:
        ...


class DatabaseStatusSource:
    """Status source reading and writing the in-process status table."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or Database.instance()

    async def fetch_all(self) -> Dict[str, Optional[FeatureStatus]]:
        rows = await self.db.get_all_statuses()
        statuses: Dict[str, Optional[FeatureStatus]] = {}
        for feature_id, value in rows.items():
            try:
                statuses[feature_id] = parse_status(value)
            except ValueError:
                logger.warning(f"[StatusSync] Skipping invalid stored status {value!r} for {feature_id}")
        return statuses

    async def set_status(self, feature_id: str, status: Optional[FeatureStatus]) -> None:
        value = parse_status(status)
        await self.db.upsert_status(feature_id, value.value if value else None)


def merge_statuses(forest: Forest, statuses: Mapping[str, Optional[FeatureStatus]]) -> Forest:
    """
    Overlay `statuses` onto every node whose id appears in the mapping.

    Nodes not in the mapping keep their status; mapping entries with no
    matching node are ignored. Returns `forest` itself when nothing changed.
    """
    if not statuses:
        return forest

    def _merge(nodes: Forest) -> Forest:
        changed = False
        merged = []
        for node in nodes:
            children = _merge(node.children) if node.children else node.children
            new_node: FeatureNode = node
            if node.id in statuses and statuses[node.id] != node.status:
                new_node = replace(node, status=statuses[node.id], children=children)
            elif children is not node.children:
                new_node = replace(node, children=children)
            changed = changed or new_node is not node
            merged.append(new_node)
        return tuple(merged) if changed else nodes

    return _merge(forest)


class StatusSync:
    def __init__(
        self,
        store: TreeStore,
        source: StatusSource,
        retry_attempts: int = 3,
        retry_backoff: float = 0.5,
    ):
        self.store = store
        self.source = source
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff
        self._pending: Set[asyncio.Task] = set()

    async def load(self) -> Forest:
        """Merge the source's statuses into the current forest and persist."""
        try:
            statuses = await self.source.fetch_all()
        except Exception as e:
            logger.error(f"[StatusSync] Failed to sync statuses from server: {e}")
            return self.store.snapshot

        if self.store.replace(merge_statuses(self.store.snapshot, statuses)):
            logger.info(f"[StatusSync] Merged {len(statuses)} remote statuses into local forest")
        return self.store.snapshot

    def set_status(self, feature_id: str, status: Optional[FeatureStatus]) -> bool:
        """
        Commit a status locally, then notify the source in the background.

        Returns True when the local forest changed. The notification is sent
        even for ids the forest no longer holds; the source has no notion of
        tree structure.
        """
        status = parse_status(status)
        changed = self.store.set_status(feature_id, status)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("[StatusSync] No event loop for remote status notification")
            return changed
        create_safe_task(
            self._notify(feature_id, status),
            name=f"status_notify:{feature_id}",
            pending=self._pending,
        )
        return changed

    async def _notify(self, feature_id: str, status: Optional[FeatureStatus]) -> None:
        try:
            await retry_with_backoff(
                lambda: self.source.set_status(feature_id, status),
                attempts=self.retry_attempts,
                backoff=self.retry_backoff,
                name=f"status_notify:{feature_id}",
            )
        except Exception as e:
            logger.error(f"[StatusSync] Failed to update status on server for {feature_id}: {e}")

    async def drain(self) -> None:
        """Wait for in-flight notifications (shutdown, tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


async def load_workspace(
    store: TreeStore,
    persistence: PersistenceAdapter,
    sync: Optional[StatusSync] = None,
    seed: bool = True,
) -> Forest:
    """
    Populate `store` from persistence (seeding sample data into an empty
    workspace), then merge remote statuses.
    """
    loaded = persistence.load()
    if loaded:
        store.replace(loaded)
    elif seed:
        logger.info("[StatusSync] Empty workspace, seeding sample features")
        store.replace(sample_forest())
    if sync is not None:
        await sync.load()
    return store.snapshot
