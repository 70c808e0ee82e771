from __future__ import annotations

import logging
from typing import Optional

from featuretree.base.config import FeatureTreeConfig, get_config
from featuretree.client.status_client import StatusClient
from featuretree.data.db import Database
from featuretree.data.local_store import LocalStore
from featuretree.tree import queries
from featuretree.tree.store import TreeStore
from featuretree.tree.sync import DatabaseStatusSource, StatusSource, StatusSync

logger = logging.getLogger(__name__)


class ApplicationState:
    _instance = None

    @classmethod
    def instance(cls) -> ApplicationState:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None

    def __init__(self, config: Optional[FeatureTreeConfig] = None):
        config = config or get_config()
        self.config = config
        self.local_store = LocalStore(config.storage.workspace_path, config.storage.max_backups)
        self.store = TreeStore(self.local_store)
        self.revision = 0
        self.store.tree_changed.connect(self._on_tree_changed)
        self.status_client: Optional[StatusClient] = None

        source: StatusSource
        if config.status.service_url:
            self.status_client = StatusClient(config.status.service_url, config.status.request_timeout)
            source = self.status_client
            logger.info(f"[State] Using remote status service at {config.status.service_url}")
        else:
            source = DatabaseStatusSource(Database.instance())
        self.sync = StatusSync(
            self.store,
            source,
            retry_attempts=config.status.retry_attempts,
            retry_backoff=config.status.retry_backoff,
        )

    def _on_tree_changed(self, forest) -> None:
        self.revision += 1
        logger.debug(f"[State] Forest revision {self.revision}: {queries.count_nodes(forest)} features")

    async def close(self) -> None:
        await self.sync.drain()
        if self.status_client is not None:
            await self.status_client.aclose()


def get_state() -> ApplicationState:
    return ApplicationState.instance()
