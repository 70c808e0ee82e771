"""Module db: async SQLite persistence for per-feature test status."""
#
# PURPOSE:
# Backs the status service. One table, keyed by feature id:
#
#   feature_statuses(feature_id TEXT PRIMARY KEY, status TEXT, updated_at DATETIME)
#
# The table knows nothing about the tree: any feature id is accepted, and a
# repeated write for the same id replaces the previous one (last write wins).
# A NULL status is a stored "absent", which clears a previous pass/failed
# when merged into the editor's forest.
#

import aiosqlite
import asyncio
import logging
import os
from typing import Dict, Optional

from featuretree.base.config import get_config
from featuretree.errors import ErrorCode, FeatureTreeError

logger = logging.getLogger(__name__)


class Database:
    _instance = None

    @staticmethod
    def instance():
        if Database._instance is None:
            Database._instance = Database()
        return Database._instance

    @staticmethod
    def reset_instance():
        Database._instance = None

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or str(get_config().storage.db_path)
        os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)

        self._initialized = False
        # asyncio.Lock is created lazily inside the running loop
        self._init_lock: Optional[asyncio.Lock] = None

    async def init(self):
        if self._initialized:
            return
        if self._init_lock is None:
            self._init_lock = asyncio.Lock()

        async with self._init_lock:
            if self._initialized:
                return
            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.execute("PRAGMA journal_mode=WAL;")
                    await db.execute("""
                        CREATE TABLE IF NOT EXISTS feature_statuses (
                            feature_id TEXT PRIMARY KEY,
                            status TEXT,
                            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                        )
                    """)
                    await db.commit()
            except aiosqlite.Error as e:
                logger.error(f"[Database] Init failed: {e}")
                raise FeatureTreeError(
                    ErrorCode.DB_INIT_FAILED,
                    "Failed to initialize status database",
                    details={"db_path": self.db_path, "error": str(e)},
                ) from e
            self._initialized = True
            logger.info(f"[Database] Status database initialized at {self.db_path}")

    async def upsert_status(self, feature_id: str, status: Optional[str]) -> None:
        if not self._initialized:
            await self.init()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("""
                    INSERT INTO feature_statuses (feature_id, status, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(feature_id) DO UPDATE SET
                        status = excluded.status,
                        updated_at = CURRENT_TIMESTAMP
                """, (feature_id, status))
                await db.commit()
        except aiosqlite.Error as e:
            logger.error(f"[Database] Failed to store status for {feature_id}: {e}")
            raise FeatureTreeError(
                ErrorCode.DB_QUERY_FAILED,
                "Failed to update status",
                details={"feature_id": feature_id},
            ) from e

    async def get_status(self, feature_id: str) -> Optional[str]:
        record = await self.get_status_record(feature_id)
        return record["status"] if record else None

    async def get_status_record(self, feature_id: str) -> Optional[Dict[str, Optional[str]]]:
        if not self._initialized:
            await self.init()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                async with db.execute(
                    "SELECT status, updated_at FROM feature_statuses WHERE feature_id = ?",
                    (feature_id,),
                ) as cursor:
                    row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error(f"[Database] Failed to read status for {feature_id}: {e}")
            raise FeatureTreeError(
                ErrorCode.DB_QUERY_FAILED,
                "Failed to retrieve status",
                details={"feature_id": feature_id},
            ) from e
        if row is None:
            return None
        return {"status": row[0], "updated_at": row[1]}

    async def get_all_statuses(self) -> Dict[str, Optional[str]]:
        if not self._initialized:
            await self.init()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                async with db.execute("SELECT feature_id, status FROM feature_statuses") as cursor:
                    rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            logger.error(f"[Database] Failed to read statuses: {e}")
            raise FeatureTreeError(ErrorCode.DB_QUERY_FAILED, "Failed to retrieve statuses") from e
        return {row[0]: row[1] for row in rows}
