"""Module local_store: file-backed persistence for the feature forest."""
#
# PURPOSE:
# Durable storage of the full forest snapshot plus the housekeeping around
# it: workspace metadata, timestamped backups, export/import and stats.
#
# LAYOUT (inside the workspace directory):
#   features.json          {"version": 1, "timestamp": ..., "features": [...]}
#   meta.json              {"name", "version", "createdAt", "lastModified"}
#   featureTree.json       legacy bare array; migrated on first load,
#                          and the fallback target when the main save fails
#   backups/backup_<ms>.json   export documents
#
# Every file is written to a temp file and renamed into place, so a crash
# mid-write leaves the previous snapshot intact.
#

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from featuretree.base.config import get_config
from featuretree.errors import ErrorCode, FeatureTreeError
from featuretree.tree import queries
from featuretree.tree.models import Forest, forest_from_list, forest_to_list

logger = logging.getLogger(__name__)

STORE_NAME = "featureTreeDB"
STORE_VERSION = 1
FEATURES_FILE = "features.json"
META_FILE = "meta.json"
LEGACY_FILE = "featureTree.json"
BACKUP_DIR = "backups"
BACKUP_PREFIX = "backup_"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class LocalStore:
    """Persistence adapter: `load()` / `save()` plus backup and export tooling."""

    def __init__(self, directory: Optional[Path] = None, max_backups: Optional[int] = None):
        config = get_config()
        self.directory = Path(directory) if directory is not None else config.storage.workspace_path
        self.max_backups = max_backups if max_backups is not None else config.storage.max_backups
        self.directory.mkdir(parents=True, exist_ok=True)

    @property
    def features_path(self) -> Path:
        return self.directory / FEATURES_FILE

    @property
    def meta_path(self) -> Path:
        return self.directory / META_FILE

    @property
    def legacy_path(self) -> Path:
        return self.directory / LEGACY_FILE

    @property
    def backup_path(self) -> Path:
        return self.directory / BACKUP_DIR

    # -------- low level --------

    def _write_json(self, path: Path, payload: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, ensure_ascii=False)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def _read_json(self, path: Path) -> Any:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)

    # -------- metadata --------

    def init(self) -> bool:
        """Create workspace metadata if this is a fresh workspace."""
        try:
            if self.get_metadata() is None:
                now = _now_iso()
                self._write_json(self.meta_path, {
                    "name": STORE_NAME,
                    "version": STORE_VERSION,
                    "createdAt": now,
                    "lastModified": now,
                })
            return True
        except OSError as e:
            logger.error(f"[LocalStore] Initialization error: {e}")
            return False

    def get_metadata(self) -> Optional[Dict[str, Any]]:
        if not self.meta_path.exists():
            return None
        try:
            return self._read_json(self.meta_path)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"[LocalStore] Error reading metadata: {e}")
            return None

    def _touch_metadata(self) -> None:
        meta = self.get_metadata()
        if meta is None:
            self.init()
            return
        meta["lastModified"] = _now_iso()
        self._write_json(self.meta_path, meta)

    # -------- load / save --------

    def save(self, forest: Forest) -> bool:
        """Persist the full snapshot. Never raises; returns False on failure."""
        features = forest_to_list(forest or ())
        try:
            self._write_json(self.features_path, {
                "version": STORE_VERSION,
                "timestamp": _now_iso(),
                "features": features,
            })
            self._touch_metadata()
            return True
        except OSError as e:
            logger.error(f"[LocalStore] Error saving workspace: {e}")
            try:
                self._write_json(self.legacy_path, features)
            except OSError as fallback_error:
                logger.error(f"[LocalStore] Fallback save also failed: {fallback_error}")
            return False

    def _parse_forest(self, items: List[Dict[str, Any]]) -> Forest:
        """Build a forest from stored entries; raises TREE_INVARIANT_VIOLATED on duplicate ids."""
        forest = forest_from_list(items)
        queries.validate_forest(forest)
        return forest

    def load(self) -> Optional[Forest]:
        """Return the last saved forest, or None when nothing is stored."""
        try:
            if self.features_path.exists():
                data = self._read_json(self.features_path)
                if isinstance(data, dict) and isinstance(data.get("features"), list):
                    return self._parse_forest(data["features"])

            if self.legacy_path.exists():
                old_data = self._read_json(self.legacy_path)
                if isinstance(old_data, list):
                    forest = self._parse_forest(old_data)
                    logger.info(f"[LocalStore] Migrating legacy workspace ({len(forest)} roots)")
                    self.save(forest)
                    return forest
            return None
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError, FeatureTreeError) as e:
            logger.error(f"[LocalStore] Error loading workspace: {e}")
            return self._load_legacy_fallback()

    def _load_legacy_fallback(self) -> Optional[Forest]:
        try:
            if self.legacy_path.exists():
                data = self._read_json(self.legacy_path)
                if isinstance(data, list):
                    return self._parse_forest(data)
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError, FeatureTreeError) as e:
            logger.error(f"[LocalStore] Fallback load also failed: {e}")
        return None

    # -------- export / import --------

    def export(self) -> Dict[str, Any]:
        forest = self.load() or ()
        return {
            "metadata": self.get_metadata(),
            "data": {
                "version": STORE_VERSION,
                "timestamp": _now_iso(),
                "features": forest_to_list(forest),
            },
        }

    def import_data(self, import_data: Any) -> Forest:
        """
        Replace the stored forest with an export document.

        A backup of the current workspace is taken first.

        Raises:
            FeatureTreeError(STORAGE_INVALID_IMPORT): malformed document.
            FeatureTreeError(STORAGE_WRITE_FAILED): the save did not succeed.
        """
        features = None
        if isinstance(import_data, dict) and isinstance(import_data.get("data"), dict):
            features = import_data["data"].get("features")
        if not isinstance(features, list):
            raise FeatureTreeError(ErrorCode.STORAGE_INVALID_IMPORT, "Invalid import data format")

        try:
            forest = forest_from_list(features)
        except (KeyError, TypeError, ValueError) as e:
            raise FeatureTreeError(
                ErrorCode.STORAGE_INVALID_IMPORT,
                "Invalid feature entry in import data",
                details={"error": str(e)},
            ) from e
        queries.validate_forest(forest)

        self.create_backup()
        if not self.save(forest):
            raise FeatureTreeError(ErrorCode.STORAGE_WRITE_FAILED, "Failed to save imported workspace")
        logger.info(f"[LocalStore] Imported {queries.count_nodes(forest)} features")
        return forest

    # -------- backups --------

    def create_backup(self) -> Optional[str]:
        try:
            self.backup_path.mkdir(parents=True, exist_ok=True)
            # Keys must sort after every existing backup, even within one millisecond
            existing = self.list_backups()
            stamp = int(time.time() * 1000)
            if existing:
                stamp = max(stamp, existing[0]["timestamp"] + 1)
            key = f"{BACKUP_PREFIX}{stamp}"
            self._write_json(self.backup_path / f"{key}.json", self.export())
            self._prune_backups()
            return key
        except OSError as e:
            logger.error(f"[LocalStore] Error creating backup: {e}")
            return None

    def list_backups(self) -> List[Dict[str, Any]]:
        """Backups, newest first."""
        if not self.backup_path.exists():
            return []
        backups = []
        for path in self.backup_path.glob(f"{BACKUP_PREFIX}*.json"):
            key = path.stem
            try:
                timestamp = int(key[len(BACKUP_PREFIX):])
            except ValueError:
                continue
            backups.append({"key": key, "timestamp": timestamp})
        return sorted(backups, key=lambda b: b["timestamp"], reverse=True)

    def restore(self, backup_key: str) -> Forest:
        path = self.backup_path / f"{backup_key}.json"
        if not backup_key.startswith(BACKUP_PREFIX) or not path.exists():
            raise FeatureTreeError(
                ErrorCode.STORAGE_BACKUP_NOT_FOUND,
                "Backup not found",
                details={"key": backup_key},
            )
        try:
            data = self._read_json(path)
        except (OSError, json.JSONDecodeError) as e:
            raise FeatureTreeError(
                ErrorCode.STORAGE_INVALID_IMPORT,
                "Backup is unreadable",
                details={"key": backup_key, "error": str(e)},
            ) from e
        return self.import_data(data)

    def _prune_backups(self) -> None:
        if self.max_backups <= 0:
            return
        for stale in self.list_backups()[self.max_backups:]:
            (self.backup_path / f"{stale['key']}.json").unlink(missing_ok=True)

    # -------- maintenance --------

    def clear(self) -> bool:
        try:
            for path in (self.features_path, self.meta_path, self.legacy_path):
                path.unlink(missing_ok=True)
            return True
        except OSError as e:
            logger.error(f"[LocalStore] Error clearing workspace: {e}")
            return False

    def get_storage_size(self) -> int:
        try:
            return self.features_path.stat().st_size
        except OSError:
            return 0

    def get_stats(self) -> Dict[str, Any]:
        forest = self.load() or ()
        metadata = self.get_metadata() or {}
        return {
            "totalFeatures": queries.count_nodes(forest),
            "rootFeatures": len(forest),
            "version": STORE_VERSION,
            "createdAt": metadata.get("createdAt"),
            "lastModified": metadata.get("lastModified"),
            "size": self.get_storage_size(),
        }
