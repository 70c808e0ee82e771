# ============================================================================
# featuretree/base/config.py
# Application Configuration Management
# ============================================================================
#
# PURPOSE:
# Defines every setting for the editor service, the status service and the
# CLI. Values come from FEATURETREE_* environment variables with local
# defaults; one config object is shared process-wide.
#
# ============================================================================

from __future__ import annotations

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageConfig:
    base_dir: Path = field(default_factory=lambda: Path.home() / ".featuretree")
    db_name: str = "features.db"
    workspace_dir: str = "workspace"
    max_backups: int = 20

    @property
    def db_path(self) -> Path:
        return self.base_dir / self.db_name

    @property
    def workspace_path(self) -> Path:
        return self.base_dir / self.workspace_dir


@dataclass(frozen=True)
class StatusConfig:
    # Empty means "use the in-process status database"
    service_url: str = ""
    request_timeout: float = 5.0
    retry_attempts: int = 3
    retry_backoff: float = 0.5


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    file_enabled: bool = True
    file_name: str = "featuretree.log"
    max_file_size_mb: int = 10
    backup_count: int = 5


@dataclass
class FeatureTreeConfig:
    storage: StorageConfig = field(default_factory=StorageConfig)
    status: StatusConfig = field(default_factory=StatusConfig)
    log: LogConfig = field(default_factory=LogConfig)
    debug: bool = False
    seed_sample_data: bool = True
    api_host: str = "127.0.0.1"
    api_port: int = 3000
    allowed_origins: tuple = ("*",)

    def __post_init__(self):
        self.storage.base_dir.mkdir(parents=True, exist_ok=True)
        self.storage.workspace_path.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_env(cls) -> "FeatureTreeConfig":
        base_dir = Path(os.getenv("FEATURETREE_DATA_DIR", str(Path.home() / ".featuretree")))
        storage = StorageConfig(
            base_dir=base_dir,
            max_backups=int(os.getenv("FEATURETREE_MAX_BACKUPS", "20")),
        )

        status = StatusConfig(
            service_url=os.getenv("FEATURETREE_STATUS_URL", "").rstrip("/"),
            request_timeout=float(os.getenv("FEATURETREE_STATUS_TIMEOUT", "5")),
            retry_attempts=int(os.getenv("FEATURETREE_STATUS_RETRIES", "3")),
            retry_backoff=float(os.getenv("FEATURETREE_STATUS_BACKOFF", "0.5")),
        )

        log = LogConfig(
            level=os.getenv("FEATURETREE_LOG_LEVEL", "INFO"),
            file_enabled=os.getenv("FEATURETREE_LOG_FILE", "true").lower() == "true",
        )

        origins_str = os.getenv("FEATURETREE_ALLOWED_ORIGINS", "")
        origins = tuple(o.strip() for o in origins_str.split(",") if o.strip()) or ("*",)

        return cls(
            storage=storage,
            status=status,
            log=log,
            debug=os.getenv("FEATURETREE_DEBUG", "false").lower() == "true",
            seed_sample_data=os.getenv("FEATURETREE_SEED", "true").lower() == "true",
            api_host=os.getenv("FEATURETREE_API_HOST", "127.0.0.1"),
            api_port=int(os.getenv("FEATURETREE_API_PORT", os.getenv("PORT", "3000"))),
            allowed_origins=origins,
        )


_config: Optional[FeatureTreeConfig] = None


def get_config() -> FeatureTreeConfig:
    global _config
    if _config is None:
        _config = FeatureTreeConfig.from_env()
    return _config


def set_config(config: FeatureTreeConfig) -> None:
    global _config
    _config = config


def setup_logging(config: Optional[FeatureTreeConfig] = None) -> None:
    cfg = config or get_config()

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if cfg.log.file_enabled:
        from logging.handlers import RotatingFileHandler
        log_path = cfg.storage.base_dir / cfg.log.file_name
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=cfg.log.max_file_size_mb * 1024 * 1024,
            backupCount=cfg.log.backup_count,
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, cfg.log.level.upper()),
        format=cfg.log.format,
        handlers=handlers,
        force=True,
    )
