from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter

from featuretree.base.config import get_config
from featuretree.server.state import get_state
from featuretree.tree import queries

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get("/health")
async def health_check():
    """Simple health check endpoint."""
    return {"status": "ok", "timestamp": asyncio.get_running_loop().time()}


@router.get("/api/config")
async def get_system_config():
    """Non-sensitive subset of the running configuration."""
    conf = get_config()
    return {
        "api_host": conf.api_host,
        "api_port": conf.api_port,
        "status_source": conf.status.service_url or "local",
        "log_level": conf.log.level,
        "features": queries.count_nodes(get_state().store.snapshot),
        "revision": get_state().revision,
    }
