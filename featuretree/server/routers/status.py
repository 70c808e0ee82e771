from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from featuretree.data.db import Database
from featuretree.tree.models import FeatureStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/features/status", tags=["status"])


class StatusUpdateRequest(BaseModel):
    featureId: str = Field(..., min_length=1)
    # Required but nullable: null clears a previously stored status
    status: Optional[FeatureStatus] = Field(...)


@router.post("")
async def update_feature_status(req: StatusUpdateRequest):
    """Store a feature's status. Unknown feature ids are accepted."""
    status = req.status.value if req.status else None
    await Database.instance().upsert_status(req.featureId, status)
    logger.info(f"Updated feature {req.featureId} status to: {status}")
    return {
        "success": True,
        "featureId": req.featureId,
        "status": status,
        "message": f"Feature {req.featureId} status updated to {status or 'none'}",
    }


@router.get("")
async def get_all_feature_statuses() -> Dict[str, Optional[str]]:
    return await Database.instance().get_all_statuses()


@router.get("/{feature_id}")
async def get_feature_status(feature_id: str):
    status = await Database.instance().get_status(feature_id)
    return {"featureId": feature_id, "status": status}
