from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Query
from pydantic import BaseModel, Field, field_validator

from featuretree.errors import ErrorCode, FeatureTreeError
from featuretree.server.state import get_state
from featuretree.tree.dragdrop import DragMode, can_drop, handle_drop
from featuretree.tree.models import FeatureStatus, clamp_score, forest_to_list
from featuretree.tree.view import annotate_forest, describe_node

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tree", tags=["tree"])


class FeatureCreateRequest(BaseModel):
    name: str
    description: str = ""
    frequency: int = 0
    damage: int = 0
    required: bool = False
    parentId: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            logger.warning("Feature create rejected: empty name")
            raise ValueError("Please enter a feature name")
        return v

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        return v.strip()

    @field_validator("frequency", "damage", mode="before")
    @classmethod
    def clamp_scores(cls, v: Any) -> int:
        return clamp_score(v)


class FeatureUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    frequency: Optional[int] = None
    damage: Optional[int] = None
    required: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Feature name cannot be empty")
        return v

    @field_validator("frequency", "damage", mode="before")
    @classmethod
    def clamp_scores(cls, v: Any) -> Optional[int]:
        return None if v is None else clamp_score(v)


class StatusRequest(BaseModel):
    status: Optional[FeatureStatus] = Field(...)


class SwapRequest(BaseModel):
    firstId: str = Field(..., min_length=1)
    secondId: str = Field(..., min_length=1)


class MoveRequest(BaseModel):
    featureId: str = Field(..., min_length=1)
    newParentId: Optional[str] = None


class DropRequest(BaseModel):
    sourceId: str = Field(..., min_length=1)
    targetId: Optional[str] = None
    mode: DragMode = DragMode.SWAP


def _tree_payload(changed: bool) -> Dict[str, Any]:
    return {"changed": changed, "features": forest_to_list(get_state().store.snapshot)}


@router.get("")
async def get_tree():
    return {"features": forest_to_list(get_state().store.snapshot)}


@router.get("/view")
async def get_tree_view() -> List[Dict[str, Any]]:
    """Flattened rows with weight, contribution, colour and visibility."""
    return annotate_forest(get_state().store.snapshot)


@router.get("/features/{feature_id}")
async def get_feature(feature_id: str):
    row = describe_node(get_state().store.snapshot, feature_id)
    if row is None:
        raise FeatureTreeError(
            ErrorCode.TREE_FEATURE_NOT_FOUND,
            "Feature not found",
            details={"feature_id": feature_id},
        )
    return row


@router.post("/features", status_code=201)
async def create_feature(req: FeatureCreateRequest):
    node = get_state().store.add(
        req.name,
        req.description,
        req.frequency,
        req.damage,
        req.required,
        req.parentId,
    )
    return {"feature": node.to_dict(), **_tree_payload(True)}


@router.patch("/features/{feature_id}")
async def update_feature(feature_id: str, req: FeatureUpdateRequest):
    fields = {k: v for k, v in req.model_dump(exclude_unset=True).items() if v is not None}
    return _tree_payload(get_state().store.update(feature_id, **fields))


@router.delete("/features/{feature_id}")
async def delete_feature(feature_id: str, confirm: bool = Query(False)):
    """Delete a feature and all its children. Requires `?confirm=true`."""
    if not confirm:
        raise FeatureTreeError(
            ErrorCode.VALIDATION_CONFIRMATION_REQUIRED,
            "Deleting a feature removes all its children; repeat with confirm=true",
            details={"feature_id": feature_id},
        )
    return _tree_payload(get_state().store.delete(feature_id))


@router.post("/features/{feature_id}/toggle")
async def toggle_feature(feature_id: str):
    return _tree_payload(get_state().store.toggle_expand(feature_id))


@router.put("/features/{feature_id}/status")
async def set_feature_status(feature_id: str, req: StatusRequest):
    """Local-first status write; the status source is notified in the background."""
    return _tree_payload(get_state().sync.set_status(feature_id, req.status))


@router.post("/swap")
async def swap_features(req: SwapRequest):
    return _tree_payload(get_state().store.swap_siblings(req.firstId, req.secondId))


@router.post("/move")
async def move_feature(req: MoveRequest):
    return _tree_payload(get_state().store.move(req.featureId, req.newParentId))


@router.post("/drop")
async def drop_feature(req: DropRequest):
    return _tree_payload(handle_drop(get_state().store, req.sourceId, req.targetId, req.mode))


@router.post("/drop/check")
async def check_drop(req: DropRequest):
    return {"allowed": can_drop(get_state().store, req.sourceId, req.targetId, req.mode)}


# -------- workspace housekeeping --------

@router.get("/stats")
async def workspace_stats():
    return get_state().local_store.get_stats()


@router.get("/export")
async def export_workspace():
    return get_state().local_store.export()


@router.post("/import")
async def import_workspace(payload: Dict[str, Any] = Body(...)):
    state = get_state()
    forest = state.local_store.import_data(payload)
    return _tree_payload(state.store.replace(forest))


@router.get("/backups")
async def list_backups():
    return {"backups": get_state().local_store.list_backups()}


@router.post("/backups", status_code=201)
async def create_backup():
    key = get_state().local_store.create_backup()
    if key is None:
        raise FeatureTreeError(ErrorCode.STORAGE_WRITE_FAILED, "Failed to create backup")
    return {"key": key}


@router.post("/backups/{backup_key}/restore")
async def restore_backup(backup_key: str):
    state = get_state()
    forest = state.local_store.restore(backup_key)
    return _tree_payload(state.store.replace(forest))
