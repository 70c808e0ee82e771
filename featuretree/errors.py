"""Module errors: structured error taxonomy for featuretree."""
#
# PURPOSE:
# One exception type and one JSON envelope for every failure that crosses a
# boundary: the tree store, the status service, the editor API and the CLI.
#
# CODE PREFIXES:
# - VALIDATION_xxx  input rejected at a boundary (HTTP body, CLI args)
# - TREE_xxx        structural edits that would break the forest
# - STATUS_xxx      status service / status sync
# - DB_xxx          status database
# - STORAGE_xxx     workspace files, export/import, backups
# - SYSTEM_xxx      anything else
#
# EXAMPLE:
#   raise FeatureTreeError(
#       ErrorCode.TREE_CYCLE_DETECTED,
#       "A feature cannot be moved under its own descendant",
#       details={"feature_id": "a", "new_parent_id": "b"},
#   )
#
import json
from enum import Enum
from typing import Any, Dict, Optional

import aiosqlite
import httpx


class ErrorCode(Enum):
    VALIDATION_FAILED = "VALIDATION_001"
    VALIDATION_EMPTY_NAME = "VALIDATION_002"
    VALIDATION_INVALID_STATUS = "VALIDATION_003"
    VALIDATION_CONFIRMATION_REQUIRED = "VALIDATION_004"

    TREE_PARENT_NOT_FOUND = "TREE_001"
    TREE_SELF_MOVE = "TREE_002"
    TREE_CYCLE_DETECTED = "TREE_003"
    TREE_FEATURE_NOT_FOUND = "TREE_004"
    TREE_INVARIANT_VIOLATED = "TREE_005"

    STATUS_SERVICE_UNAVAILABLE = "STATUS_001"
    STATUS_INVALID_RESPONSE = "STATUS_002"

    DB_INIT_FAILED = "DB_001"
    DB_QUERY_FAILED = "DB_002"

    STORAGE_WRITE_FAILED = "STORAGE_001"
    STORAGE_INVALID_IMPORT = "STORAGE_002"
    STORAGE_BACKUP_NOT_FOUND = "STORAGE_003"

    SYSTEM_INTERNAL_ERROR = "SYSTEM_001"

    @property
    def category(self) -> str:
        return self.value.split("_", 1)[0]


# Per-code overrides; everything else falls back to its category default
HTTP_STATUS_MAP: Dict[ErrorCode, int] = {
    ErrorCode.TREE_PARENT_NOT_FOUND: 404,
    ErrorCode.TREE_FEATURE_NOT_FOUND: 404,
    ErrorCode.TREE_INVARIANT_VIOLATED: 500,
    ErrorCode.STATUS_SERVICE_UNAVAILABLE: 503,
    ErrorCode.STATUS_INVALID_RESPONSE: 502,
    ErrorCode.STORAGE_INVALID_IMPORT: 400,
    ErrorCode.STORAGE_BACKUP_NOT_FOUND: 404,
}

CATEGORY_STATUS: Dict[str, int] = {
    "VALIDATION": 400,
    "TREE": 409,
    "STATUS": 502,
    "DB": 500,
    "STORAGE": 500,
    "SYSTEM": 500,
}


class FeatureTreeError(Exception):
    """
    Error carrying a machine-readable code.

    Attributes:
        code: ErrorCode member
        message: text safe to show to a user
        details: extra context (ids, paths, the wrapped error)
        http_status: status the API answers with
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        http_status: Optional[int] = None,
    ):
        super().__init__(f"[{code.value}] {message}")
        self.code = code
        self.message = message
        self.details = dict(details or {})
        self.http_status = http_status or HTTP_STATUS_MAP.get(code) or CATEGORY_STATUS[code.category]

    def __repr__(self) -> str:
        return f"FeatureTreeError({self.code.name}, {self.message!r})"

    def to_dict(self) -> Dict[str, Any]:
        """The JSON error envelope: {code, message, details, http_status}."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "http_status": self.http_status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeatureTreeError":
        """Rebuild an error from its envelope (e.g. an HTTP error body)."""
        return cls(ErrorCode(data["code"]), data["message"], data.get("details"), data.get("http_status"))


def handle_error(error: Exception, context: Optional[str] = None) -> FeatureTreeError:
    """
    Wrap an arbitrary exception in a FeatureTreeError.

    FeatureTreeErrors pass through untouched. `context` is prefixed to the
    message ("while saving workspace: ...").
    """
    if isinstance(error, FeatureTreeError):
        return error

    if isinstance(error, httpx.TransportError):
        code = ErrorCode.STATUS_SERVICE_UNAVAILABLE
    elif isinstance(error, httpx.HTTPStatusError):
        code = ErrorCode.STATUS_INVALID_RESPONSE
    elif isinstance(error, aiosqlite.Error):
        code = ErrorCode.DB_QUERY_FAILED
    elif isinstance(error, json.JSONDecodeError):
        code = ErrorCode.STORAGE_INVALID_IMPORT
    elif isinstance(error, OSError):
        code = ErrorCode.STORAGE_WRITE_FAILED
    elif isinstance(error, ValueError):
        code = ErrorCode.VALIDATION_FAILED
    else:
        code = ErrorCode.SYSTEM_INTERNAL_ERROR

    message = f"{context}: {error}" if context else str(error)
    return FeatureTreeError(code, message, details={"error_type": type(error).__name__})


__all__ = ["ErrorCode", "FeatureTreeError", "HTTP_STATUS_MAP", "handle_error"]
