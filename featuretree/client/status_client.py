"""
HTTP client for the status service.

Wraps httpx.AsyncClient. Reads are forgiving: an unreachable service, a
non-2xx answer, a non-JSON body or a malformed mapping all read as "no
statuses". Writes raise, so callers can decide whether to retry.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from featuretree.tree.models import FeatureStatus, parse_status

logger = logging.getLogger(__name__)

STATUS_PATH = "/api/features/status"


def parse_status_mapping(payload: Any) -> Dict[str, Optional[FeatureStatus]]:
    """Validate a `{featureId: status}` body; bad entries are dropped."""
    if not isinstance(payload, dict):
        logger.warning(f"[StatusClient] Ignoring malformed status mapping of type {type(payload).__name__}")
        return {}
    statuses: Dict[str, Optional[FeatureStatus]] = {}
    for feature_id, value in payload.items():
        try:
            statuses[str(feature_id)] = parse_status(value)
        except ValueError:
            logger.warning(f"[StatusClient] Skipping invalid status {value!r} for {feature_id}")
    return statuses


class StatusClient:
    """Status source backed by a remote status service."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        underlying_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = underlying_client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def fetch_all(self) -> Dict[str, Optional[FeatureStatus]]:
        try:
            response = await self.client.get(self._url(STATUS_PATH))
        except httpx.HTTPError as e:
            logger.error(f"[StatusClient] Error fetching statuses from server: {e}")
            return {}

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            logger.warning("[StatusClient] Server returned non-JSON response. Service might be starting up.")
            return {}
        if not response.is_success:
            logger.error(f"[StatusClient] Status fetch failed with HTTP {response.status_code}")
            return {}

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"[StatusClient] Status body is not valid JSON: {e}")
            return {}
        statuses = parse_status_mapping(payload)
        logger.debug(f"[StatusClient] Fetched {len(statuses)} statuses from server")
        return statuses

    async def get_status(self, feature_id: str) -> Optional[FeatureStatus]:
        response = await self.client.get(self._url(f"{STATUS_PATH}/{feature_id}"))
        response.raise_for_status()
        return parse_status(response.json().get("status"))

    async def set_status(self, feature_id: str, status: Optional[FeatureStatus]) -> Dict[str, Any]:
        """
        Record a status remotely.

        Raises:
            httpx.HTTPError: transport failure or non-2xx response.
        """
        value = parse_status(status)
        response = await self.client.post(
            self._url(STATUS_PATH),
            json={"featureId": feature_id, "status": value.value if value else None},
        )
        response.raise_for_status()
        return response.json()

    async def aclose(self):
        await self.client.aclose()
