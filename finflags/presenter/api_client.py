"""
HTTP client for the Context Store API.

Every failure (network error, non-2xx status, undecodable body) surfaces as
UpstreamFetchError. Nothing is retried.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from finflags.common.errors import UpstreamFetchError
from finflags.presenter.state import Catalog, ServerFlags

logger = logging.getLogger(__name__)

# Raised by the from_payload() parsers on JSON of the wrong shape.
_SHAPE_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


def _path_segment(value: str) -> str:
    """Encode operator input as exactly one URL path segment."""
    if value in {".", ".."}:
        return "%2E" * len(value)
    return quote(value, safe="")


class ContextStoreClient:
    def __init__(self, http: httpx.AsyncClient) -> None:
        self._http = http

    async def _get_json(self, path: str) -> Dict[str, Any]:
        try:
            resp = await self._http.get(path)
        except httpx.HTTPError as e:
            raise UpstreamFetchError(f"Request to {path} failed: {e}", url=path) from e

        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text[:200]
            detail = str(body.get("error") or "") if isinstance(body, dict) else str(body or "")
            raise UpstreamFetchError(
                f"{path} returned HTTP {resp.status_code}" + (f": {detail}" if detail else ""),
                url=path,
                status_code=resp.status_code,
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise UpstreamFetchError(f"{path} returned a non-JSON body", url=path, status_code=resp.status_code) from e
        if not isinstance(payload, dict):
            raise UpstreamFetchError(f"{path} returned unexpected JSON", url=path, status_code=resp.status_code)
        return payload

    async def fetch_catalog(self) -> Catalog:
        path = "/api/demo-data"
        payload = await self._get_json(path)
        try:
            return Catalog.from_payload(payload)
        except _SHAPE_ERRORS as e:
            raise UpstreamFetchError(f"{path} returned a malformed catalog: {e!r}", url=path) from e

    async def fetch_flags(self, user_id: str, org_id: str) -> ServerFlags:
        path = f"/api/flags/{_path_segment(user_id)}/{_path_segment(org_id)}"
        payload = await self._get_json(path)
        try:
            return ServerFlags.from_payload(payload)
        except _SHAPE_ERRORS as e:
            raise UpstreamFetchError(f"{path} returned a malformed flag set: {e!r}", url=path) from e

    async def fetch_client_sdk_key(self) -> Optional[str]:
        payload = await self._get_json("/api/client-sdk-key")
        key = str(payload.get("clientSdkKey") or "").strip()
        return key or None
