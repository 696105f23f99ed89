"""
Embedded client-side flag providers for the Presenter.

LaunchDarklyClientSideProvider evaluates with the publishable client-side ID
through the provider's client-side evaluation endpoint; FallbackClientProvider
never contacts the provider and always reports the fixed defaults.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, Mapping, Optional, Protocol

import httpx

from finflags.common.errors import ClientEvaluationError
from finflags.flags import default_flags
from finflags.presenter.config import DEFAULT_CLIENT_SDK_BASE_URL

logger = logging.getLogger(__name__)


class ClientFlagProvider(Protocol):
    @property
    def connected(self) -> bool: ...

    async def identify(self, context: Mapping[str, Any]) -> None: ...

    def all_flags(self) -> Dict[str, Any]: ...

    async def close(self) -> None: ...


class FallbackClientProvider:
    @property
    def connected(self) -> bool:
        return False

    async def identify(self, context: Mapping[str, Any]) -> None:
        return None

    def all_flags(self) -> Dict[str, Any]:
        return default_flags()

    async def close(self) -> None:
        return None


def encode_context(context: Mapping[str, Any]) -> str:
    raw = json.dumps(context, separators=(",", ":"), sort_keys=True).encode("utf-8")
    # Unpadded base64url, as the JS client sends it.
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


class LaunchDarklyClientSideProvider:
    """
    Client-side evaluation keyed by the active context.

    Only the most recent identify() call may replace the flag values, so an
    older request finishing late cannot overwrite a newer context's flags.
    """

    def __init__(
        self,
        client_side_id: str,
        http: httpx.AsyncClient,
        *,
        base_url: str = DEFAULT_CLIENT_SDK_BASE_URL,
    ) -> None:
        self._client_side_id = client_side_id
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._flags: Dict[str, Any] = {}
        self._context: Optional[Mapping[str, Any]] = None
        self._connected = False
        self._identify_seq = 0

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def context(self) -> Optional[Mapping[str, Any]]:
        return self._context

    def evaluation_url(self, context: Mapping[str, Any]) -> str:
        return f"{self._base_url}/sdk/evalx/{self._client_side_id}/contexts/{encode_context(context)}"

    async def identify(self, context: Mapping[str, Any]) -> None:
        """Switch the active context; raises ClientEvaluationError on failure."""
        self._identify_seq += 1
        token = self._identify_seq

        url = self.evaluation_url(context)
        try:
            resp = await self._http.get(url)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPError as e:
            raise ClientEvaluationError(f"Client-side evaluation request failed: {e}") from e
        except ValueError as e:
            raise ClientEvaluationError("Client-side evaluation returned a non-JSON body") from e
        if not isinstance(payload, dict):
            raise ClientEvaluationError(f"Client-side evaluation returned {type(payload).__name__}, expected an object")

        if token != self._identify_seq:
            logger.debug("Discarding client-side evaluation for superseded context")
            return

        # evalx returns {flagKey: {"value": ..., "version": ..., ...}}
        self._flags = {
            str(key): (detail.get("value") if isinstance(detail, dict) else detail)
            for key, detail in payload.items()
        }
        self._context = dict(context)
        self._connected = True
        logger.info("[LD] Client context updated", extra={"event_type": "presenter.client_identify", "ld_context": self._context})

    def all_flags(self) -> Dict[str, Any]:
        return dict(self._flags)

    async def close(self) -> None:
        self._connected = False
