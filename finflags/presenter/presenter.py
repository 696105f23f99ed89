"""
Context Presenter lifecycle.

Two independent data flows keyed on the selected (identity, tenant) pair:
- server-evaluated flags fetched from the Context Store
- client-evaluated flags from the embedded client provider

Each selection takes a sequence token; results belonging to an older
selection are dropped instead of overwriting the current view.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from finflags.common.errors import ClientEvaluationError, UpstreamFetchError
from finflags.common.logging import log_event
from finflags.context import ContextShape, bootstrap_context, build_context
from finflags.flags import default_flags
from finflags.presenter.api_client import ContextStoreClient
from finflags.presenter.client_provider import (
    ClientFlagProvider,
    FallbackClientProvider,
    LaunchDarklyClientSideProvider,
)
from finflags.presenter.config import DEFAULT_CLIENT_SDK_BASE_URL
from finflags.presenter.state import DEFAULT_ORG_ID, DEFAULT_USER_ID, FallbackNotice, PresenterState

logger = logging.getLogger(__name__)

CATALOG_ERROR = "Failed to load demo data"
SERVER_FLAGS_ERROR = "Failed to load server flags"


class ContextPresenter:
    def __init__(
        self,
        api: ContextStoreClient,
        client_provider: Optional[ClientFlagProvider] = None,
        *,
        fallback: Optional[FallbackNotice] = None,
        user_id: str = DEFAULT_USER_ID,
        org_id: str = DEFAULT_ORG_ID,
    ) -> None:
        self._api = api
        # Fallback mode never talks to a provider client-side.
        self._client: ClientFlagProvider = (
            FallbackClientProvider() if fallback is not None or client_provider is None else client_provider
        )
        self.state = PresenterState(selected_user=user_id, selected_org=org_id, fallback=fallback)
        self._selection_seq = 0
        self._sync_client_flags()

    @property
    def client_provider(self) -> ClientFlagProvider:
        return self._client

    async def mount(self) -> None:
        """Fetch the catalog once, then load flags for the initial selection."""
        try:
            catalog = await self._api.fetch_catalog()
        except UpstreamFetchError as e:
            logger.error(f"Failed to fetch demo data: {e}")
            self.state.error = CATALOG_ERROR
            return

        self.state.catalog = catalog
        await self.select(self.state.selected_user, self.state.selected_org)

    async def reload(self) -> None:
        """Manual recovery action: clear errors and start over."""
        self.state.error = None
        self.state.server_flags = None
        await self.mount()

    async def select(self, user_id: str, org_id: str) -> None:
        self._selection_seq += 1
        token = self._selection_seq
        self.state.selected_user = user_id
        self.state.selected_org = org_id

        await asyncio.gather(
            self._refresh_server_flags(token, user_id, org_id),
            self._refresh_client_context(token),
        )

    def is_current(self, token: int) -> bool:
        return token == self._selection_seq

    async def _refresh_server_flags(self, token: int, user_id: str, org_id: str) -> None:
        try:
            result = await self._api.fetch_flags(user_id, org_id)
        except UpstreamFetchError as e:
            if not self.is_current(token):
                return
            logger.error(f"Failed to fetch server flags: {e}")
            self.state.error = SERVER_FLAGS_ERROR
            return

        if not self.is_current(token):
            logger.debug(f"Dropping server flags for superseded selection {user_id}/{org_id}")
            return

        self.state.server_flags = result
        log_event(
            logger,
            "presenter.server_flags",
            message="[Audit] Server-side flag evaluation",
            user=user_id,
            organization=org_id,
            flags=result.flags,
            source=result.evaluation_source,
            evaluated_at=result.timestamp,
        )

    async def _refresh_client_context(self, token: int) -> None:
        if self.state.fallback_mode:
            return
        identity = self.state.current_identity()
        tenant = self.state.current_tenant()
        if identity is None or tenant is None:
            return

        context = build_context(identity, tenant, ContextShape.REDACTED)
        try:
            await self._client.identify(context)
        except Exception as e:  # noqa: BLE001
            # Best-effort: the console keeps showing the last known client flags.
            logger.error(f"[LD] Failed to update context: {e}")
            return

        if self.is_current(token):
            self._sync_client_flags()

    def _sync_client_flags(self) -> None:
        if self.state.fallback_mode:
            self.state.client_flags = default_flags()
            self.state.client_connected = False
            return
        self.state.client_flags = self._client.all_flags()
        self.state.client_connected = self._client.connected


async def bootstrap_presenter(
    api: ContextStoreClient,
    http: httpx.AsyncClient,
    *,
    client_sdk_base_url: str = DEFAULT_CLIENT_SDK_BASE_URL,
    user_id: str = DEFAULT_USER_ID,
    org_id: str = DEFAULT_ORG_ID,
) -> ContextPresenter:
    """
    Fetch the client-safe key and wire the embedded client provider.

    A failed fetch or a missing key puts the Presenter into fallback mode.
    """
    try:
        client_sdk_key = await api.fetch_client_sdk_key()
    except UpstreamFetchError as e:
        logger.error(f"Failed to initialize LaunchDarkly: {e}")
        notice = FallbackNotice(
            title="Initialization Error",
            detail=f"Failed to initialize LaunchDarkly client: {e.message}",
        )
        return ContextPresenter(api, fallback=notice, user_id=user_id, org_id=org_id)

    if not client_sdk_key:
        notice = FallbackNotice(
            title="Configuration Error",
            detail="LaunchDarkly configuration is not available.",
        )
        return ContextPresenter(api, fallback=notice, user_id=user_id, org_id=org_id)

    provider = LaunchDarklyClientSideProvider(client_sdk_key, http, base_url=client_sdk_base_url)
    try:
        await provider.identify(bootstrap_context())
    except ClientEvaluationError as e:
        logger.warning(f"[LD] Initial client-side evaluation failed: {e}")
    return ContextPresenter(api, provider, user_id=user_id, org_id=org_id)
