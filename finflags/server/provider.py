"""
Server-side flag provider capability.

Route handlers never touch the SDK directly: they receive a FlagProvider
(or None, meaning fallback mode) through app.state.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol

from ldclient.client import LDClient
from ldclient.config import Config

from finflags.context import to_ld_context
from finflags.server.config import Settings

logger = logging.getLogger(__name__)


class FlagProvider(Protocol):
    def is_initialized(self) -> bool: ...

    def variation(self, flag_key: str, context: Mapping[str, Any], default: Any) -> Any: ...

    def identify(self, context: Mapping[str, Any]) -> None: ...

    def close(self) -> None: ...


class LaunchDarklyProvider:
    """FlagProvider backed by the LaunchDarkly server SDK."""

    def __init__(self, client: LDClient) -> None:
        self._client = client

    def is_initialized(self) -> bool:
        return self._client.is_initialized()

    def variation(self, flag_key: str, context: Mapping[str, Any], default: Any) -> Any:
        return self._client.variation(flag_key, to_ld_context(context), default)

    def identify(self, context: Mapping[str, Any]) -> None:
        self._client.identify(to_ld_context(context))

    def close(self) -> None:
        self._client.close()


def init_provider(settings: Settings) -> Optional[FlagProvider]:
    """
    Create the LaunchDarkly client and block until it initializes.

    Returns None (fallback mode) when no SDK key is configured or the
    client did not initialize within LD_START_WAIT_SECONDS.
    """
    sdk_key = (settings.LAUNCHDARKLY_SDK_KEY or "").strip()
    if not sdk_key:
        logger.warning("LaunchDarkly SDK key not provided. Using fallback values.")
        return None

    config = Config(
        sdk_key=sdk_key,
        stream=settings.LD_STREAM,
        send_events=settings.LD_SEND_EVENTS,
    )
    try:
        client = LDClient(config=config, start_wait=max(0.0, settings.LD_START_WAIT_SECONDS))
    except Exception as e:  # noqa: BLE001
        logger.error(f"Failed to initialize LaunchDarkly client: {e}")
        return None

    if not client.is_initialized():
        logger.error(
            f"LaunchDarkly client did not initialize within {settings.LD_START_WAIT_SECONDS}s; "
            "using fallback values"
        )
        client.close()
        return None

    logger.info("LaunchDarkly client initialized successfully")
    return LaunchDarklyProvider(client)
