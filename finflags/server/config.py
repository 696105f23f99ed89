"""
Configuration for the Context Store.

All settings are loaded from environment variables (or a local .env file).
NO SECRETS ARE STORED IN CODE.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from finflags import __version__


class Settings(BaseSettings):
    """
    Runtime configuration.

    Notes:
    - A missing server SDK key is not fatal: the service runs in fallback mode.
    - A missing client SDK key only disables /api/client-sdk-key (503).
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service identity
    APP_NAME: str = "Feature Flag Context Store"
    APP_VERSION: str = __version__
    APP_ENV: str = "production"
    LOG_LEVEL: str = "INFO"

    # HTTP
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    # Single allowed cross-origin (the Presenter's dev server).
    CLIENT_URL: str = "http://localhost:5173"

    # LaunchDarkly
    LAUNCHDARKLY_SDK_KEY: Optional[str] = None
    LAUNCHDARKLY_CLIENT_SDK_KEY: Optional[str] = None
    LD_START_WAIT_SECONDS: float = 5.0
    LD_STREAM: bool = True
    LD_SEND_EVENTS: bool = True

    @property
    def is_development(self) -> bool:
        return self.APP_ENV.strip().lower() in {"dev", "development", "local"}


def validate_config(settings: Settings) -> List[str]:
    """
    Validate configuration.
    Returns list of warning messages (empty if fully configured).
    """
    warnings: List[str] = []

    if not settings.LAUNCHDARKLY_SDK_KEY:
        warnings.append("LAUNCHDARKLY_SDK_KEY not set (server-side evaluation uses fallback values)")

    if not settings.LAUNCHDARKLY_CLIENT_SDK_KEY:
        warnings.append("LAUNCHDARKLY_CLIENT_SDK_KEY not set (/api/client-sdk-key returns 503)")

    if settings.LD_START_WAIT_SECONDS <= 0:
        warnings.append("LD_START_WAIT_SECONDS must be positive; provider init will not block")

    return warnings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
