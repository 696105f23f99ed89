"""
Configuration for the Context Presenter (env prefix PRESENTER_).
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CLIENT_SDK_BASE_URL = "https://clientsdk.launchdarkly.com"


class PresenterSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PRESENTER_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    API_URL: str = "http://localhost:3001"
    TIMEOUT_SECONDS: float = 10.0
    CLIENT_SDK_BASE_URL: str = DEFAULT_CLIENT_SDK_BASE_URL
    APP_ENV: str = "production"
    LOG_LEVEL: str = "WARNING"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV.strip().lower() in {"dev", "development", "local"}


@lru_cache(maxsize=1)
def get_presenter_settings() -> PresenterSettings:
    return PresenterSettings()
