from __future__ import annotations

from fastapi import Request

from finflags.server.config import Settings
from finflags.server.evaluation import ContextStore


def get_store(request: Request) -> ContextStore:
    return request.app.state.store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
