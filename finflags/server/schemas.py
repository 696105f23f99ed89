from __future__ import annotations

from typing import Dict, List, Literal

from pydantic import BaseModel


class PublicUser(BaseModel):
    id: str
    name: str
    role: str


class Organization(BaseModel):
    id: str
    name: str
    tier: str
    industry: str


class DemoDataResponse(BaseModel):
    users: List[PublicUser]
    organizations: List[Organization]


class ResponseContext(BaseModel):
    user: PublicUser
    organization: Organization


class FlagsResponse(BaseModel):
    flags: Dict[str, bool]
    context: ResponseContext
    evaluationSource: Literal["launchdarkly", "fallback", "fallback_error"]
    timestamp: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    launchDarkly: Literal["connected", "disconnected"]


class ClientSdkKeyResponse(BaseModel):
    clientSdkKey: str


class ErrorResponse(BaseModel):
    error: str
