from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from finflags.catalog import Identity, Tenant

DEFAULT_USER_ID = "user-1"
DEFAULT_ORG_ID = "org-megabank"


@dataclass(frozen=True)
class Catalog:
    identities: List[Identity]
    tenants: List[Tenant]

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Catalog":
        return cls(
            identities=[Identity.from_dict(u) for u in payload.get("users") or []],
            tenants=[Tenant.from_dict(o) for o in payload.get("organizations") or []],
        )


@dataclass(frozen=True)
class ServerFlags:
    """Last FlagSet received from the Context Store."""

    flags: Dict[str, bool]
    context: Dict[str, Any]
    evaluation_source: str
    timestamp: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ServerFlags":
        return cls(
            flags={str(k): bool(v) for k, v in (payload.get("flags") or {}).items()},
            context=dict(payload.get("context") or {}),
            evaluation_source=str(payload.get("evaluationSource") or "unknown"),
            timestamp=str(payload.get("timestamp") or ""),
        )


@dataclass(frozen=True)
class FallbackNotice:
    """Banner shown when the embedded client runs without a provider connection."""

    title: str
    detail: str


@dataclass
class PresenterState:
    selected_user: str = DEFAULT_USER_ID
    selected_org: str = DEFAULT_ORG_ID
    catalog: Optional[Catalog] = None
    server_flags: Optional[ServerFlags] = None
    client_flags: Dict[str, Any] = field(default_factory=dict)
    client_connected: bool = False
    fallback: Optional[FallbackNotice] = None
    error: Optional[str] = None

    @property
    def fallback_mode(self) -> bool:
        return self.fallback is not None

    def current_identity(self) -> Optional[Identity]:
        if self.catalog is None:
            return None
        return next((u for u in self.catalog.identities if u.id == self.selected_user), None)

    def current_tenant(self) -> Optional[Tenant]:
        if self.catalog is None:
            return None
        return next((o for o in self.catalog.tenants if o.id == self.selected_org), None)
