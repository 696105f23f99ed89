"""
Identity (user) and Tenant (organization) catalog.

The catalog is fixed for the process lifetime; in a real product these
records would come from the identity provider / tenant directory.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from finflags.common.errors import NotFoundError


@dataclass(frozen=True, slots=True)
class Identity:
    """
    An operator identity.

    - email is only known server-side; the public view omits it.
    """

    id: str
    name: str
    role: str
    email: Optional[str] = None

    def public(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "role": self.role}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Identity":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            role=str(data.get("role") or ""),
            email=data.get("email"),
        )


@dataclass(frozen=True, slots=True)
class Tenant:
    id: str
    name: str
    tier: str
    industry: str

    def as_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Tenant":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            tier=str(data.get("tier") or ""),
            industry=str(data.get("industry") or ""),
        )


IDENTITIES: Mapping[str, Identity] = MappingProxyType(
    {
        "user-1": Identity(id="user-1", name="John Smith", email="john.smith@megabank.com", role="analyst"),
        "user-2": Identity(id="user-2", name="Jane Doe", email="jane.doe@megabank.com", role="manager"),
        "user-3": Identity(id="user-3", name="Bob Wilson", email="bob.wilson@smallcorp.com", role="admin"),
    }
)

TENANTS: Mapping[str, Tenant] = MappingProxyType(
    {
        "org-megabank": Tenant(id="org-megabank", name="MegaBank Corp", tier="enterprise", industry="banking"),
        "org-smallcorp": Tenant(id="org-smallcorp", name="Small Corp", tier="starter", industry="fintech"),
    }
)


def resolve(identity_id: str, tenant_id: str) -> Tuple[Identity, Tenant]:
    """
    Look up both halves of a selection.

    Raises NotFoundError if either id is unknown.
    """
    identity = IDENTITIES.get(identity_id)
    tenant = TENANTS.get(tenant_id)
    if identity is None or tenant is None:
        raise NotFoundError()
    return identity, tenant


def list_catalog() -> Dict[str, List[Dict[str, str]]]:
    """Public catalog view: identities without email, tenants in full."""
    return {
        "users": [identity.public() for identity in IDENTITIES.values()],
        "organizations": [tenant.as_dict() for tenant in TENANTS.values()],
    }
