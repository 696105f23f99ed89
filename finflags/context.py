"""
Evaluation context construction.

Both processes build the multi-kind (user + organization) context through
build_context(); the shape decides whether the identity's email is part of it.
Contexts are derived per request and never stored.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ldclient import Context

from finflags.catalog import Identity, Tenant


class ContextShape(str, Enum):
    FULL = "full"  # server-side evaluation, includes email
    REDACTED = "redacted"  # client-side evaluation and display


ANONYMOUS_IDENTITY = Identity(id="anonymous", name="Anonymous User", role="unknown")
DEMO_TENANT = Tenant(id="demo-org", name="Demo Organization", tier="starter", industry="unknown")


def build_context(identity: Identity, tenant: Tenant, shape: ContextShape = ContextShape.REDACTED) -> Dict[str, Any]:
    user: Dict[str, Any] = {"key": identity.id, "name": identity.name}
    if shape is ContextShape.FULL and identity.email:
        user["email"] = identity.email
    user["role"] = identity.role

    return {
        "kind": "multi",
        "user": user,
        "organization": {
            "key": tenant.id,
            "name": tenant.name,
            "tier": tenant.tier,
            "industry": tenant.industry,
        },
    }


def display_context(identity: Optional[Identity], tenant: Optional[Tenant]) -> Dict[str, Any]:
    """Redacted context for the current selection, anonymous defaults for missing halves."""
    return build_context(identity or ANONYMOUS_IDENTITY, tenant or DEMO_TENANT, ContextShape.REDACTED)


def bootstrap_context() -> Dict[str, Any]:
    """Initial client-side context used before the operator picks anything."""
    return {
        "kind": "multi",
        "user": {"key": ANONYMOUS_IDENTITY.id, "name": ANONYMOUS_IDENTITY.name, "anonymous": True},
        "organization": {"key": DEMO_TENANT.id, "name": DEMO_TENANT.name, "tier": DEMO_TENANT.tier},
    }


def _single_kind(kind: str, attrs: Mapping[str, Any]) -> Context:
    builder = Context.builder(str(attrs["key"])).kind(kind)
    for name, value in attrs.items():
        if name == "key":
            continue
        if name == "name":
            builder.name(value)
        elif name == "anonymous":
            builder.anonymous(bool(value))
        else:
            builder.set(name, value)
    return builder.build()


def to_ld_context(context: Mapping[str, Any]) -> Context:
    """Convert a build_context() mapping into an SDK Context."""
    parts = [_single_kind(kind, attrs) for kind, attrs in context.items() if kind != "kind"]
    if len(parts) == 1:
        return parts[0]
    return Context.create_multi(*parts)


def public_context(identity: Identity, tenant: Tenant) -> Dict[str, Dict[str, str]]:
    """Context echoed back in API responses (never carries email)."""
    return {"user": identity.public(), "organization": tenant.as_dict()}
