"""
Text rendering for the Presenter console.

render_view() is a pure function of PresenterState. render_safely() is the
top-level boundary: any exception raised while rendering becomes a generic
recovery screen (plus the raw error and traceback in development mode).
"""

from __future__ import annotations

import json
import logging
import traceback
from typing import Any, Dict, List, Mapping

from finflags.common.errors import RenderError
from finflags.context import DEMO_TENANT, display_context
from finflags.presenter.state import PresenterState

logger = logging.getLogger(__name__)

RULE = "-" * 60
RELOAD_HINT = "[r] reload"


def _flag_lines(flags: Mapping[str, Any]) -> List[str]:
    if not flags:
        return ["  (no flags)"]
    width = max(len(k) for k in flags)
    return [f"  {key.ljust(width)}  {'true' if value else 'false'}" for key, value in flags.items()]


def _selector(state: PresenterState) -> List[str]:
    catalog = state.catalog
    lines = ["Context Selection", RULE, "User Context:"]
    for identity in catalog.identities if catalog else []:
        mark = "*" if identity.id == state.selected_user else " "
        lines.append(f" {mark} {identity.id:<10} {identity.name} ({identity.role})")
    lines.append("Organization Context:")
    for tenant in catalog.tenants if catalog else []:
        mark = "*" if tenant.id == state.selected_org else " "
        lines.append(f" {mark} {tenant.id:<14} {tenant.name} [{tenant.tier}, {tenant.industry}]")
    return lines


def _context_panel(state: PresenterState) -> List[str]:
    identity = state.current_identity()
    tenant = state.current_tenant()
    context: Dict[str, Any] = display_context(identity, tenant)
    tenant = tenant or DEMO_TENANT
    return [
        "Current Context",
        RULE,
        json.dumps(context, indent=2),
        f"User: {identity.name if identity else 'Anonymous'} ({identity.role if identity else 'unknown'})",
        f"Organization: {tenant.name}",
        f"Tier: {tenant.tier}",
        f"Industry: {tenant.industry}",
    ]


def _server_panel(state: PresenterState) -> List[str]:
    server = state.server_flags
    if server is None:
        return ["Server-Side Flag Values", RULE, "  (loading)"]
    return [
        "Server-Side Flag Values",
        RULE,
        *_flag_lines(server.flags),
        f"Source: {server.evaluation_source}",
        f"Evaluated at: {server.timestamp}",
    ]


def _client_panel(state: PresenterState) -> List[str]:
    fallback = state.fallback_mode
    title = "Client-Side Flag Values" + (" (Fallback mode - LaunchDarkly unavailable)" if fallback else "")
    return [
        title,
        RULE,
        *_flag_lines(state.client_flags),
        "Evaluation: Client-side",
        f"Source: {'Fallback values' if fallback else 'LaunchDarkly'}",
        f"Connected: {'Yes' if state.client_connected else 'No'}",
    ]


def render_view(state: PresenterState) -> str:
    if state.error:
        return "\n".join(["Error", RULE, state.error, "", RELOAD_HINT])

    lines: List[str] = ["LaunchDarkly Quickstart - financial services demo", "=" * 60]
    if state.fallback is not None:
        lines += [
            state.fallback.title,
            state.fallback.detail,
            "The application will continue with fallback values.",
            "",
        ]
    if state.catalog is None:
        lines.append("Loading demo data...")
        return "\n".join(lines)

    for panel in (_selector(state), _context_panel(state), _server_panel(state), _client_panel(state)):
        lines += panel
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def render_error_boundary(error: RenderError, *, dev_mode: bool = False) -> str:
    lines = [
        "Something went wrong",
        RULE,
        "The application encountered an unexpected error. Reload to try again.",
    ]
    if dev_mode:
        lines += ["", "Error Details (Development Mode)", repr(error.cause), error.details]
    lines += ["", RELOAD_HINT]
    return "\n".join(lines)


def render_safely(state: PresenterState, *, dev_mode: bool = False) -> str:
    try:
        return render_view(state)
    except Exception as e:  # noqa: BLE001
        logger.error("Render boundary caught an error", exc_info=True)
        return render_error_boundary(RenderError(e, details=traceback.format_exc()), dev_mode=dev_mode)
