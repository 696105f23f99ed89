from __future__ import annotations

import asyncio
import base64
import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from finflags.catalog import list_catalog
from finflags.flags import FLAG_KEYS
from finflags.presenter.api_client import ContextStoreClient
from finflags.common.errors import UpstreamFetchError
from finflags.presenter.client_provider import FallbackClientProvider, LaunchDarklyClientSideProvider, encode_context
from finflags.presenter.presenter import (
    CATALOG_ERROR,
    SERVER_FLAGS_ERROR,
    ContextPresenter,
    bootstrap_presenter,
)
from finflags.presenter.render import render_safely, render_view

API = "http://store.test"
CLIENT_SDK = "https://clientsdk.test"


def _flags_payload(user_id: str, org_id: str, *, value: bool = False, source: str = "fallback") -> Dict[str, Any]:
    catalog = list_catalog()
    user = next(u for u in catalog["users"] if u["id"] == user_id)
    org = next(o for o in catalog["organizations"] if o["id"] == org_id)
    return {
        "flags": {key: value for key in FLAG_KEYS},
        "context": {"user": user, "organization": org},
        "evaluationSource": source,
        "timestamp": "2026-01-01T00:00:00Z",
    }


class FakeBackend:
    """MockTransport handler emulating the Context Store and the client-side SDK endpoint."""

    def __init__(
        self,
        *,
        client_key: Optional[str] = "client-id-1",
        catalog_status: int = 200,
        flags_status: int = 200,
        evalx_status: int = 200,
        delays: Optional[Dict[str, float]] = None,
    ) -> None:
        self.client_key = client_key
        self.catalog_status = catalog_status
        self.flags_status = flags_status
        self.evalx_status = evalx_status
        self.delays = delays or {}
        self.requests: List[httpx.Request] = []
        self.client_contexts: List[Dict[str, Any]] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.url.host == "clientsdk.test":
            encoded = path.rsplit("/", 1)[-1]
            context = json.loads(base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4)))
            self.client_contexts.append(context)
            if self.evalx_status != 200:
                return httpx.Response(self.evalx_status, json={})
            enterprise = context.get("organization", {}).get("tier") == "enterprise"
            return httpx.Response(
                200,
                json={key: {"value": enterprise, "version": 3} for key in FLAG_KEYS},
            )

        if path == "/api/client-sdk-key":
            if self.client_key is None:
                return httpx.Response(503, json={"error": "Client SDK key not configured"})
            return httpx.Response(200, json={"clientSdkKey": self.client_key})

        if path == "/api/demo-data":
            if self.catalog_status != 200:
                return httpx.Response(self.catalog_status, json={"error": "boom"})
            return httpx.Response(200, json=list_catalog())

        if path.startswith("/api/flags/"):
            _, _, _, user_id, org_id = path.split("/")
            await asyncio.sleep(self.delays.get(user_id, 0.0))
            if self.flags_status != 200:
                return httpx.Response(self.flags_status, json={"error": "User or organization not found"})
            return httpx.Response(200, json=_flags_payload(user_id, org_id, value=(user_id == "user-2")))

        return httpx.Response(404, json={"error": "not found"})

    def evalx_calls(self) -> int:
        return sum(1 for r in self.requests if r.url.host == "clientsdk.test")


def _http(backend: FakeBackend) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=API, transport=httpx.MockTransport(backend))


def test_mount_loads_catalog_and_server_flags() -> None:
    backend = FakeBackend()

    async def _run():
        async with _http(backend) as http:
            presenter = ContextPresenter(ContextStoreClient(http))
            await presenter.mount()
            return presenter

    presenter = asyncio.run(_run())
    state = presenter.state
    assert state.error is None
    assert [u.id for u in state.catalog.identities] == ["user-1", "user-2", "user-3"]
    assert state.server_flags.context["user"]["id"] == "user-1"
    assert state.server_flags.evaluation_source == "fallback"

    view = render_view(state)
    assert "Current Context" in view
    assert '"key": "user-1"' in view
    assert "Source: fallback" in view
    assert "email" not in view


def test_catalog_failure_is_terminal() -> None:
    backend = FakeBackend(catalog_status=500)

    async def _run():
        async with _http(backend) as http:
            presenter = ContextPresenter(ContextStoreClient(http))
            await presenter.mount()
            return presenter

    presenter = asyncio.run(_run())
    assert presenter.state.error == CATALOG_ERROR
    assert presenter.state.server_flags is None
    # Exactly one catalog attempt, no retry.
    assert sum(1 for r in backend.requests if r.url.path == "/api/demo-data") == 1
    assert render_view(presenter.state).startswith("Error")


def test_server_flags_failure_surfaces_error_panel() -> None:
    backend = FakeBackend(flags_status=404)

    async def _run():
        async with _http(backend) as http:
            presenter = ContextPresenter(ContextStoreClient(http))
            await presenter.mount()
            return presenter

    presenter = asyncio.run(_run())
    assert presenter.state.error == SERVER_FLAGS_ERROR
    assert SERVER_FLAGS_ERROR in render_view(presenter.state)


def test_stale_selection_response_does_not_overwrite_newer_one() -> None:
    # user-1 answers slowly, user-2 immediately.
    backend = FakeBackend(delays={"user-1": 0.05})

    async def _run():
        async with _http(backend) as http:
            presenter = ContextPresenter(ContextStoreClient(http))
            presenter.state.catalog = await presenter._api.fetch_catalog()
            slow = asyncio.create_task(presenter.select("user-1", "org-megabank"))
            await asyncio.sleep(0)
            await presenter.select("user-2", "org-megabank")
            await slow
            return presenter

    presenter = asyncio.run(_run())
    assert presenter.state.selected_user == "user-2"
    assert presenter.state.server_flags.context["user"]["id"] == "user-2"
    assert all(presenter.state.server_flags.flags.values())


def test_missing_client_key_enters_fallback_mode() -> None:
    backend = FakeBackend(client_key=None)

    async def _run():
        async with _http(backend) as http:
            presenter = await bootstrap_presenter(ContextStoreClient(http), http, client_sdk_base_url=CLIENT_SDK)
            await presenter.mount()
            await presenter.select("user-3", "org-smallcorp")
            return presenter

    presenter = asyncio.run(_run())
    state = presenter.state
    assert state.fallback_mode
    assert state.fallback.title == "Initialization Error"
    assert isinstance(presenter.client_provider, FallbackClientProvider)
    assert state.client_flags == {key: False for key in FLAG_KEYS}
    assert state.client_connected is False
    assert backend.evalx_calls() == 0

    view = render_view(state)
    assert "Fallback mode - LaunchDarkly unavailable" in view
    assert "Source: Fallback values" in view


def test_client_provider_follows_selection_with_redacted_context() -> None:
    backend = FakeBackend()

    async def _run():
        async with _http(backend) as http:
            presenter = await bootstrap_presenter(ContextStoreClient(http), http, client_sdk_base_url=CLIENT_SDK)
            await presenter.mount()
            after_megabank = dict(presenter.state.client_flags)
            await presenter.select("user-3", "org-smallcorp")
            return presenter, after_megabank

    presenter, after_megabank = asyncio.run(_run())
    assert isinstance(presenter.client_provider, LaunchDarklyClientSideProvider)
    assert presenter.state.client_connected is True
    assert after_megabank == {key: True for key in FLAG_KEYS}
    assert presenter.state.client_flags == {key: False for key in FLAG_KEYS}

    # bootstrap (anonymous) + initial selection + reselection
    assert len(backend.client_contexts) == 3
    assert backend.client_contexts[0]["user"]["anonymous"] is True
    assert backend.client_contexts[-1]["user"] == {"key": "user-3", "name": "Bob Wilson", "role": "admin"}
    assert all("email" not in c["user"] for c in backend.client_contexts)
    assert all("/sdk/evalx/client-id-1/contexts/" in str(r.url) for r in backend.requests if r.url.host == "clientsdk.test")


def test_client_identify_failure_is_not_surfaced() -> None:
    backend = FakeBackend(evalx_status=500)

    async def _run():
        async with _http(backend) as http:
            presenter = await bootstrap_presenter(ContextStoreClient(http), http, client_sdk_base_url=CLIENT_SDK)
            await presenter.mount()
            return presenter

    presenter = asyncio.run(_run())
    assert presenter.state.error is None
    assert presenter.state.fallback_mode is False
    assert presenter.state.client_connected is False
    assert presenter.state.server_flags is not None


def test_reload_recovers_after_error() -> None:
    backend = FakeBackend(catalog_status=503)

    async def _run():
        async with _http(backend) as http:
            presenter = ContextPresenter(ContextStoreClient(http))
            await presenter.mount()
            assert presenter.state.error == CATALOG_ERROR
            backend.catalog_status = 200
            await presenter.reload()
            return presenter

    presenter = asyncio.run(_run())
    assert presenter.state.error is None
    assert presenter.state.server_flags is not None


def test_render_boundary_hides_details_outside_development() -> None:
    presenter = ContextPresenter(ContextStoreClient(httpx.AsyncClient(base_url=API)))
    presenter.state.catalog = object()  # type: ignore[assignment]

    view = render_safely(presenter.state)
    assert "Something went wrong" in view
    assert "[r] reload" in view
    assert "AttributeError" not in view

    dev_view = render_safely(presenter.state, dev_mode=True)
    assert "Error Details (Development Mode)" in dev_view
    assert "AttributeError" in dev_view


def _fresh(response: httpx.Response) -> httpx.Response:
    return httpx.Response(response.status_code, headers=response.headers, content=response.content)


def _scripted(routes: Dict[str, httpx.Response], seen: Optional[List[httpx.Request]] = None) -> httpx.AsyncClient:
    async def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        for prefix, response in routes.items():
            if request.url.path.startswith(prefix):
                return _fresh(response)
        return httpx.Response(404, json={"error": "not found"})

    return httpx.AsyncClient(base_url=API, transport=httpx.MockTransport(handler))


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(502, json=["bad gateway"]),
        httpx.Response(502, text="<html>bad gateway</html>"),
        httpx.Response(200, json={"users": [{"name": "no id"}]}),
        httpx.Response(200, json={"users": "nope"}),
    ],
)
def test_mount_reports_catalog_error_for_unexpected_bodies(response: httpx.Response) -> None:
    async def _run():
        async with _scripted({"/api/demo-data": response}) as http:
            presenter = ContextPresenter(ContextStoreClient(http))
            await presenter.mount()
            return presenter

    presenter = asyncio.run(_run())
    assert presenter.state.error == CATALOG_ERROR
    assert presenter.state.catalog is None


def test_malformed_flag_set_becomes_server_flags_error() -> None:
    routes = {
        "/api/demo-data": httpx.Response(200, json=list_catalog()),
        "/api/flags/": httpx.Response(200, json={"flags": ["show-new-dashboard"]}),
    }

    async def _run():
        async with _scripted(routes) as http:
            with pytest.raises(UpstreamFetchError, match="malformed flag set"):
                await ContextStoreClient(http).fetch_flags("user-1", "org-megabank")
            presenter = ContextPresenter(ContextStoreClient(http))
            await presenter.mount()
            return presenter

    presenter = asyncio.run(_run())
    assert presenter.state.error == SERVER_FLAGS_ERROR
    assert presenter.state.server_flags is None


@pytest.mark.parametrize(
    "evalx",
    [
        httpx.Response(200, text="<html>captive portal</html>"),
        httpx.Response(200, json=["show-new-dashboard"]),
    ],
)
def test_unusable_client_evaluation_body_keeps_presenter_running(evalx: httpx.Response) -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "clientsdk.test":
            return _fresh(evalx)
        if request.url.path == "/api/client-sdk-key":
            return httpx.Response(200, json={"clientSdkKey": "client-id-1"})
        if request.url.path == "/api/demo-data":
            return httpx.Response(200, json=list_catalog())
        return httpx.Response(200, json=_flags_payload("user-1", "org-megabank"))

    async def _run():
        async with httpx.AsyncClient(base_url=API, transport=httpx.MockTransport(handler)) as http:
            presenter = await bootstrap_presenter(ContextStoreClient(http), http, client_sdk_base_url=CLIENT_SDK)
            await presenter.mount()
            return presenter

    presenter = asyncio.run(_run())
    assert isinstance(presenter.client_provider, LaunchDarklyClientSideProvider)
    assert presenter.state.fallback_mode is False
    assert presenter.state.client_connected is False
    assert presenter.state.error is None
    assert presenter.state.server_flags is not None


def test_encoded_context_is_unpadded_base64url() -> None:
    # {"a":1} is 7 bytes, which standard base64 pads with "==".
    context = {"a": 1}
    encoded = encode_context(context)
    assert "=" not in encoded
    assert json.loads(base64.urlsafe_b64decode(encoded + "==")) == context

    for user_id in ("user-1", "user-22", "user-333"):
        assert "=" not in encode_context({"kind": "user", "key": user_id})


def test_selection_ids_are_sent_as_single_path_segments() -> None:
    seen: List[httpx.Request] = []
    routes = {"/api/flags/": httpx.Response(404, json={"error": "User or organization not found"})}

    async def _run():
        async with _scripted(routes, seen) as http:
            api = ContextStoreClient(http)
            for user_id, org_id in (("../health", "org-megabank"), ("..", "org/1"), ("user 1", "org?x=1")):
                with pytest.raises(UpstreamFetchError):
                    await api.fetch_flags(user_id, org_id)

    asyncio.run(_run())
    assert [r.url.raw_path for r in seen] == [
        b"/api/flags/..%2Fhealth/org-megabank",
        b"/api/flags/%2E%2E/org%2F1",
        b"/api/flags/user%201/org%3Fx%3D1",
    ]
    assert all(r.url.path.startswith("/api/flags/") for r in seen)
    assert not any(r.url.query for r in seen)
