"""
Context Presenter console.

Usage:
  python -m finflags.presenter [--api-url URL] [--user ID] [--org ID] [--interactive] [--dev]

Interactive commands:
  u <user-id>   select a user
  o <org-id>    select an organization
  r             reload (re-fetch catalog and flags)
  q             quit
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional

import httpx

from finflags.common.logging import init_structured_logging
from finflags.presenter.api_client import ContextStoreClient
from finflags.presenter.config import PresenterSettings, get_presenter_settings
from finflags.presenter.presenter import ContextPresenter, bootstrap_presenter
from finflags.presenter.render import render_safely
from finflags.presenter.state import DEFAULT_ORG_ID, DEFAULT_USER_ID

logger = logging.getLogger(__name__)

PROMPT = "[u <user-id> | o <org-id> | r | q] > "


async def _interactive(presenter: ContextPresenter, *, dev_mode: bool) -> None:
    while True:
        try:
            line = await asyncio.to_thread(input, PROMPT)
        except EOFError:
            return
        parts = line.strip().split(maxsplit=1)
        if not parts:
            continue
        cmd, arg = parts[0].lower(), (parts[1].strip() if len(parts) > 1 else "")

        if cmd == "q":
            return
        if cmd == "r":
            await presenter.reload()
        elif cmd == "u" and arg:
            await presenter.select(arg, presenter.state.selected_org)
        elif cmd == "o" and arg:
            await presenter.select(presenter.state.selected_user, arg)
        else:
            print(f"Unknown command: {line.strip()}")
            continue
        print(render_safely(presenter.state, dev_mode=dev_mode))


async def run(settings: PresenterSettings, *, user_id: str, org_id: str, interactive: bool, dev_mode: bool) -> int:
    async with httpx.AsyncClient(base_url=settings.API_URL, timeout=settings.TIMEOUT_SECONDS) as http:
        api = ContextStoreClient(http)
        presenter = await bootstrap_presenter(
            api,
            http,
            client_sdk_base_url=settings.CLIENT_SDK_BASE_URL,
            user_id=user_id,
            org_id=org_id,
        )
        try:
            await presenter.mount()
            print(render_safely(presenter.state, dev_mode=dev_mode))
            if interactive:
                await _interactive(presenter, dev_mode=dev_mode)
        finally:
            await presenter.client_provider.close()
        return 1 if presenter.state.error else 0


def main(argv: Optional[list[str]] = None) -> int:
    settings = get_presenter_settings()

    parser = argparse.ArgumentParser(description="Feature flag Context Presenter")
    parser.add_argument("--api-url", default=settings.API_URL, help="Context Store base URL")
    parser.add_argument("--user", default=DEFAULT_USER_ID, help="Initial user id")
    parser.add_argument("--org", default=DEFAULT_ORG_ID, help="Initial organization id")
    parser.add_argument("--interactive", "-i", action="store_true", help="Keep prompting for selections")
    parser.add_argument("--dev", action="store_true", help="Show raw errors in the render boundary")
    args = parser.parse_args(argv)

    init_structured_logging(service="context-presenter", env=settings.APP_ENV, level=settings.LOG_LEVEL)
    settings = settings.model_copy(update={"API_URL": args.api_url})

    return asyncio.run(
        run(
            settings,
            user_id=args.user,
            org_id=args.org,
            interactive=args.interactive,
            dev_mode=args.dev or settings.is_development,
        )
    )


if __name__ == "__main__":
    raise SystemExit(main())
