from __future__ import annotations

import io
import json
import logging
from typing import Any, Callable, Dict, Iterator, List

import pytest

from finflags.common.logging import JsonLogFormatter
from finflags.server.config import Settings


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    def _make(**overrides: Any) -> Settings:
        values: Dict[str, Any] = {
            "LAUNCHDARKLY_SDK_KEY": None,
            "LAUNCHDARKLY_CLIENT_SDK_KEY": None,
            "LD_START_WAIT_SECONDS": 0.1,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def json_logs() -> Iterator[Callable[[], List[dict]]]:
    """
    Attach a JSON-formatted handler to the root logger.

    Yields a reader returning every JSON log line emitted so far.
    """
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonLogFormatter(service="pytest", env="test", version="test"))
    root = logging.getLogger()
    saved_level = root.level
    root.addHandler(handler)
    root.setLevel(logging.INFO)

    def _read() -> List[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line.startswith("{")]

    try:
        yield _read
    finally:
        root.removeHandler(handler)
        root.setLevel(saved_level)
