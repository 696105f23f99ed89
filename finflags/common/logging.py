"""
Structured JSON logging + request IDs (stdlib logging).

Goals:
- One JSON object per log line (stdout)
- Consistent core fields across both processes:
  - service, env, version
  - request_id, event_type, severity
- For the Context Store (FastAPI/Starlette), middleware that:
  - reads/propagates X-Request-ID
  - binds request_id for the request lifetime
  - emits a single http.request log line per request
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator, Optional


_REQUEST_ID: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

_RESERVED_ATTRS: frozenset[str] = frozenset(
    {
        # logging.LogRecord built-ins
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        # our injected keys
        "service",
        "env",
        "version",
        "request_id",
        "event_type",
        "severity",
        "message",
        "timestamp",
    }
)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _clean_text(v: Any, *, max_len: int = 2000) -> str:
    s = "" if v is None else str(v)
    s = s.replace("\n", " ").replace("\r", " ").strip()
    if len(s) > max_len:
        s = s[: max_len - 1] + "…"
    return s


def _env_any(*names: str, default: str = "unknown", max_len: int = 256) -> str:
    for name in names:
        v = os.getenv(name)
        if v is None:
            continue
        s = str(v).strip()
        if s:
            return _clean_text(s, max_len=max_len)
    return default


def _normalize_severity(level: str | int | None) -> str:
    if isinstance(level, int):
        return _normalize_severity(str(logging.getLevelName(level)))
    s = _clean_text(level or "INFO", max_len=16).upper()
    if s in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        return s
    if s == "WARN":
        return "WARNING"
    if s == "FATAL":
        return "CRITICAL"
    return "INFO"


def default_service_name() -> str:
    return _env_any("SERVICE_NAME", "SERVICE", default="finflags", max_len=128)


def default_env_name() -> str:
    return _env_any("APP_ENV", "ENVIRONMENT", "ENV", default="production", max_len=64)


def default_version() -> str:
    from finflags import __version__

    return _env_any("APP_VERSION", "VERSION", default=__version__, max_len=128)


def get_request_id() -> Optional[str]:
    rid = _REQUEST_ID.get()
    return _clean_text(rid, max_len=128) if rid else None


@contextmanager
def bind_request_id(*, request_id: str | None = None) -> Iterator[str]:
    rid = _clean_text(request_id or "", max_len=128) or uuid.uuid4().hex
    token = _REQUEST_ID.set(rid)
    try:
        yield rid
    finally:
        _REQUEST_ID.reset(token)


class JsonLogFormatter(logging.Formatter):
    def __init__(self, *, service: str | None = None, env: str | None = None, version: str | None = None) -> None:
        super().__init__()
        self._service = _clean_text(service or default_service_name(), max_len=128) or "unknown"
        self._env = _clean_text(env or default_env_name(), max_len=64) or "unknown"
        self._version = _clean_text(version or default_version(), max_len=128) or "unknown"

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (format required by logging)
        severity = _normalize_severity(getattr(record, "severity", None) or record.levelname)
        event_type = _clean_text(getattr(record, "event_type", None) or "", max_len=128) or "log"
        rid = _clean_text(getattr(record, "request_id", None) or get_request_id() or "", max_len=128) or None

        payload: dict[str, Any] = {
            "timestamp": utc_now_iso(),
            "severity": severity,
            "service": _clean_text(getattr(record, "service", None) or self._service, max_len=128),
            "env": self._env,
            "version": self._version,
            "request_id": rid,
            "event_type": event_type,
            "message": _clean_text(record.getMessage(), max_len=4000),
            "logger": _clean_text(record.name, max_len=256),
        }

        if record.exc_info:
            payload["exception"] = "".join(traceback.format_exception(*record.exc_info))[-8000:]
        elif record.stack_info:
            payload["stack"] = _clean_text(record.stack_info, max_len=8000)

        # Include any extra fields provided via logger.*(..., extra={...})
        for k, v in record.__dict__.items():
            if k in _RESERVED_ATTRS or k.startswith("_"):
                continue
            payload[str(k)] = v

        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)


def _route_uvicorn_handlers() -> None:
    # Ensure uvicorn loggers flow through root and use our handler.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers = []
        lg.propagate = True


def init_structured_logging(
    *,
    service: str | None = None,
    env: str | None = None,
    version: str | None = None,
    level: str | int | None = None,
) -> None:
    """
    Configure stdlib logging to emit JSON lines to stdout.

    Safe to call multiple times (last call wins).
    """
    lvl = level or os.getenv("LOG_LEVEL", "INFO").upper()
    root = logging.getLogger()
    root.setLevel(lvl)

    root.handlers = []
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(lvl)
    handler.setFormatter(JsonLogFormatter(service=service, env=env, version=version))
    root.addHandler(handler)

    logging.captureWarnings(True)
    _route_uvicorn_handlers()


def log_event(
    logger: logging.Logger,
    event_type: str,
    *,
    severity: str = "INFO",
    message: str | None = None,
    **fields: Any,
) -> None:
    """
    Convenience wrapper for semantic events with stable `event_type`.
    """
    lvl = getattr(logging, str(severity).upper(), logging.INFO)
    logger.log(
        lvl,
        message or event_type,
        extra={"event_type": _clean_text(event_type, max_len=128), **fields},
    )


def install_fastapi_request_id_middleware(app: Any, *, service: str | None = None) -> None:
    """
    FastAPI middleware:
    - Read/propagate X-Request-ID (X-Correlation-Id accepted as fallback)
    - Bind request_id context for the request lifetime
    - Emit one http.request JSON log line per request
    """
    from starlette.requests import Request

    http_logger = logging.getLogger("http")
    svc = _clean_text(service or default_service_name(), max_len=128) or "unknown"

    @app.middleware("http")
    async def _request_id_mw(request: Request, call_next):
        incoming = request.headers.get("x-request-id") or request.headers.get("x-correlation-id") or None
        start = time.perf_counter()
        status_code: int | None = None
        with bind_request_id(request_id=incoming) as bound:
            try:
                resp = await call_next(request)
                status_code = int(getattr(resp, "status_code", 200))
            except Exception:
                status_code = 500
                raise
            finally:
                dur_ms = int(max(0.0, (time.perf_counter() - start) * 1000.0))
                log_event(
                    http_logger,
                    "http.request",
                    service=svc,
                    method=request.method,
                    path=str(request.url.path),
                    status_code=status_code,
                    duration_ms=dur_ms,
                )

        resp.headers["X-Request-ID"] = bound
        return resp
