"""
Error taxonomy shared by the Context Store and the Context Presenter.

Nothing here is retried automatically: every failure either degrades to a
documented default or is shown to the operator.
"""

from __future__ import annotations

from typing import Optional


class FinflagsError(Exception):
    """Base class for all application errors."""


class NotFoundError(FinflagsError):
    """Unknown identity or tenant (user-correctable, HTTP 404)."""

    def __init__(self, message: str = "User or organization not found") -> None:
        super().__init__(message)
        self.message = message


class ProviderUnavailableError(FinflagsError):
    """No flag provider is configured or it never initialized."""


class ProviderEvaluationError(FinflagsError):
    """A provider evaluation call raised, or returned a non-boolean value."""

    def __init__(self, flag_key: str, cause: BaseException) -> None:
        super().__init__(f"Evaluation of {flag_key!r} failed: {cause}")
        self.flag_key = flag_key
        self.cause = cause


class UpstreamFetchError(FinflagsError):
    """A Presenter HTTP call to the Context Store failed."""

    def __init__(self, message: str, *, url: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.status_code = status_code


class RenderError(FinflagsError):
    """Uncaught exception while rendering the Presenter view."""

    def __init__(self, cause: BaseException, *, details: str = "") -> None:
        super().__init__(str(cause))
        self.cause = cause
        self.details = details


class ClientEvaluationError(FinflagsError):
    """The embedded client-side provider could not evaluate a context."""
