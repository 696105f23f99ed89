"""
Server-side flag evaluation (the Context Store).

Fallback policy is all-or-nothing: if any single evaluation raises, every
flag in the response reverts to its default and the provenance becomes
"fallback_error".
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from finflags.catalog import list_catalog, resolve
from finflags.common.errors import ProviderEvaluationError, ProviderUnavailableError
from finflags.common.logging import log_event, utc_now_iso
from finflags.context import ContextShape, build_context, public_context
from finflags.flags import FLAG_DEFAULTS, FLAG_KEYS, EvaluationSource, default_flags
from finflags.server.provider import FlagProvider

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("finflags.audit")


@dataclass(frozen=True)
class FlagEvaluation:
    flags: Dict[str, bool]
    context: Dict[str, Dict[str, str]]
    evaluation_source: EvaluationSource
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flags": dict(self.flags),
            "context": self.context,
            "evaluationSource": self.evaluation_source.value,
            "timestamp": self.timestamp,
        }


class ContextStore:
    """Resolves selections against the catalog and evaluates the known flags."""

    def __init__(self, provider: Optional[FlagProvider] = None, *, audit: logging.Logger = audit_logger) -> None:
        self._provider = provider
        self._audit = audit

    @property
    def provider_connected(self) -> bool:
        return self._provider is not None

    def list_catalog(self) -> Dict[str, List[Dict[str, str]]]:
        return list_catalog()

    def require_provider(self) -> FlagProvider:
        if self._provider is None:
            raise ProviderUnavailableError("No flag provider configured")
        return self._provider

    async def evaluate(self, identity_id: str, tenant_id: str) -> FlagEvaluation:
        """
        Evaluate all known flags for one (identity, tenant) selection.

        Raises NotFoundError for unknown ids. Provider problems never raise:
        they degrade to the default flag values.
        """
        identity, tenant = resolve(identity_id, tenant_id)
        response_context = public_context(identity, tenant)

        try:
            provider = self.require_provider()
        except ProviderUnavailableError:
            return FlagEvaluation(default_flags(), response_context, EvaluationSource.FALLBACK, utc_now_iso())

        context = build_context(identity, tenant, ContextShape.FULL)
        try:
            flags = await self._evaluate_all(provider, context)
        except ProviderEvaluationError as e:
            logger.error(f"Error evaluating flags: {e}", exc_info=e.cause)
            return FlagEvaluation(default_flags(), response_context, EvaluationSource.FALLBACK_ERROR, utc_now_iso())

        result = FlagEvaluation(flags, response_context, EvaluationSource.LAUNCHDARKLY, utc_now_iso())
        log_event(
            self._audit,
            "flag_evaluation",
            message="Server-side flag evaluation completed",
            action="flag_evaluation",
            user_id=identity.id,
            user_role=identity.role,
            organization_id=tenant.id,
            organization_tier=tenant.tier,
            flags=dict(result.flags),
            source=result.evaluation_source.value,
            evaluated_at=result.timestamp,
        )
        return result

    async def _evaluate_all(self, provider: FlagProvider, context: Mapping[str, Any]) -> Dict[str, bool]:
        # gather() propagates the first failure; remaining values are discarded.
        values = await asyncio.gather(*(self._evaluate_one(provider, key, context) for key in FLAG_KEYS))
        return dict(zip(FLAG_KEYS, values))

    @staticmethod
    async def _evaluate_one(provider: FlagProvider, flag_key: str, context: Mapping[str, Any]) -> bool:
        try:
            value = await asyncio.to_thread(provider.variation, flag_key, context, FLAG_DEFAULTS[flag_key])
        except Exception as e:  # noqa: BLE001
            raise ProviderEvaluationError(flag_key, e) from e
        if not isinstance(value, bool):
            raise ProviderEvaluationError(flag_key, TypeError(f"expected a boolean variation, got {value!r}"))
        return value
