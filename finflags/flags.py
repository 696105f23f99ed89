"""
The fixed set of flags this product evaluates, with their defaults and
the provenance tags attached to every FlagSet.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict

SHOW_NEW_DASHBOARD = "show-new-dashboard"
ENABLE_FRAUD_DETECTION = "enable-fraud-detection"
ADVANCED_ANALYTICS = "advanced-analytics"

FLAG_KEYS: tuple[str, ...] = (SHOW_NEW_DASHBOARD, ENABLE_FRAUD_DETECTION, ADVANCED_ANALYTICS)

# Values used whenever the provider is unconfigured, unreachable or errors.
FLAG_DEFAULTS: Dict[str, bool] = {key: False for key in FLAG_KEYS}


class EvaluationSource(str, Enum):
    LAUNCHDARKLY = "launchdarkly"
    FALLBACK = "fallback"
    FALLBACK_ERROR = "fallback_error"


def default_flags() -> Dict[str, bool]:
    """Fresh copy of the defaults (callers may mutate it)."""
    return dict(FLAG_DEFAULTS)
