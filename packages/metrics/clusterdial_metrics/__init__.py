"""Cluster metric models and metric sources for clusterdial."""

from .insights import InsightsSource, parse_insights_payload
from .models import ClusterSnapshot, FetchFailure, FetchResult, FetchSuccess, IndicatorRole, Metric, ratio_to_percent
try:  # pragma: no cover - optional at import time for minimal test environments
    from .local import LocalSource
except Exception:  # pragma: no cover
    LocalSource = None  # type: ignore[assignment]

__all__ = [
    "ClusterSnapshot",
    "FetchFailure",
    "FetchResult",
    "FetchSuccess",
    "IndicatorRole",
    "InsightsSource",
    "Metric",
    "parse_insights_payload",
    "ratio_to_percent",
]

if LocalSource is not None:
    __all__.append("LocalSource")
