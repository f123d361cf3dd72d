"""Deliberation Protocols - Type interfaces for dependency injection"""

from deliberation.protocols.metrics import MetricsCollector, NullMetrics
from deliberation.protocols.semantic import (
    VALUES_PENDING_SENTINEL,
    NullSemanticAnalyzer,
    SemanticAnalyzer,
    is_degraded_values,
)
from deliberation.protocols.store import (
    AnalysisCache,
    CommonGroundStore,
    InMemoryAnalysisCache,
    latest_analysis_cache_key,
)

__all__ = [
    "MetricsCollector",
    "NullMetrics",
    "SemanticAnalyzer",
    "NullSemanticAnalyzer",
    "VALUES_PENDING_SENTINEL",
    "is_degraded_values",
    "CommonGroundStore",
    "AnalysisCache",
    "InMemoryAnalysisCache",
    "latest_analysis_cache_key",
]
