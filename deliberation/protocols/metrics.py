"""Metrics Protocol - Interface for metrics collection without concrete dependency

This protocol enables dependency injection of metrics throughout the engine,
allowing components to be tested and run without the server module.
"""

from typing import Protocol, Any, ContextManager
from contextlib import contextmanager


class LabeledCounter(Protocol):
    def labels(self, **kwargs: Any) -> "LabeledCounter": ...
    def inc(self, amount: float = 1) -> None: ...


class LabeledHistogram(Protocol):
    def labels(self, **kwargs: Any) -> "LabeledHistogram": ...
    def observe(self, value: float) -> None: ...
    def time(self) -> ContextManager: ...


class MetricsCollector(Protocol):
    """Unified metrics interface for all engine components

    Used by:
    - deliberation/detector.py - Analysis runs and semantic calls
    - deliberation/trigger.py - Recompute decisions
    - deliberation/background.py - Detached task outcomes
    """
    analysis_runs: LabeledCounter
    analysis_duration: LabeledHistogram
    recompute_triggers: LabeledCounter
    background_tasks: LabeledCounter

    def record_error(self, component: str, error: Exception) -> None: ...

    def record_semantic_call(
        self,
        provider: str,
        capability: str,
        duration_seconds: float,
        status: str = "success"
    ) -> None: ...


class _NullCounter:
    def labels(self, **kwargs: Any) -> "_NullCounter":
        return self

    def inc(self, amount: float = 1) -> None:
        pass


class _NullHistogram:
    def labels(self, **kwargs: Any) -> "_NullHistogram":
        return self

    def observe(self, value: float) -> None:
        pass

    @contextmanager
    def time(self):
        yield


class NullMetrics:
    """No-op metrics for testing or standalone use"""

    def __init__(self):
        self.analysis_runs = _NullCounter()
        self.analysis_duration = _NullHistogram()
        self.recompute_triggers = _NullCounter()
        self.background_tasks = _NullCounter()

    def record_error(self, component: str, error: Exception) -> None:
        pass

    def record_semantic_call(
        self,
        provider: str,
        capability: str,
        duration_seconds: float,
        status: str = "success"
    ) -> None:
        pass
