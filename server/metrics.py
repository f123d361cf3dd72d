"""
Prometheus Metrics Module

Provides instrumentation for the analytics engine and its API:
- Analysis passes (pattern-only vs semantically enhanced)
- Semantic collaborator calls
- Recompute decisions and background task outcomes
- API requests
- Error tracking

Usage:
    from server.metrics import metrics
    metrics.analysis_runs.labels(mode="enhanced").inc()
    metrics.record_semantic_call("gemini", "cluster_texts", 1.2)
"""

from prometheus_client import Counter, Histogram, generate_latest, REGISTRY


class DeliberationMetrics:
    """Centralized metrics for the deliberation engine and API

    Satisfies deliberation.protocols.MetricsCollector.
    """

    def __init__(self):
        # Analysis metrics
        self.analysis_runs = Counter(
            'deliberation_analysis_runs_total',
            'Total common ground analysis passes',
            ['mode']  # pattern/enhanced
        )

        self.analysis_duration = Histogram(
            'deliberation_analysis_duration_seconds',
            'Common ground analysis duration',
            ['mode'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30, 60]
        )

        # Semantic collaborator metrics
        self.semantic_calls = Counter(
            'deliberation_semantic_calls_total',
            'Total semantic analyzer calls',
            ['provider', 'capability', 'status']  # status: success/error/timeout
        )

        self.semantic_call_duration = Histogram(
            'deliberation_semantic_call_duration_seconds',
            'Semantic analyzer call duration',
            ['provider', 'capability'],
            buckets=[0.1, 0.5, 1, 2, 5, 10, 20, 30]
        )

        # Scheduling metrics
        self.recompute_triggers = Counter(
            'deliberation_recompute_decisions_total',
            'Recompute decisions by reason',
            ['reason']  # cold_start/response_delta/elapsed_time/fresh/cold_start_pending/in_flight
        )

        self.background_tasks = Counter(
            'deliberation_background_tasks_total',
            'Background task outcomes',
            ['status']  # success/error/cancelled
        )

        # API metrics
        self.api_requests = Counter(
            'deliberation_api_requests_total',
            'Total API requests',
            ['endpoint', 'method', 'status_code']
        )

        self.api_request_duration = Histogram(
            'deliberation_api_request_duration_seconds',
            'API request duration',
            ['endpoint', 'method'],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
        )

        # Error metrics
        self.errors = Counter(
            'deliberation_errors_total',
            'Total errors by component and type',
            ['component', 'error_type']
        )

    def record_semantic_call(
        self,
        provider: str,
        capability: str,
        duration_seconds: float,
        status: str = "success"
    ):
        """Record one semantic analyzer call

        Args:
            provider: Analyzer name (gemini/local)
            capability: cluster_texts/identify_values/generate_clarification
            duration_seconds: Call duration
            status: success/error/timeout
        """
        self.semantic_calls.labels(
            provider=provider,
            capability=capability,
            status=status
        ).inc()

        self.semantic_call_duration.labels(
            provider=provider,
            capability=capability
        ).observe(duration_seconds)

    def record_error(self, component: str, error: Exception):
        """Record an error

        Args:
            component: Component name (detector/trigger/background/api)
            error: Exception instance
        """
        error_type = type(error).__name__
        self.errors.labels(component=component, error_type=error_type).inc()


# Global metrics instance
metrics = DeliberationMetrics()


def get_metrics_text() -> str:
    """Get Prometheus metrics in text format"""
    return generate_latest(REGISTRY).decode('utf-8')
