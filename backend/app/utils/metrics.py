"""Prometheus metrics for AI query templates and model calls."""

from prometheus_client import Counter, Histogram

# Template execution metrics
ai_query_latency_ms = Histogram(
    "ai_query_latency_ms",
    "Query template execution latency in milliseconds",
    ["template", "outcome"],
    buckets=[5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000],
)

ai_query_errors_total = Counter(
    "ai_query_errors_total",
    "Total query template errors",
    ["template", "kind"],
)

ai_security_denials_total = Counter(
    "ai_security_denials_total",
    "Template calls denied for scope or tenant reasons",
    ["template", "reason"],
)

# Text-generation metrics
ai_llm_calls_total = Counter(
    "ai_llm_calls_total",
    "Text-generation calls made by the chat assistant",
    ["stage", "outcome"],
)


class PrometheusQueryMetrics:
    """Prometheus-based query metrics implementation."""

    def record_latency(self, template: str, outcome: str, latency_ms: float) -> None:
        """Record template execution latency."""
        ai_query_latency_ms.labels(template=template, outcome=outcome).observe(latency_ms)

    def inc_error(self, template: str, kind: str) -> None:
        """Increment error counter."""
        ai_query_errors_total.labels(template=template, kind=kind).inc()

    def inc_security_denial(self, template: str, reason: str) -> None:
        """Increment denied-access counter."""
        ai_security_denials_total.labels(template=template, reason=reason).inc()


def record_llm_call(stage: str, outcome: str) -> None:
    """Count one text-generation call by pipeline stage and outcome."""
    ai_llm_calls_total.labels(stage=stage, outcome=outcome).inc()
