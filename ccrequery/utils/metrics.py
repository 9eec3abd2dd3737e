"""Prometheus metrics for requery scheduling.

Each collector owns its own registry so several supervisors (and tests)
can record side by side without clashing on the global default registry.
"""

from __future__ import annotations

from typing import Any

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest


class RequeryMetrics:
    """Counts requery outcomes per query mechanism."""

    def __init__(self, registry: CollectorRegistry | None = None):
        """Initialize metrics collector.

        Args:
            registry: Registry to register into. A private one is created if omitted.

        """
        self.registry = registry or CollectorRegistry()

        self.prom_queries = Counter(
            "ccrequery_queries_total",
            "Requery attempts by query type and outcome",
            ["query_type", "outcome"],
            registry=self.registry,
        )
        self.prom_dht_in_flight = Gauge(
            "ccrequery_dht_lookups_in_flight",
            "DHT alternate-location lookups currently outstanding",
            registry=self.registry,
        )

    def record_outcome(self, query_type: str, outcome: str) -> None:
        """Count one requery outcome."""
        self.prom_queries.labels(query_type=query_type, outcome=outcome).inc()

    def dht_lookup_started(self) -> None:
        self.prom_dht_in_flight.inc()

    def dht_lookup_ended(self) -> None:
        self.prom_dht_in_flight.dec()

    def get_count(self, query_type: str, outcome: str) -> float:
        """Return the current count for a query type and outcome."""
        value = self.registry.get_sample_value(
            "ccrequery_queries_total",
            {"query_type": query_type, "outcome": outcome},
        )
        return value or 0.0

    def get_metrics_summary(self) -> dict[str, Any]:
        """Return all recorded counts keyed by ``query_type.outcome``."""
        summary: dict[str, Any] = {}
        for metric in self.registry.collect():
            for sample in metric.samples:
                if sample.name == "ccrequery_queries_total":
                    key = f"{sample.labels['query_type']}.{sample.labels['outcome']}"
                    summary[key] = sample.value
                elif sample.name == "ccrequery_dht_lookups_in_flight":
                    summary["dht_lookups_in_flight"] = sample.value
        return summary

    def export_prometheus(self) -> str:
        """Export metrics in the Prometheus text exposition format."""
        return generate_latest(self.registry).decode("utf-8")
