"""
Shared metrics configuration for the authorization engine.
"""

from typing import Dict, Any, Optional
import threading

from prometheus_client import Counter, Histogram, Info, CollectorRegistry, REGISTRY


class MetricsCollector:
    """Centralized metrics collector for the authorization engine."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else REGISTRY
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        # Service info
        self._metrics["service_info"] = Info(
            "authz_service",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # Error metrics
        self._metrics["errors_total"] = Counter(
            "authz_errors_total",
            "Total authorization errors",
            ["error_type", "service"],
            registry=self.registry
        )

        self._setup_authz_metrics()

    def _setup_authz_metrics(self):
        """Set up decision, compilation and cache metrics."""
        self._metrics["decisions_total"] = Counter(
            "authz_decisions_total",
            "Total authorization decisions",
            ["subject_type", "action", "decision"],
            registry=self.registry
        )

        self._metrics["evaluation_duration_seconds"] = Histogram(
            "authz_evaluation_duration_seconds",
            "Authorization evaluation duration in seconds",
            ["subject_type"],
            registry=self.registry
        )

        self._metrics["rule_compilations_total"] = Counter(
            "authz_rule_compilations_total",
            "Total role compilations",
            ["role"],
            registry=self.registry
        )

        self._metrics["rule_cache_total"] = Counter(
            "authz_rule_cache_total",
            "Compiled rule cache lookups",
            ["result"],
            registry=self.registry
        )

    def record_decision(self, subject_type: str, action: str, decision: str, duration: float):
        """Record an authorization decision."""
        self._metrics["decisions_total"].labels(
            subject_type=subject_type,
            action=action,
            decision=decision
        ).inc()

        self._metrics["evaluation_duration_seconds"].labels(
            subject_type=subject_type
        ).observe(duration)

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def record_compilation(self, role: str):
        """Record a role compilation."""
        self._metrics["rule_compilations_total"].labels(role=role).inc()

    def record_cache_lookup(self, hit: bool):
        """Record a compiled rule cache lookup."""
        self._metrics["rule_cache_total"].labels(result="hit" if hit else "miss").inc()


_default_collector: Optional[MetricsCollector] = None
_default_lock = threading.Lock()


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service.

    Without an explicit registry the collector is bound to the global
    prometheus registry, where each metric may be registered only once,
    so a single collector is shared for the whole process.
    """
    global _default_collector
    if registry is not None:
        return MetricsCollector(service_name, registry)

    with _default_lock:
        if _default_collector is None:
            _default_collector = MetricsCollector(service_name)
        return _default_collector
