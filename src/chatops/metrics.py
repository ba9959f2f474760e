"""Prometheus metrics for dispatcher observability.

Metrics Defined:
- chatops_dispatch_total: Counter of dispatches by event name and result
- chatops_handler_invocations_total: Counter of handler outcomes per plugin
- chatops_handler_duration_seconds: Histogram of per-category fan-out time

A dispatch is a short-lived process, so metrics are pushed to a Prometheus
Pushgateway at the end of the run when a gateway URL is configured.
"""

from typing import Optional

import structlog
from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    push_to_gateway,
)

logger = structlog.get_logger()

PUSHGATEWAY_JOB = "chatops-dispatcher"

# Handler fan-outs are dominated by GitHub API round trips.
DEFAULT_DURATION_BUCKETS = (
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    30.0,
    60.0,
)


class DispatchMetrics:
    """Container for all dispatcher Prometheus metrics.

    Metrics:
        dispatch_total: Counter of dispatches.
            Labels: event_name, result (success/failure/ignored)

        handler_invocations_total: Counter of handler invocations.
            Labels: category, plugin, result (success/failure/error)

        handler_duration_seconds: Histogram of fan-out wall-clock time.
            Labels: category

    Attributes:
        registry: The Prometheus registry for these metrics.

    Example:
        >>> metrics = DispatchMetrics(registry=CollectorRegistry())
        >>> metrics.record_dispatch("issue_comment", "success")
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize dispatcher metrics.

        Args:
            registry: Optional Prometheus registry. If None, uses the
                      default REGISTRY. Pass a custom registry for testing.
        """
        self.registry = registry or REGISTRY

        self.dispatch_total = Counter(
            "chatops_dispatch_total",
            "Total number of events dispatched",
            labelnames=["event_name", "result"],
            registry=self.registry,
        )

        self.handler_invocations_total = Counter(
            "chatops_handler_invocations_total",
            "Total number of plugin handler invocations",
            labelnames=["category", "plugin", "result"],
            registry=self.registry,
        )

        self.handler_duration_seconds = Histogram(
            "chatops_handler_duration_seconds",
            "Wall-clock time to run all handlers of a category",
            labelnames=["category"],
            buckets=DEFAULT_DURATION_BUCKETS,
            registry=self.registry,
        )

    def record_dispatch(self, event_name: str, result: str) -> None:
        self.dispatch_total.labels(event_name=event_name, result=result).inc()

    def record_handler(self, category: str, plugin: str, result: str) -> None:
        """Record one handler outcome.

        Args:
            category: Handler category value.
            plugin: Plugin name.
            result: "success" for a successful result, "failure" for a
                    returned failed result, "error" for a raised exception.
        """
        self.handler_invocations_total.labels(
            category=category,
            plugin=plugin,
            result=result,
        ).inc()

    def record_fanout_duration(self, category: str, duration_seconds: float) -> None:
        self.handler_duration_seconds.labels(category=category).observe(
            duration_seconds
        )

    def push(self, gateway_url: str) -> bool:
        """Push all metrics of this registry to a Pushgateway.

        Failures are logged and reported through the return value; they
        never fail the dispatch.

        Returns:
            True if the push succeeded.
        """
        try:
            push_to_gateway(gateway_url, job=PUSHGATEWAY_JOB, registry=self.registry)
            logger.debug("Metrics pushed to gateway", gateway_url=gateway_url)
            return True
        except Exception as e:
            logger.warning("Failed to push metrics", gateway_url=gateway_url, error=str(e))
            return False


_default_metrics: Optional[DispatchMetrics] = None


def get_metrics(registry: Optional[CollectorRegistry] = None) -> DispatchMetrics:
    """Get or create the dispatcher metrics instance.

    Args:
        registry: Optional Prometheus registry. If None, returns the
                  process-wide instance bound to the default registry.

    Returns:
        DispatchMetrics: The metrics instance.
    """
    global _default_metrics

    if registry is not None:
        return DispatchMetrics(registry=registry)

    if _default_metrics is None:
        _default_metrics = DispatchMetrics()

    return _default_metrics
