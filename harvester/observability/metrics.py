"""
Prometheus metrics for the harvest worker.

Defines metrics for:
- Harvest pass outcomes
- Items stored (inserted, duplicate, skipped)
- Error rates by kind
- Fetch latency

The worker exits after a single pass, so there is no scrape endpoint.
Metrics are pushed to a Pushgateway at the end of the pass when one is
configured.
"""

import logging

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    push_to_gateway,
)

from harvester.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for fetch latency histograms (in seconds)
LATENCY_BUCKETS = (0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the harvest pipeline.

    Usage:
        metrics = MetricsCollector()
        metrics.record_store(inserted=3, duplicates=0, skipped=1)
        metrics.push()
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()

        self.passes = Counter(
            "timeline_harvester_passes_total",
            "Total harvest passes by outcome",
            ["outcome"],  # outcome: no_work, completed, fatal
            registry=self.registry,
        )

        self.items_stored = Counter(
            "timeline_harvester_items_total",
            "Items handled by the persistence writer",
            ["result"],  # result: inserted, duplicate, skipped
            registry=self.registry,
        )

        self.errors = Counter(
            "timeline_harvester_errors_total",
            "Fatal harvest errors by kind",
            ["kind"],
            registry=self.registry,
        )

        self.transitions = Counter(
            "timeline_harvester_transitions_total",
            "Pagination state transitions",
            ["mode", "action"],  # action: continue, caught_up
            registry=self.registry,
        )

        self.fetch_latency = Histogram(
            "timeline_harvester_fetch_latency_seconds",
            "Timeline page fetch latency",
            buckets=LATENCY_BUCKETS,
            registry=self.registry,
        )

    def record_pass(self, outcome: str) -> None:
        """Record the terminal outcome of a harvest pass."""
        self.passes.labels(outcome=outcome).inc()

    def record_store(self, inserted: int, duplicates: int, skipped: int) -> None:
        """
        Record persistence writer counts for one page.

        Args:
            inserted: Newly inserted items
            duplicates: Items already present
            skipped: Drafts without a key
        """
        if inserted:
            self.items_stored.labels(result="inserted").inc(inserted)
        if duplicates:
            self.items_stored.labels(result="duplicate").inc(duplicates)
        if skipped:
            self.items_stored.labels(result="skipped").inc(skipped)

    def record_error(self, kind: str) -> None:
        """Record a fatal error by kind."""
        self.errors.labels(kind=kind).inc()

    def record_transition(self, mode: str, action: str) -> None:
        """Record a pagination state transition."""
        self.transitions.labels(mode=mode, action=action).inc()

    def push(self) -> bool:
        """
        Push collected metrics to the configured Pushgateway.

        Returns:
            True if metrics were pushed
        """
        settings = get_settings()
        if not settings.metrics_push_enabled:
            return False

        try:
            push_to_gateway(
                settings.metrics_pushgateway_url,
                job=settings.metrics_job_name,
                registry=self.registry,
            )
            return True
        except OSError as e:
            logger.warning(f"Failed to push metrics: {e}")
            return False


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
