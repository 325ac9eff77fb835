"""
Pipeline Metrics
================
Cumulative counters for the filtering pipeline and the reduction statistics
derived from them.

Counters live for the lifetime of the aggregator and are zeroed only by
``reset()``, which also clears the linked deduplication store. The same
events are exported as Prometheus counters on the aggregator's own
registry; those follow Prometheus semantics and are never reset.

Usage:
    aggregator = MetricsAggregator()
    aggregator.record_received(25)
    aggregator.record_duplicate()
    snapshot = aggregator.snapshot()
    print(snapshot.reduction_percentage)
"""

import logging
import math
import threading
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest

from .models import ProcessingMetrics

logger = logging.getLogger(__name__)


def percentage(part: int, whole: int) -> int:
    """Rounded percentage (half up), 0 when ``whole`` is 0"""
    if whole <= 0:
        return 0
    return int(math.floor(part / whole * 100 + 0.5))


def reduction_percentage(original: int, final: int) -> int:
    """Share of ``original`` that did not make it to ``final``"""
    return percentage(original - final, original)


class MetricsAggregator:
    """Thread-safe counter set with derived rates computed on read"""

    def __init__(self, dedup_store=None, registry: Optional[CollectorRegistry] = None):
        self.dedup_store = dedup_store
        self.registry = registry or CollectorRegistry()
        self._lock = threading.Lock()

        self.received = 0
        self.duplicates = 0
        self.suppressed = 0
        self.escalated = 0
        self.processed = 0

        self._received_total = Counter(
            'alert_sentry_alerts_received',
            'Alerts received, malformed entries included',
            registry=self.registry
        )
        self._duplicates_total = Counter(
            'alert_sentry_alerts_duplicates',
            'Alerts dropped as duplicates',
            registry=self.registry
        )
        self._suppressed_total = Counter(
            'alert_sentry_alerts_suppressed',
            'Alerts dropped by noise suppression rules',
            registry=self.registry
        )
        self._escalated_total = Counter(
            'alert_sentry_alerts_escalated',
            'Alerts delivered in the prioritized output',
            registry=self.registry
        )
        self._reduction_gauge = Gauge(
            'alert_sentry_reduction_percentage',
            'Cumulative alert volume reduction (0-100)',
            registry=self.registry
        )

    # Recording ---------------------------------------------------------

    def record_received(self, count: int):
        with self._lock:
            self.received += count
        self._received_total.inc(count)

    def record_duplicate(self):
        with self._lock:
            self.duplicates += 1
        self._duplicates_total.inc()

    def record_suppressed(self):
        with self._lock:
            self.suppressed += 1
        self._suppressed_total.inc()

    def record_escalated(self, count: int):
        with self._lock:
            self.escalated += count
        self._escalated_total.inc(count)

    def record_processed(self, count: int):
        with self._lock:
            self.processed += count
        self._reduction_gauge.set(self.reduction_percentage)

    # Derived values ----------------------------------------------------

    @property
    def reduction_percentage(self) -> int:
        return reduction_percentage(self.received, self.escalated)

    @property
    def duplicate_rate(self) -> int:
        return percentage(self.duplicates, self.received)

    @property
    def suppression_rate(self) -> int:
        return percentage(self.suppressed, self.received)

    def snapshot(self) -> ProcessingMetrics:
        with self._lock:
            return ProcessingMetrics(
                received=self.received,
                duplicates=self.duplicates,
                suppressed=self.suppressed,
                escalated=self.escalated,
                processed=self.processed,
                reduction_percentage=self.reduction_percentage,
                duplicate_rate=self.duplicate_rate,
                suppression_rate=self.suppression_rate,
            )

    def render_prometheus(self) -> str:
        """Prometheus text exposition of this aggregator's registry"""
        return generate_latest(self.registry).decode("utf-8")

    # Lifecycle ---------------------------------------------------------

    def reset(self):
        """Zero all counters and clear the linked deduplication store"""
        with self._lock:
            self.received = 0
            self.duplicates = 0
            self.suppressed = 0
            self.escalated = 0
            self.processed = 0
            if self.dedup_store is not None:
                self.dedup_store.clear()
        self._reduction_gauge.set(0)
        logger.info("[METRICS] Counters reset")
