"""
Alert Processing Pipeline
=========================
Reduces a batch of monitoring alerts to the ones an operator must act on.

Stages, in order:
1. Skip malformed entries (counted as received, nothing else)
2. Deduplicate by fingerprint within the time window
3. Apply noise suppression rules, vetoed for critical alerts
4. Prioritize survivors by severity, then recency
5. Update cumulative metrics

Each call processes one batch to completion. Calls on the same instance are
serialised, so the dedup store and the counters see a single writer.
"""

import logging
import threading
from collections import deque
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, Dict, List, Optional

from .alerts.critical import CriticalAlertGuard
from .alerts.deduplication import DeduplicationStore, RedisDeduplicationStore, utc_now
from .alerts.fingerprint import FingerprintGenerator
from .alerts.metrics import MetricsAggregator, reduction_percentage
from .alerts.models import ProcessingMetrics, ProcessingResult, coerce_alert
from .alerts.prioritizer import Prioritizer
from .alerts.suppression import SuppressionRuleEngine
from .config import EngineConfig
from .constants import NOT_SUPPRESSED_REASON, RECENT_ALERTS_HISTORY
from .errors import MalformedAlertError

logger = logging.getLogger(__name__)


def isoformat_z(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix"""
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ProcessingPipeline:
    """
    Deduplication, noise suppression and prioritization over alert batches.

    State that outlives a single call (the dedup store, the counters and the
    recent-alert history) is cleared only by ``reset_metrics()``.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        dedup_store: Optional[DeduplicationStore] = None,
        fingerprinter: Optional[FingerprintGenerator] = None,
        metrics_registry=None,
        **overrides
    ):
        config = config or EngineConfig()
        if overrides:
            config = config.with_overrides(**overrides)
        self.config = config

        self.fingerprinter = fingerprinter or FingerprintGenerator()
        if dedup_store is None:
            if config.redis_url:
                dedup_store = RedisDeduplicationStore.from_url(
                    config.redis_url, window_seconds=config.deduplication_window
                )
            else:
                dedup_store = DeduplicationStore(config.deduplication_window)
        self.dedup_store = dedup_store

        self.critical_guard = CriticalAlertGuard(config.critical_keywords)
        self.suppression_engine = SuppressionRuleEngine(config.suppression_rules, self.critical_guard)
        self.prioritizer = Prioritizer()
        self.metrics = MetricsAggregator(self.dedup_store, metrics_registry)

        self._recent_alerts: deque = deque(maxlen=RECENT_ALERTS_HISTORY)
        self._lock = threading.RLock()

        logger.info(
            f"[PIPELINE] Initialized (window={config.deduplication_window:g}s, "
            f"rules={len(config.suppression_rules)}, "
            f"store={type(self.dedup_store).__name__})"
        )

    # ========================================================================
    # Public API
    # ========================================================================

    def process_alerts(self, alerts: Iterable) -> ProcessingResult:
        """
        Run one batch through the pipeline.

        Args:
            alerts: iterable of alert mappings or ``Alert`` models; entries
                that are not alert-shaped are skipped

        Returns:
            ProcessingResult with the prioritized escalations

        Raises:
            TypeError: if ``alerts`` is not an iterable of records
        """
        if isinstance(alerts, (str, bytes, Mapping)) or not isinstance(alerts, Iterable):
            raise TypeError(f"Expected an iterable of alerts, got {type(alerts).__name__}")

        batch = list(alerts)

        with self._lock:
            now = utc_now()
            logger.info(f"[PIPELINE] Processing {len(batch)} alerts")
            self.metrics.record_received(len(batch))

            deduplicated = self._deduplicate(batch, now)
            logger.info(
                f"[PIPELINE] After deduplication: {len(deduplicated)} alerts "
                f"({len(batch) - len(deduplicated)} removed)"
            )

            filtered = self._apply_suppression(deduplicated)
            logger.info(
                f"[PIPELINE] After noise suppression: {len(filtered)} alerts "
                f"({len(deduplicated) - len(filtered)} suppressed)"
            )

            prioritized = self.prioritizer.prioritize(filtered, fallback_time=now)

            self.metrics.record_escalated(len(prioritized))
            self.metrics.record_processed(len(batch))
            self._recent_alerts.extend(prioritized)

            batch_reduction = reduction_percentage(len(batch), len(prioritized))
            logger.info(f"[PIPELINE] Escalated {len(prioritized)} alerts ({batch_reduction}% reduction)")

            return ProcessingResult(
                original_count=len(batch),
                processed_alerts=prioritized,
                metrics=self.metrics.snapshot(),
                reduction_percentage=batch_reduction,
            )

    def reset_metrics(self):
        """Zero the counters, clear the dedup store and the recent-alert history"""
        with self._lock:
            self.metrics.reset()
            self._recent_alerts.clear()

    def get_metrics(self) -> ProcessingMetrics:
        return self.metrics.snapshot()

    def get_recent_alerts(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Most recently escalated alerts, newest first"""
        if limit is None:
            limit = self.config.recent_alerts_limit
        if limit <= 0:
            return []
        with self._lock:
            recent = list(self._recent_alerts)[-limit:]
        recent.reverse()
        return recent

    # ========================================================================
    # Stages
    # ========================================================================

    def _deduplicate(self, batch: List[Any], now: datetime) -> List[Dict[str, Any]]:
        deduplicated = []
        processed_at = isoformat_z(now)

        for index, entry in enumerate(batch):
            try:
                alert = coerce_alert(entry, index)
            except MalformedAlertError as e:
                logger.warning(f"[PIPELINE] ⚠️ Skipping {e}")
                continue

            fingerprint = self.fingerprinter.fingerprint(alert)
            decision = self.dedup_store.classify(alert, fingerprint, now)

            if decision.duplicate:
                self.metrics.record_duplicate()
                logger.debug(
                    f"[DEDUP] Duplicate detected: {alert.get('message') or 'Unknown alert'} "
                    f"({decision.seconds_since_last:.0f}s apart)"
                )
                continue

            alert["fingerprint"] = fingerprint
            alert["processed_at"] = processed_at
            deduplicated.append(alert)

        return deduplicated

    def _apply_suppression(self, alerts: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        filtered = []

        for alert in alerts:
            decision = self.suppression_engine.evaluate(alert)

            if decision.suppress:
                self.metrics.record_suppressed()
                logger.debug(
                    f"[SUPPRESS] Suppressed: {alert.get('message') or 'Unknown alert'} ({decision.reason})"
                )
                continue

            alert["suppression_reason"] = decision.reason or NOT_SUPPRESSED_REASON
            filtered.append(alert)

        return filtered
