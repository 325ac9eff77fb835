"""
Metrics Aggregator Tests
Cumulative counters, derived rates and reset semantics
"""

from unittest.mock import MagicMock

import pytest

from alert_sentry.alerts.metrics import MetricsAggregator, percentage, reduction_percentage


class TestReductionFormula:

    @pytest.mark.parametrize("original,final,expected", [
        (0, 0, 0),
        (10, 10, 0),
        (10, 0, 100),
        (7, 1, 86),
        (8, 7, 13),      # 12.5 rounds half up
        (3, 1, 67),
    ])
    def test_reduction_percentage(self, original, final, expected):
        assert reduction_percentage(original, final) == expected

    def test_zero_denominator_is_zero(self):
        assert percentage(5, 0) == 0


class TestMetricsAggregator:

    @pytest.fixture
    def store(self):
        return MagicMock()

    @pytest.fixture
    def aggregator(self, store):
        return MetricsAggregator(dedup_store=store)

    def test_starts_at_zero(self, aggregator):
        snapshot = aggregator.snapshot()
        assert snapshot.received == 0
        assert snapshot.reduction_percentage == 0
        assert snapshot.duplicate_rate == 0
        assert snapshot.suppression_rate == 0

    def test_derived_rates(self, aggregator):
        aggregator.record_received(20)
        for _ in range(5):
            aggregator.record_duplicate()
        for _ in range(3):
            aggregator.record_suppressed()
        aggregator.record_escalated(12)
        aggregator.record_processed(20)

        snapshot = aggregator.snapshot()
        assert snapshot.received == 20
        assert snapshot.processed == 20
        assert snapshot.duplicates == 5
        assert snapshot.suppressed == 3
        assert snapshot.escalated == 12
        assert snapshot.reduction_percentage == 40
        assert snapshot.duplicate_rate == 25
        assert snapshot.suppression_rate == 15

    def test_snapshot_is_immutable_copy(self, aggregator):
        aggregator.record_received(1)
        snapshot = aggregator.snapshot()
        aggregator.record_received(1)

        assert snapshot.received == 1
        with pytest.raises(AttributeError):
            snapshot.received = 5

    def test_reset_zeroes_and_clears_store(self, aggregator, store):
        aggregator.record_received(4)
        aggregator.record_duplicate()
        aggregator.record_escalated(3)

        aggregator.reset()

        assert aggregator.snapshot().received == 0
        assert aggregator.snapshot().duplicates == 0
        assert aggregator.snapshot().escalated == 0
        store.clear.assert_called_once()

    def test_to_dict_uses_camel_case(self, aggregator):
        aggregator.record_received(2)
        aggregator.record_escalated(1)
        data = aggregator.snapshot().to_dict()
        assert data["reductionPercentage"] == 50
        assert set(data) == {
            "received", "duplicates", "suppressed", "escalated", "processed",
            "reductionPercentage", "duplicateRate", "suppressionRate",
        }

    def test_prometheus_export(self, aggregator):
        aggregator.record_received(5)
        aggregator.record_suppressed()
        aggregator.record_escalated(2)
        aggregator.record_processed(5)

        text = aggregator.render_prometheus()

        assert "alert_sentry_alerts_received_total 5.0" in text
        assert "alert_sentry_alerts_suppressed_total 1.0" in text
        assert "alert_sentry_alerts_escalated_total 2.0" in text
        assert "alert_sentry_reduction_percentage 60.0" in text

    def test_prometheus_counters_survive_reset(self, aggregator):
        aggregator.record_received(5)
        aggregator.reset()
        assert "alert_sentry_alerts_received_total 5.0" in aggregator.render_prometheus()

    def test_aggregators_have_independent_registries(self):
        first = MetricsAggregator()
        second = MetricsAggregator()
        first.record_received(3)
        assert "alert_sentry_alerts_received_total 0.0" in second.render_prometheus()
