"""
Deduplication Store Tests
Window boundaries, out-of-order delivery, timestamp recovery and the Redis backend
"""

import logging
import math
from datetime import datetime, timedelta, timezone

import pytest

from alert_sentry.alerts.deduplication import (
    DeduplicationStore,
    RedisDeduplicationStore,
    parse_timestamp,
)
from alert_sentry.errors import ConfigurationError, InvalidTimestampError

from conftest import BASE_TIME, iso

NOW = BASE_TIME + timedelta(hours=1)
FP = "fp-1"


class TestParseTimestamp:

    def test_iso_with_z_suffix(self):
        assert parse_timestamp("2024-05-01T12:00:00Z") == BASE_TIME

    def test_iso_with_offset_is_normalised_to_utc(self):
        assert parse_timestamp("2024-05-01T14:00:00+02:00") == BASE_TIME

    def test_naive_datetime_taken_as_utc(self):
        assert parse_timestamp(datetime(2024, 5, 1, 12, 0, 0)) == BASE_TIME

    def test_epoch_seconds(self):
        assert parse_timestamp(BASE_TIME.timestamp()) == BASE_TIME

    def test_epoch_milliseconds(self):
        millis = int(BASE_TIME.timestamp() * 1000)
        assert parse_timestamp(millis) == BASE_TIME
        assert parse_timestamp(float(millis + 3_600_000)) == BASE_TIME + timedelta(hours=1)

    def test_millisecond_alerts_an_hour_apart_are_both_novel(self):
        store = DeduplicationStore(window_seconds=300)
        millis = int(BASE_TIME.timestamp() * 1000)

        first = store.classify({"timestamp": millis}, FP, NOW)
        second = store.classify({"timestamp": millis + 3_600_000}, FP, NOW)

        assert first.duplicate is False
        assert second.duplicate is False
        assert second.seconds_since_last == 3600

    @pytest.mark.parametrize("value", [None, "", "not a time", True, math.nan, math.inf, object()])
    def test_invalid_values_raise(self, value):
        with pytest.raises(InvalidTimestampError):
            parse_timestamp(value)


class TestDeduplicationStore:

    @pytest.fixture
    def store(self):
        return DeduplicationStore(window_seconds=300)

    def test_first_sighting_is_novel(self, store):
        decision = store.classify({"timestamp": iso(0)}, FP, NOW)
        assert decision.duplicate is False
        assert store.last_seen(FP) == BASE_TIME
        assert FP in store

    def test_inside_window_is_duplicate(self, store):
        store.classify({"timestamp": iso(0)}, FP, NOW)
        decision = store.classify({"timestamp": iso(299.9)}, FP, NOW)

        assert decision.duplicate is True
        assert decision.seconds_since_last == pytest.approx(299.9)
        # Duplicates do not refresh the stored time
        assert store.last_seen(FP) == BASE_TIME

    def test_beyond_window_is_novel_and_overwrites(self, store):
        store.classify({"timestamp": iso(0)}, FP, NOW)
        decision = store.classify({"timestamp": iso(300.1)}, FP, NOW)

        assert decision.duplicate is False
        assert store.last_seen(FP) == BASE_TIME + timedelta(seconds=300.1)

    def test_exact_window_is_not_duplicate(self, store):
        store.classify({"timestamp": iso(0)}, FP, NOW)
        assert store.classify({"timestamp": iso(300)}, FP, NOW).duplicate is False

    def test_earlier_alert_inside_window_is_duplicate(self, store):
        store.classify({"timestamp": iso(0)}, FP, NOW)
        assert store.classify({"timestamp": iso(-120)}, FP, NOW).duplicate is True

    def test_out_of_order_novel_alert_overwrites_with_older_time(self, store):
        store.classify({"timestamp": iso(1000)}, FP, NOW)
        store.classify({"timestamp": iso(0)}, FP, NOW)

        assert store.last_seen(FP) == BASE_TIME
        # Window is now measured from the older alert
        assert store.classify({"timestamp": iso(250)}, FP, NOW).duplicate is True

    def test_fingerprints_are_independent(self, store):
        store.classify({"timestamp": iso(0)}, "a", NOW)
        assert store.classify({"timestamp": iso(1)}, "b", NOW).duplicate is False
        assert len(store) == 2

    def test_invalid_timestamp_uses_now_and_warns(self, store, caplog):
        with caplog.at_level(logging.WARNING):
            decision = store.classify({"timestamp": "yesterday-ish"}, FP, NOW)

        assert decision.duplicate is False
        assert decision.alert_time == NOW
        assert "Invalid timestamp" in caplog.text

    def test_missing_timestamp_uses_now(self, store):
        decision = store.classify({}, FP, NOW)
        assert decision.alert_time == NOW

    def test_clock_used_when_now_not_given(self):
        store = DeduplicationStore(window_seconds=300, clock=lambda: NOW)
        assert store.classify({}, FP).alert_time == NOW

    def test_clear(self, store):
        store.classify({"timestamp": iso(0)}, FP, NOW)
        store.clear()
        assert len(store) == 0
        assert store.classify({"timestamp": iso(1)}, FP, NOW).duplicate is False

    @pytest.mark.parametrize("window", [0, -5])
    def test_non_positive_window_rejected(self, window):
        with pytest.raises(ConfigurationError):
            DeduplicationStore(window_seconds=window)


class TestRedisDeduplicationStore:

    @pytest.fixture
    def store(self, mock_redis):
        return RedisDeduplicationStore(mock_redis, window_seconds=300)

    def test_novel_alert_written_with_ttl(self, store, mock_redis):
        store.classify({"timestamp": iso(0)}, FP, NOW)

        key = "alert_sentry:dedup:fp-1"
        assert float(mock_redis.storage[key]) == BASE_TIME.timestamp()
        assert mock_redis.ttls[key] == 300

    def test_duplicate_detected_across_instances(self, mock_redis):
        first = RedisDeduplicationStore(mock_redis, window_seconds=300)
        second = RedisDeduplicationStore(mock_redis, window_seconds=300)

        assert first.classify({"timestamp": iso(0)}, FP, NOW).duplicate is False
        assert second.classify({"timestamp": iso(60)}, FP, NOW).duplicate is True

    def test_bytes_values_are_decoded(self, store, mock_redis):
        mock_redis.storage["alert_sentry:dedup:fp-1"] = repr(BASE_TIME.timestamp()).encode()
        assert store.last_seen(FP) == BASE_TIME.replace(tzinfo=timezone.utc)

    def test_clear_only_touches_own_prefix(self, store, mock_redis):
        mock_redis.storage["other:key"] = "1"
        store.classify({"timestamp": iso(0)}, "a", NOW)
        store.classify({"timestamp": iso(0)}, "b", NOW)
        assert len(store) == 2

        store.clear()

        assert len(store) == 0
        assert mock_redis.storage == {"other:key": "1"}

    def test_fractional_window_rounds_ttl_up(self, mock_redis):
        store = RedisDeduplicationStore(mock_redis, window_seconds=0.5)
        store.classify({"timestamp": iso(0)}, FP, NOW)
        assert mock_redis.ttls["alert_sentry:dedup:fp-1"] == 1
