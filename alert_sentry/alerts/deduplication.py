"""
Alert Deduplication
===================
Time-windowed deduplication keyed by alert fingerprint.

The store remembers, per fingerprint, the timestamp of the last alert it
accepted. A new alert with the same fingerprint is a duplicate when the two
timestamps are closer than the window, in either direction. Accepting an
alert always overwrites the stored timestamp with that alert's own time,
even when it is older than the stored one (out-of-order delivery).

Two backends share the same algorithm:
- ``DeduplicationStore``: in-process map guarded by a lock
- ``RedisDeduplicationStore``: shared store for multi-instance deployments,
  keys expire after the window
"""

import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

import redis

from ..constants import DEDUPLICATION_WINDOW_SECONDS, REDIS_DEDUP_KEY_PREFIX
from ..errors import ConfigurationError, InvalidTimestampError

logger = logging.getLogger(__name__)

# 1e11 seconds is year 5138; 1e11 ms is 1973
EPOCH_MILLISECONDS_THRESHOLD = 1e11


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an alert timestamp into an aware UTC datetime.

    Accepts datetimes (naive ones are taken as UTC), ISO-8601 strings
    (a trailing ``Z`` is allowed) and numeric epoch times. Numbers at or
    above ``EPOCH_MILLISECONDS_THRESHOLD`` are epoch milliseconds, smaller
    ones are epoch seconds.

    Raises:
        InvalidTimestampError: if the value is missing or unparsable
    """
    if value is None or value == "":
        raise InvalidTimestampError(value, "missing")

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        raise InvalidTimestampError(value, "boolean is not a timestamp")
    elif isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise InvalidTimestampError(value, "not a finite number")
        try:
            seconds = value / 1000 if abs(value) >= EPOCH_MILLISECONDS_THRESHOLD else value
            parsed = datetime.fromtimestamp(seconds, timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise InvalidTimestampError(value, str(e)) from e
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidTimestampError(value, str(e)) from e
    else:
        raise InvalidTimestampError(value, f"unsupported type {type(value).__name__}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def resolve_alert_time(alert: Mapping[str, Any], now: datetime) -> datetime:
    """Alert timestamp, or ``now`` when it is missing or invalid"""
    raw = alert.get("timestamp")
    try:
        return parse_timestamp(raw)
    except InvalidTimestampError as e:
        logger.warning(f"[DEDUP] {e}, using current time")
        return now


@dataclass
class DedupDecision:
    """Classification of one alert against the store"""
    duplicate: bool
    alert_time: datetime
    seconds_since_last: Optional[float] = None


class DeduplicationStore:
    """
    In-memory fingerprint → last-accepted-timestamp store.

    Lives across pipeline invocations until ``clear()`` is called.
    ``classify`` is atomic per call, so concurrent callers sharing one
    store cannot both accept the same fingerprint.
    """

    def __init__(
        self,
        window_seconds: float = DEDUPLICATION_WINDOW_SECONDS,
        clock: Optional[Callable[[], datetime]] = None
    ):
        if window_seconds <= 0:
            raise ConfigurationError(f"Deduplication window must be positive, got {window_seconds}")
        self.window_seconds = float(window_seconds)
        self.clock = clock or utc_now
        self._lock = threading.Lock()
        self._seen: Dict[str, datetime] = {}

    # Storage hooks -----------------------------------------------------

    def _get(self, fingerprint: str) -> Optional[datetime]:
        return self._seen.get(fingerprint)

    def _put(self, fingerprint: str, alert_time: datetime):
        self._seen[fingerprint] = alert_time

    def _clear(self):
        self._seen.clear()

    # Public API --------------------------------------------------------

    def classify(
        self,
        alert: Mapping[str, Any],
        fingerprint: str,
        now: Optional[datetime] = None
    ) -> DedupDecision:
        """
        Classify an alert as duplicate or novel.

        Novel alerts are recorded; duplicates leave the stored time alone.
        """
        now = now or self.clock()
        alert_time = resolve_alert_time(alert, now)

        with self._lock:
            last_seen = self._get(fingerprint)
            if last_seen is not None:
                delta = abs((alert_time - last_seen).total_seconds())
                if delta < self.window_seconds:
                    return DedupDecision(True, alert_time, delta)
            else:
                delta = None

            self._put(fingerprint, alert_time)

        return DedupDecision(False, alert_time, delta)

    def last_seen(self, fingerprint: str) -> Optional[datetime]:
        with self._lock:
            return self._get(fingerprint)

    def clear(self):
        with self._lock:
            self._clear()
        logger.debug("[DEDUP] Store cleared")

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, fingerprint: str) -> bool:
        return self.last_seen(fingerprint) is not None


class RedisDeduplicationStore(DeduplicationStore):
    """
    Redis-backed store shared by several pipeline instances.

    Each fingerprint is a key holding the epoch seconds of the last accepted
    alert, with a TTL equal to the window. The local lock serialises the
    get/set pair for callers inside this process only.
    """

    def __init__(
        self,
        redis_client,
        window_seconds: float = DEDUPLICATION_WINDOW_SECONDS,
        key_prefix: str = REDIS_DEDUP_KEY_PREFIX,
        clock: Optional[Callable[[], datetime]] = None
    ):
        super().__init__(window_seconds, clock)
        self.redis = redis_client
        self.key_prefix = key_prefix
        self._ttl = max(1, math.ceil(self.window_seconds))

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisDeduplicationStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), **kwargs)

    def _key(self, fingerprint: str) -> str:
        return f"{self.key_prefix}{fingerprint}"

    def _get(self, fingerprint: str) -> Optional[datetime]:
        raw = self.redis.get(self._key(fingerprint))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return datetime.fromtimestamp(float(raw), timezone.utc)

    def _put(self, fingerprint: str, alert_time: datetime):
        self.redis.set(self._key(fingerprint), repr(alert_time.timestamp()), ex=self._ttl)

    def _clear(self):
        keys = list(self.redis.scan_iter(match=f"{self.key_prefix}*"))
        if keys:
            self.redis.delete(*keys)

    def __len__(self) -> int:
        return sum(1 for _ in self.redis.scan_iter(match=f"{self.key_prefix}*"))
