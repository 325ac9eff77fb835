"""
Shared fixtures for the Alert Sentry test suite
"""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from alert_sentry.pipeline import ProcessingPipeline

BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def iso(offset_seconds: float = 0) -> str:
    """ISO timestamp ``offset_seconds`` after BASE_TIME"""
    return (BASE_TIME + timedelta(seconds=offset_seconds)).isoformat().replace("+00:00", "Z")


class MockRedis:
    """Minimal Redis stand-in covering the commands the dedup store uses"""

    def __init__(self):
        self.storage = {}
        self.ttls = {}

    def get(self, key):
        return self.storage.get(key)

    def set(self, key, value, ex=None, *args, **kwargs):
        self.storage[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if key in self.storage:
                del self.storage[key]
                self.ttls.pop(key, None)
                removed += 1
        return removed

    def scan_iter(self, match=None):
        prefix = match[:-1] if match and match.endswith("*") else match
        for key in list(self.storage):
            if prefix is None or key.startswith(prefix):
                yield key


@pytest.fixture
def make_alert():
    """Factory for alert dicts; defaults match no suppression rule and no critical keyword"""

    counter = {"n": 0}

    def _make(offset: float = 0, **overrides):
        counter["n"] += 1
        alert = {
            "id": f"alert-{counter['n']}",
            "timestamp": iso(offset),
            "type": "LATENCY_HIGH",
            "severity": "HIGH",
            "client": "acme",
            "server": "web-01",
            "message": "p99 latency above SLO",
            "metadata": {},
            "acknowledged": False,
            "resolved": False,
        }
        alert.update(overrides)
        return alert

    return _make


@pytest.fixture
def pipeline():
    return ProcessingPipeline()


@pytest.fixture
def mock_redis():
    return MockRedis()
