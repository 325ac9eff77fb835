"""
Alerts Module
=============
Filtering components for Alert Sentry.

Features:
- Fingerprint-based time-windowed deduplication
- Rule-driven noise suppression
- Critical-keyword override that no rule can beat
- Severity/recency prioritization
- Cumulative reduction metrics
"""

from .critical import CriticalAlertGuard
from .deduplication import (
    DedupDecision,
    DeduplicationStore,
    RedisDeduplicationStore,
    parse_timestamp,
)
from .fingerprint import FingerprintGenerator
from .metrics import MetricsAggregator
from .models import (
    Alert,
    ProcessingMetrics,
    ProcessingResult,
    Severity,
    SuppressionDecision,
)
from .prioritizer import Prioritizer
from .rules import (
    AnyRule,
    FlagRule,
    KeywordRule,
    MatchRule,
    SeverityExclusionRule,
    SuppressionRule,
    ThresholdRule,
    default_suppression_rules,
    load_rules_from_file,
    load_rules_from_yaml,
)
from .suppression import SuppressionRuleEngine

__all__ = [
    "Alert",
    "AnyRule",
    "CriticalAlertGuard",
    "DedupDecision",
    "DeduplicationStore",
    "FingerprintGenerator",
    "FlagRule",
    "KeywordRule",
    "MatchRule",
    "MetricsAggregator",
    "Prioritizer",
    "ProcessingMetrics",
    "ProcessingResult",
    "RedisDeduplicationStore",
    "Severity",
    "SeverityExclusionRule",
    "SuppressionDecision",
    "SuppressionRule",
    "SuppressionRuleEngine",
    "ThresholdRule",
    "default_suppression_rules",
    "load_rules_from_file",
    "load_rules_from_yaml",
    "parse_timestamp",
]
