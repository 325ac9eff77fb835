"""
Alert Sentry
============
Deduplication, noise suppression and prioritization for monitoring alerts.

    from alert_sentry import ProcessingPipeline

    pipeline = ProcessingPipeline()
    result = pipeline.process_alerts(alerts)
    print(result.reduction_percentage)
"""

from .alerts import (
    Alert,
    ProcessingMetrics,
    ProcessingResult,
    Severity,
    SuppressionRule,
)
from .config import EngineConfig
from .errors import (
    AlertSentryError,
    ConfigurationError,
    InvalidTimestampError,
    MalformedAlertError,
    RuleDefinitionError,
    SuppressionPredicateError,
)
from .pipeline import ProcessingPipeline

__version__ = "0.1.0"

__all__ = [
    # Pipeline
    'ProcessingPipeline',
    'EngineConfig',

    # Models
    'Alert',
    'Severity',
    'SuppressionRule',
    'ProcessingMetrics',
    'ProcessingResult',

    # Errors
    'AlertSentryError',
    'ConfigurationError',
    'InvalidTimestampError',
    'MalformedAlertError',
    'RuleDefinitionError',
    'SuppressionPredicateError',
]
