"""
Error taxonomy for the alert filtering engine.

Per-alert errors (malformed input, bad timestamps, failing rule predicates)
are raised at the point of detection and recovered by the pipeline; they are
never propagated out of ``ProcessingPipeline.process_alerts``. Configuration
and rule-definition errors surface at construction time.
"""

from typing import Any, Optional


class AlertSentryError(Exception):
    """Base class for all engine errors"""


class MalformedAlertError(AlertSentryError):
    """Batch entry is not an alert-shaped record"""

    def __init__(self, value: Any, index: Optional[int] = None):
        self.value = value
        self.index = index
        where = f" at position {index}" if index is not None else ""
        super().__init__(f"Malformed alert{where}: {value!r}")


class InvalidTimestampError(AlertSentryError):
    """Alert timestamp is missing or cannot be parsed"""

    def __init__(self, value: Any, detail: str = ""):
        self.value = value
        message = f"Invalid timestamp {value!r}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class SuppressionPredicateError(AlertSentryError):
    """A suppression rule raised while evaluating an alert"""

    def __init__(self, rule_name: str, cause: BaseException):
        self.rule_name = rule_name
        self.cause = cause
        super().__init__(f"Error in suppression rule {rule_name}: {type(cause).__name__}: {cause}")


class ConfigurationError(AlertSentryError):
    """Engine configuration is invalid"""


class RuleDefinitionError(ConfigurationError):
    """A declarative suppression rule definition cannot be built"""
