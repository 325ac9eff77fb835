"""
Noise Suppression Rules
=======================
A closed set of rule variants, each a small immutable object with an
``evaluate(alert) -> bool`` method:

- ``ThresholdRule``: alert type + severity, numeric ``metadata`` value compared to a threshold
- ``KeywordRule``: keyword found in the message or the type
- ``FlagRule``: boolean field is exactly ``True``
- ``MatchRule``: alert type + severity membership
- ``SeverityExclusionRule``: a severity, unless the type/message mentions an exclusion
- ``AnyRule``: matches when any nested clause matches

Rules read the raw alert dict. A rule that meets a field of the wrong shape
(``type`` missing, ``message`` not a string) may raise; the engine treats
that as "does not match" for that rule only.

Rules can be declared in YAML with a ``kind`` tag per entry, see
``load_rules_from_yaml``.
"""

import logging
import math
import operator
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Union

import yaml

from ..errors import RuleDefinitionError

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

COMPARATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "lt": operator.lt,
    "le": operator.le,
    "gt": operator.gt,
    "ge": operator.ge,
}


def parse_leading_int(value: Any) -> Optional[int]:
    """
    Integer prefix of a metric value: ``"70%"`` -> 70, ``94.9`` -> 94.

    Returns None when there is no integer prefix, which makes every
    threshold comparison false.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value)
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def metadata_value(alert: Mapping[str, Any], field: str) -> Any:
    metadata = alert.get("metadata")
    if isinstance(metadata, Mapping):
        return metadata.get(field)
    return None


class SuppressionRule(ABC):
    """Named predicate plus the reason recorded when it suppresses an alert"""

    name: str
    reason: str

    @abstractmethod
    def evaluate(self, alert: Mapping[str, Any]) -> bool:
        ...

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class ThresholdRule(SuppressionRule):
    name: str
    reason: str
    alert_type: str
    severities: FrozenSet[str]
    operator: str
    threshold: float
    field: str = "currentValue"

    def __post_init__(self):
        if self.operator not in COMPARATORS:
            raise RuleDefinitionError(
                f"Rule {self.name!r}: unknown operator {self.operator!r}, expected one of {sorted(COMPARATORS)}"
            )

    def evaluate(self, alert):
        if alert.get("type") != self.alert_type or alert.get("severity") not in self.severities:
            return False
        value = parse_leading_int(metadata_value(alert, self.field))
        if value is None:
            return False
        return COMPARATORS[self.operator](value, self.threshold)


@dataclass(frozen=True)
class KeywordRule(SuppressionRule):
    name: str
    reason: str
    message_keywords: Tuple[str, ...] = ()
    type_keywords: Tuple[str, ...] = ()

    def evaluate(self, alert):
        message = (alert.get("message") or "").lower()
        alert_type = (alert.get("type") or "").lower()
        return (
            any(keyword in message for keyword in self.message_keywords)
            or any(keyword in alert_type for keyword in self.type_keywords)
        )


@dataclass(frozen=True)
class FlagRule(SuppressionRule):
    name: str
    reason: str
    field: str

    def evaluate(self, alert):
        return alert.get(self.field) is True


@dataclass(frozen=True)
class MatchRule(SuppressionRule):
    """Type membership plus an allow-list or deny-list of severities"""
    name: str
    reason: str
    alert_types: FrozenSet[str]
    severities: Optional[FrozenSet[str]] = None
    excluded_severities: FrozenSet[str] = frozenset()

    def evaluate(self, alert):
        if alert.get("type") not in self.alert_types:
            return False
        severity = alert.get("severity")
        if self.severities is not None and severity not in self.severities:
            return False
        return severity not in self.excluded_severities


@dataclass(frozen=True)
class SeverityExclusionRule(SuppressionRule):
    """
    Everything at one severity, except alerts whose type contains one of
    ``excluded_type_keywords`` (case-sensitive) or whose message contains one
    of ``excluded_message_keywords`` (case-insensitive).
    """
    name: str
    reason: str
    severity: str
    excluded_type_keywords: Tuple[str, ...] = ()
    excluded_message_keywords: Tuple[str, ...] = ()

    def evaluate(self, alert):
        if alert.get("severity") != self.severity:
            return False
        # Raises on a non-string type or message; the engine fails open
        alert_type = alert.get("type")
        if any(keyword in alert_type for keyword in self.excluded_type_keywords):
            return False
        message = alert.get("message").lower()
        return not any(keyword in message for keyword in self.excluded_message_keywords)


@dataclass(frozen=True)
class AnyRule(SuppressionRule):
    name: str
    reason: str
    clauses: Tuple[SuppressionRule, ...]

    def evaluate(self, alert):
        return any(clause.evaluate(alert) for clause in self.clauses)


# ============================================================================
# Default rule table
# ============================================================================

def default_suppression_rules() -> Tuple[SuppressionRule, ...]:
    """The stock rule set, in evaluation order"""
    return (
        ThresholdRule(
            "Low CPU Alerts", "CPU usage below critical threshold",
            alert_type="CPU_HIGH", severities=frozenset({"LOW", "MEDIUM"}),
            operator="lt", threshold=95,
        ),
        ThresholdRule(
            "Low Memory Alerts", "Memory usage not critical",
            alert_type="MEMORY_HIGH", severities=frozenset({"LOW"}),
            operator="lt", threshold=95,
        ),
        KeywordRule(
            "Informational Alerts", "Informational alert",
            message_keywords=("informational", "info:", "notice:", "completed successfully"),
            type_keywords=("system_info", "health_check"),
        ),
        FlagRule("Auto-resolved Alerts", "Alert already resolved", field="resolved"),
        ThresholdRule(
            "Low Severity Disk Alerts", "Disk usage not critical",
            alert_type="DISK_FULL", severities=frozenset({"LOW"}),
            operator="lt", threshold=98,
        ),
        FlagRule("Acknowledged Alerts", "Alert already acknowledged", field="acknowledged"),
        ThresholdRule(
            "SSL Expiry Low Priority", "SSL certificate has sufficient time before expiry",
            alert_type="SSL_EXPIRY", severities=frozenset({"LOW"}),
            operator="gt", threshold=7,
        ),
        MatchRule(
            "Backup Alerts Low Priority", "Low priority backup issue",
            alert_types=frozenset({"BACKUP_FAILED", "BACKUP_COMPLETED"}),
            severities=frozenset({"LOW", "MEDIUM"}),
        ),
        ThresholdRule(
            "Login Failed Low Count", "Login attempts below security threshold",
            alert_type="LOGIN_FAILED", severities=frozenset({"LOW"}),
            operator="lt", threshold=10,
        ),
        SeverityExclusionRule(
            "Medium Severity Non-Critical", "Medium priority non-service-affecting alert",
            severity="MEDIUM",
            excluded_type_keywords=("SERVICE_DOWN",),
            excluded_message_keywords=("critical", "outage"),
        ),
        AnyRule(
            "High Volume Alert Types", "Secondary effect of primary incident",
            clauses=(
                MatchRule(
                    "Network Timeout Secondary", "Secondary effect of primary incident",
                    alert_types=frozenset({"NETWORK_TIMEOUT"}),
                    excluded_severities=frozenset({"CRITICAL"}),
                ),
                MatchRule(
                    "Backup Failure Secondary", "Secondary effect of primary incident",
                    alert_types=frozenset({"BACKUP_FAILED"}),
                    severities=frozenset({"LOW"}),
                ),
            ),
        ),
    )


# ============================================================================
# Declarative rule loading
# ============================================================================

def _strings(value: Any, key: str, rule_name: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, Iterable) and all(isinstance(item, str) for item in value):
        return tuple(value)
    raise RuleDefinitionError(f"Rule {rule_name!r}: {key} must be a string or a list of strings")


def _build_threshold(name, reason, spec):
    try:
        threshold = float(spec["value"])
    except KeyError as e:
        raise RuleDefinitionError(f"Rule {name!r}: missing {e.args[0]!r}") from e
    except (TypeError, ValueError) as e:
        raise RuleDefinitionError(f"Rule {name!r}: value must be numeric") from e
    if "alert_type" not in spec:
        raise RuleDefinitionError(f"Rule {name!r}: missing 'alert_type'")
    return ThresholdRule(
        name, reason,
        alert_type=str(spec["alert_type"]),
        severities=frozenset(_strings(spec.get("severities"), "severities", name)),
        operator=str(spec.get("operator", "lt")),
        threshold=threshold,
        field=str(spec.get("field", "currentValue")),
    )


def _build_keyword(name, reason, spec):
    return KeywordRule(
        name, reason,
        message_keywords=tuple(k.lower() for k in _strings(spec.get("message_keywords"), "message_keywords", name)),
        type_keywords=tuple(k.lower() for k in _strings(spec.get("type_keywords"), "type_keywords", name)),
    )


def _build_flag(name, reason, spec):
    if "field" not in spec:
        raise RuleDefinitionError(f"Rule {name!r}: missing 'field'")
    return FlagRule(name, reason, field=str(spec["field"]))


def _build_match(name, reason, spec):
    severities = spec.get("severities")
    return MatchRule(
        name, reason,
        alert_types=frozenset(_strings(spec.get("alert_types"), "alert_types", name)),
        severities=frozenset(_strings(severities, "severities", name)) if severities is not None else None,
        excluded_severities=frozenset(_strings(spec.get("excluded_severities"), "excluded_severities", name)),
    )


def _build_severity_exclusion(name, reason, spec):
    if "severity" not in spec:
        raise RuleDefinitionError(f"Rule {name!r}: missing 'severity'")
    return SeverityExclusionRule(
        name, reason,
        severity=str(spec["severity"]),
        excluded_type_keywords=_strings(spec.get("excluded_type_keywords"), "excluded_type_keywords", name),
        excluded_message_keywords=tuple(
            k.lower() for k in _strings(spec.get("excluded_message_keywords"), "excluded_message_keywords", name)
        ),
    )


def _build_any(name, reason, spec):
    clauses = spec.get("rules")
    if not isinstance(clauses, list) or not clauses:
        raise RuleDefinitionError(f"Rule {name!r}: 'any' needs a non-empty 'rules' list")
    return AnyRule(name, reason, clauses=tuple(build_rule(clause, inherited_reason=reason) for clause in clauses))


RULE_BUILDERS = {
    "threshold": _build_threshold,
    "keyword": _build_keyword,
    "flag": _build_flag,
    "match": _build_match,
    "severity_exclusion": _build_severity_exclusion,
    "any": _build_any,
}


def build_rule(spec: Mapping[str, Any], inherited_reason: Optional[str] = None) -> SuppressionRule:
    """Build one rule from its declarative form"""
    if not isinstance(spec, Mapping):
        raise RuleDefinitionError(f"Rule definition must be a mapping, got {type(spec).__name__}")

    kind = spec.get("kind")
    name = str(spec.get("name") or kind or "unnamed")
    reason = spec.get("reason") or inherited_reason
    builder = RULE_BUILDERS.get(kind)

    if builder is None:
        raise RuleDefinitionError(f"Rule {name!r}: unknown kind {kind!r}, expected one of {sorted(RULE_BUILDERS)}")
    if not reason:
        raise RuleDefinitionError(f"Rule {name!r}: missing 'reason'")

    return builder(name, str(reason), spec)


def load_rules(definitions: Union[List[Mapping[str, Any]], Mapping[str, Any]]) -> Tuple[SuppressionRule, ...]:
    """Build an ordered rule tuple from parsed YAML/JSON data"""
    if isinstance(definitions, Mapping):
        definitions = definitions.get("rules")
    if not isinstance(definitions, list):
        raise RuleDefinitionError("Rule file must contain a list of rules (or a 'rules' key holding one)")

    rules = tuple(build_rule(spec) for spec in definitions)
    logger.info(f"[RULES] Loaded {len(rules)} suppression rules")
    return rules


def load_rules_from_yaml(yaml_content: str) -> Tuple[SuppressionRule, ...]:
    """Load rules from a YAML document"""
    try:
        data = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        raise RuleDefinitionError(f"Invalid rule YAML: {e}") from e
    return load_rules(data)


def load_rules_from_file(path: Union[str, Path]) -> Tuple[SuppressionRule, ...]:
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise RuleDefinitionError(f"Cannot read rule file {path}: {e}") from e
    return load_rules_from_yaml(content)
