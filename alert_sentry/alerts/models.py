"""
Alert Data Model
================
Typed records that flow through the filtering pipeline.

Alerts arrive as decoded mappings (webhook payloads, queue messages) or as
``Alert`` models. Inside the pipeline every alert is handled as a plain dict
so that open-ended fields (``metadata``, vendor extras) survive untouched and
are handed back to the caller with the pipeline annotations added.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..constants import (
    DEFAULT_ALERT_TYPE,
    DEFAULT_CLIENT,
    DEFAULT_SERVER,
    SEVERITY_RANKS,
    UNKNOWN_SEVERITY_RANK,
)
from ..errors import MalformedAlertError


class Severity(str, enum.Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return SEVERITY_RANKS[self.value]


def severity_rank(severity: Any) -> int:
    """Rank of a raw severity value; anything unrecognised ranks below LOW"""
    if isinstance(severity, Severity):
        return severity.rank
    if isinstance(severity, str):
        return SEVERITY_RANKS.get(severity, UNKNOWN_SEVERITY_RANK)
    return UNKNOWN_SEVERITY_RANK


class Alert(BaseModel):
    """A monitoring alert as produced by an ingestion adapter"""

    model_config = ConfigDict(extra="allow", use_enum_values=True)

    id: Optional[str] = None
    timestamp: Optional[Union[datetime, str, float]] = None
    type: str = DEFAULT_ALERT_TYPE
    severity: Optional[Union[Severity, str]] = None
    client: str = DEFAULT_CLIENT
    server: str = DEFAULT_SERVER
    message: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    acknowledged: bool = False
    resolved: bool = False


def coerce_alert(value: Any, index: Optional[int] = None) -> Dict[str, Any]:
    """
    Turn a batch entry into a mutable alert dict.

    Raises:
        MalformedAlertError: if the entry is not a mapping or ``Alert``, or is
            an empty mapping carrying no identity at all
    """
    if isinstance(value, Alert):
        return value.model_dump()
    if isinstance(value, Mapping) and value:
        return dict(value)
    raise MalformedAlertError(value, index)


@dataclass
class SuppressionDecision:
    """Outcome of evaluating the suppression rules for one alert"""
    suppress: bool
    reason: str = ""
    rule_name: Optional[str] = None
    critical_override: bool = False


@dataclass(frozen=True)
class ProcessingMetrics:
    """Point-in-time snapshot of the cumulative pipeline counters"""
    received: int = 0
    duplicates: int = 0
    suppressed: int = 0
    escalated: int = 0
    processed: int = 0
    reduction_percentage: int = 0
    duplicate_rate: int = 0
    suppression_rate: int = 0

    def to_dict(self) -> Dict[str, int]:
        """Telemetry representation with camelCase keys"""
        return {
            "received": self.received,
            "duplicates": self.duplicates,
            "suppressed": self.suppressed,
            "escalated": self.escalated,
            "processed": self.processed,
            "reductionPercentage": self.reduction_percentage,
            "duplicateRate": self.duplicate_rate,
            "suppressionRate": self.suppression_rate,
        }


# Pipeline annotations, renamed for telemetry output
ANNOTATION_KEYS = {
    "processed_at": "processedAt",
    "suppression_reason": "suppressionReason",
}


def _camel_annotations(alert: Mapping[str, Any]) -> Dict[str, Any]:
    return {ANNOTATION_KEYS.get(key, key): value for key, value in alert.items()}


@dataclass
class ProcessingResult:
    """Result of one ``process_alerts`` call"""
    original_count: int
    processed_alerts: List[Dict[str, Any]] = field(default_factory=list)
    metrics: ProcessingMetrics = field(default_factory=ProcessingMetrics)
    reduction_percentage: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Telemetry representation with camelCase keys, alert annotations included"""
        return {
            "originalCount": self.original_count,
            "processedAlerts": [_camel_annotations(alert) for alert in self.processed_alerts],
            "metrics": self.metrics.to_dict(),
            "reductionPercentage": self.reduction_percentage,
        }
