"""Ordering of escalated alerts: severity first, most recent first within a severity."""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..errors import InvalidTimestampError
from .deduplication import parse_timestamp, utc_now
from .models import severity_rank


class Prioritizer:
    """
    Stable sort by severity rank (descending) then timestamp (descending).

    Alerts whose timestamp cannot be parsed sort as if raised at
    ``fallback_time``, which the pipeline sets to the batch processing time.
    """

    def sort_key(self, alert: Mapping[str, Any], fallback_time: datetime):
        try:
            alert_time = parse_timestamp(alert.get("timestamp"))
        except InvalidTimestampError:
            alert_time = fallback_time
        return (-severity_rank(alert.get("severity")), -alert_time.timestamp())

    def prioritize(
        self,
        alerts: Sequence[Dict[str, Any]],
        fallback_time: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """Return a new list; equal keys keep their input order"""
        fallback_time = fallback_time or utc_now()
        return sorted(alerts, key=lambda alert: self.sort_key(alert, fallback_time))
