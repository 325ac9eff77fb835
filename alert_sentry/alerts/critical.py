"""Critical-keyword detection: alerts that must never be suppressed."""

import logging
from typing import Any, Iterable, Mapping, Optional

from ..constants import DEFAULT_CRITICAL_KEYWORDS
from .fingerprint import as_text

logger = logging.getLogger(__name__)


class CriticalAlertGuard:
    """
    Case-insensitive keyword match over ``message`` and ``type``.

    A positive match vetoes any suppression decision for the alert.
    An empty keyword set flags nothing, which turns the veto off.
    """

    def __init__(self, keywords: Optional[Iterable[str]] = None):
        if keywords is None:
            keywords = DEFAULT_CRITICAL_KEYWORDS
        if isinstance(keywords, str):
            keywords = [keywords]
        self.keywords = frozenset(k.lower() for k in keywords if k)
        if not self.keywords:
            logger.warning("[CRITICAL] ⚠️ No critical keywords configured, critical override disabled")

    def is_critical(self, alert: Optional[Mapping[str, Any]]) -> bool:
        """Check if alert text contains any critical keyword"""
        if not alert or not self.keywords:
            return False

        text = f"{as_text(alert.get('message'))} {as_text(alert.get('type'))}".lower()
        return any(keyword in text for keyword in self.keywords)

    def matched_keywords(self, alert: Mapping[str, Any]) -> frozenset:
        text = f"{as_text(alert.get('message'))} {as_text(alert.get('type'))}".lower()
        return frozenset(keyword for keyword in self.keywords if keyword in text)
