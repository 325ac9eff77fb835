"""
Rule-driven noise suppression with the critical-alert veto.

Rules run in definition order and the first match wins. A rule that raises
counts as "no match" and evaluation moves on to the next rule. When the
critical guard flags the alert, the suppression decision is discarded.
"""

import logging
from typing import Any, Iterable, Mapping, Optional, Tuple

from ..errors import SuppressionPredicateError
from .critical import CriticalAlertGuard
from .models import SuppressionDecision
from .rules import SuppressionRule, default_suppression_rules

logger = logging.getLogger(__name__)


class SuppressionRuleEngine:
    """Evaluates an ordered, immutable rule list against one alert at a time"""

    def __init__(
        self,
        rules: Optional[Iterable[SuppressionRule]] = None,
        critical_guard: Optional[CriticalAlertGuard] = None
    ):
        self.rules: Tuple[SuppressionRule, ...] = (
            tuple(rules) if rules is not None else default_suppression_rules()
        )
        self.critical_guard = critical_guard if critical_guard is not None else CriticalAlertGuard()

    def match(self, alert: Mapping[str, Any]) -> SuppressionDecision:
        """First matching rule, ignoring the critical veto"""
        for rule in self.rules:
            try:
                matched = rule.evaluate(alert)
            except Exception as e:
                error = SuppressionPredicateError(rule.name, e)
                logger.warning(f"[SUPPRESS] ⚠️ {error}")
                continue

            if matched:
                return SuppressionDecision(True, rule.reason, rule.name)

        return SuppressionDecision(False)

    def evaluate(self, alert: Mapping[str, Any]) -> SuppressionDecision:
        """Suppression decision for an alert, critical veto applied"""
        decision = self.match(alert)

        if self.critical_guard.is_critical(alert):
            if decision.suppress:
                logger.debug(
                    f"[SUPPRESS] Critical override for rule '{decision.rule_name}': "
                    f"{alert.get('message') or 'Unknown alert'} "
                    f"(keywords: {', '.join(sorted(self.critical_guard.matched_keywords(alert)))})"
                )
            return SuppressionDecision(False, "", None, critical_override=True)

        return decision
