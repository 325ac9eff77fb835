"""
Engine Configuration
====================
Immutable configuration resolved once, when the pipeline is built.

    config = EngineConfig()                      # documented defaults
    config = EngineConfig.from_env()             # .env + environment
    config = config.with_overrides(deduplication_window=60)
"""

import logging
import os
from dataclasses import dataclass, field, replace
from typing import FrozenSet, Optional, Tuple

from dotenv import load_dotenv

from .alerts.rules import SuppressionRule, default_suppression_rules, load_rules_from_file
from .constants import (
    DEDUPLICATION_WINDOW_SECONDS,
    DEFAULT_CRITICAL_KEYWORDS,
    RECENT_ALERTS_LIMIT,
)
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    deduplication_window: float = DEDUPLICATION_WINDOW_SECONDS
    critical_keywords: FrozenSet[str] = DEFAULT_CRITICAL_KEYWORDS
    suppression_rules: Tuple[SuppressionRule, ...] = field(default_factory=default_suppression_rules)
    recent_alerts_limit: int = RECENT_ALERTS_LIMIT
    redis_url: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.critical_keywords, str):
            raise ConfigurationError("critical_keywords must be a collection of strings, not a string")

        # Normalise collections so the instance stays hashable and immutable
        object.__setattr__(self, "critical_keywords", frozenset(k.lower() for k in self.critical_keywords if k))
        object.__setattr__(self, "suppression_rules", tuple(self.suppression_rules))

        if self.deduplication_window <= 0:
            raise ConfigurationError(f"deduplication_window must be positive, got {self.deduplication_window}")
        if self.recent_alerts_limit < 0:
            raise ConfigurationError(f"recent_alerts_limit must not be negative, got {self.recent_alerts_limit}")
        for rule in self.suppression_rules:
            if not isinstance(rule, SuppressionRule):
                raise ConfigurationError(f"Not a suppression rule: {rule!r}")

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "EngineConfig":
        """Build a config from the environment, after loading a .env file"""
        load_dotenv(dotenv_path)

        try:
            window = float(os.getenv("DEDUPLICATION_WINDOW_SECONDS", str(DEDUPLICATION_WINDOW_SECONDS)))
            recent_limit = int(os.getenv("RECENT_ALERTS_LIMIT", str(RECENT_ALERTS_LIMIT)))
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e

        keywords_env = os.getenv("CRITICAL_KEYWORDS")
        keywords = (
            frozenset(k.strip() for k in keywords_env.split(",") if k.strip())
            if keywords_env is not None
            else DEFAULT_CRITICAL_KEYWORDS
        )

        rules_file = os.getenv("SUPPRESSION_RULES_FILE")
        rules = load_rules_from_file(rules_file) if rules_file else default_suppression_rules()

        config = cls(
            deduplication_window=window,
            critical_keywords=keywords,
            suppression_rules=rules,
            recent_alerts_limit=recent_limit,
            redis_url=os.getenv("REDIS_URL") or None,
        )
        logger.debug(f"[CONFIG] Resolved {config.describe()}")
        return config

    def with_overrides(self, **overrides) -> "EngineConfig":
        return replace(self, **overrides)

    def describe(self) -> dict:
        return {
            "deduplication_window": self.deduplication_window,
            "critical_keywords": sorted(self.critical_keywords),
            "suppression_rules": [rule.name for rule in self.suppression_rules],
            "recent_alerts_limit": self.recent_alerts_limit,
            "redis": bool(self.redis_url),
        }
