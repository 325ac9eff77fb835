"""
Engine Constants and Default Values

This module centralizes the tunables used by the alert filtering pipeline.
Every value can be overridden through the environment; defaults match the
behaviour operators have been running with.

Usage:
    from alert_sentry.constants import (
        DEDUPLICATION_WINDOW_SECONDS,
        DEFAULT_CRITICAL_KEYWORDS,
        ...
    )
"""

import os

# ============================================================================
# DEDUPLICATION
# ============================================================================

# Same-fingerprint alerts closer than this are duplicates
DEDUPLICATION_WINDOW_SECONDS = float(os.getenv("DEDUPLICATION_WINDOW_SECONDS", "300"))  # 5 minutes

# Characters of the message that take part in the fingerprint
FINGERPRINT_MESSAGE_LENGTH = int(os.getenv("FINGERPRINT_MESSAGE_LENGTH", "50"))

# Redis key namespace for the shared dedup store
REDIS_DEDUP_KEY_PREFIX = os.getenv("REDIS_DEDUP_KEY_PREFIX", "alert_sentry:dedup:")

# ============================================================================
# FIELD DEFAULTS
# ============================================================================

DEFAULT_ALERT_TYPE = "UNKNOWN"
DEFAULT_CLIENT = "unknown-client"
DEFAULT_SERVER = "unknown-server"

NOT_SUPPRESSED_REASON = "Not suppressed"

# ============================================================================
# CRITICAL OVERRIDE
# ============================================================================

DEFAULT_CRITICAL_KEYWORDS = frozenset(
    keyword.strip().lower()
    for keyword in os.getenv("CRITICAL_KEYWORDS", "critical,outage,down,failed").split(",")
    if keyword.strip()
)

# ============================================================================
# PRIORITIZATION
# ============================================================================

SEVERITY_RANKS = {
    "CRITICAL": 4,
    "HIGH": 3,
    "MEDIUM": 2,
    "LOW": 1,
}
UNKNOWN_SEVERITY_RANK = 0

# ============================================================================
# HISTORY
# ============================================================================

RECENT_ALERTS_LIMIT = int(os.getenv("RECENT_ALERTS_LIMIT", "10"))

# Escalated alerts kept for get_recent_alerts()
RECENT_ALERTS_HISTORY = int(os.getenv("RECENT_ALERTS_HISTORY", "1000"))
