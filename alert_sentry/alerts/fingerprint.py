"""Deduplication fingerprints derived from an alert's semantic identity."""

import hashlib
from typing import Any, Mapping

from ..constants import (
    DEFAULT_ALERT_TYPE,
    DEFAULT_CLIENT,
    DEFAULT_SERVER,
    FINGERPRINT_MESSAGE_LENGTH,
)


class FingerprintGenerator:
    """
    Digest of ``(type, server, client, message[:50])``.

    Identity fields only: ``id``, ``timestamp``, ``severity`` and
    ``metadata`` never influence the fingerprint.
    """

    def __init__(self, message_length: int = FINGERPRINT_MESSAGE_LENGTH):
        self.message_length = message_length

    def fingerprint(self, alert: Mapping[str, Any]) -> str:
        """Generate deduplication fingerprint"""
        alert_type = as_text(alert.get("type")) or DEFAULT_ALERT_TYPE
        server = as_text(alert.get("server")) or DEFAULT_SERVER
        client = as_text(alert.get("client")) or DEFAULT_CLIENT
        message = as_text(alert.get("message"))[:self.message_length]

        fp_data = f"{alert_type}_{server}_{client}_{message}"
        return hashlib.md5(fp_data.encode("utf-8")).hexdigest()

    __call__ = fingerprint


def as_text(value: Any) -> str:
    # Falsy values fall back to the field default
    if not value:
        return ""
    return value if isinstance(value, str) else str(value)
