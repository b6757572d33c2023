"""Timestamp helpers. Timestamps are stored as ISO-8601 UTC strings."""

from datetime import datetime, timezone


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
