"""Identifier and timestamp helpers."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone


def new_id() -> str:
    """Random UUID4 string."""
    return str(uuid.uuid4())


def utcnow_iso() -> str:
    """Current UTC time, ISO-8601 with microseconds (``2024-01-01T12:00:00.000000+00:00``)."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")
