"""Timestamp formatting for the portal views."""
from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

DISPLAY_TZ = ZoneInfo((os.getenv("ADMIN_TIMEZONE") or "UTC").strip() or "UTC")


def format_timestamp(value: Any, *, with_time: bool = True) -> str:
    """Render Firestore timestamps (or ISO strings) in the portal's display zone."""

    if isinstance(value, str):
        if not value.strip():
            return "—"
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return value
    if not isinstance(value, datetime):
        return "—"
    aware = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    pattern = "%Y-%m-%d %H:%M" if with_time else "%Y-%m-%d"
    return aware.astimezone(DISPLAY_TZ).strftime(pattern)


__all__ = ["DISPLAY_TZ", "format_timestamp"]
