"""Ban and suspension state embedded as ``status`` in ``users/{uid}``.

``banned`` and ``suspended`` are independent flags: banning leaves the
suspension untouched and vice versa, so a user can carry both at once.
Clearing resets both in one write and is used for unban and unsuspend alike.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from iskate_admin import store
from iskate_admin.constants import USERS_COLLECTION

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UserStatus:
    banned: bool = False
    suspended: bool = False
    reason: str = ""
    banned_at: datetime | None = None
    suspended_at: datetime | None = None
    unsuspend_date: datetime | None = None

    @property
    def is_active(self) -> bool:
        return not (self.banned or self.suspended)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "UserStatus":
        if not isinstance(data, Mapping):
            return cls()
        return cls(
            banned=data.get("banned") is True,
            suspended=data.get("suspended") is True,
            reason=str(data.get("reason") or ""),
            banned_at=_as_datetime(data.get("bannedAt")),
            suspended_at=_as_datetime(data.get("suspendedAt")),
            unsuspend_date=_as_datetime(data.get("unsuspendDate")),
        )


def _as_datetime(value: Any) -> datetime | None:
    # Firestore hands back DatetimeWithNanoseconds, a datetime subclass.
    return value if isinstance(value, datetime) else None


def _user_path(uid: str) -> str:
    if not uid or "/" in uid:
        raise ValueError(f"Invalid user id: {uid!r}")
    return f"{USERS_COLLECTION}/{uid}"


def _write_status(uid: str, fields: Mapping[str, Any]) -> None:
    store.merge_document(_user_path(uid), {"status": dict(fields)})


def get_user_status(uid: str) -> UserStatus:
    """Read the status of ``uid``; users without a profile get the default status."""

    profile = store.get_document(_user_path(uid)) or {}
    return UserStatus.from_mapping(profile.get("status"))


def ban_user(uid: str, reason: str | None = None) -> None:
    _write_status(
        uid,
        {
            "banned": True,
            "reason": reason or "",
            "bannedAt": datetime.now(timezone.utc),
            "unsuspendDate": None,
        },
    )
    logger.info("Banned %s", uid)


def suspend_user(uid: str, until: datetime, reason: str | None = None) -> None:
    if until.tzinfo is None:
        until = until.replace(tzinfo=timezone.utc)
    _write_status(
        uid,
        {
            "suspended": True,
            "reason": reason or "",
            "suspendedAt": datetime.now(timezone.utc),
            "unsuspendDate": until,
        },
    )
    logger.info("Suspended %s until %s", uid, until.isoformat())


def clear_user_status(uid: str) -> None:
    """Lift any ban and suspension on ``uid``."""

    _write_status(
        uid,
        {
            "banned": False,
            "suspended": False,
            "reason": "",
            "unsuspendDate": None,
        },
    )
    logger.info("Cleared ban/suspension for %s", uid)


unban_user = clear_user_status
unsuspend_user = clear_user_status


def suspension_end(days: int, *, now: datetime | None = None) -> datetime:
    """Return the reinstatement time for a suspension lasting ``days`` days."""

    if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
        raise ValueError("Suspension length must be a positive number of days")
    start = now or datetime.now(timezone.utc)
    return start + timedelta(days=days)


__all__ = [
    "UserStatus",
    "get_user_status",
    "ban_user",
    "suspend_user",
    "clear_user_status",
    "unban_user",
    "unsuspend_user",
    "suspension_end",
]
