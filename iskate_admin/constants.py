"""Constants shared by the iSkate admin portal."""
from __future__ import annotations

from typing import Final, Mapping, Tuple

# Firestore layout
USERS_COLLECTION: Final[str] = "users"
ROLES_SUBCOLLECTION: Final[str] = "roles"
REPORTS_COLLECTION: Final[str] = "reports"
APP_STATUS_DOCUMENT: Final[str] = "app/main"

# Closed set of role names, highest rank first
ROLE_OWNER: Final[str] = "owner"
ROLE_ADMIN: Final[str] = "admin"
ROLE_MOD: Final[str] = "mod"
ROLE_NAMES: Tuple[str, ...] = (ROLE_OWNER, ROLE_ADMIN, ROLE_MOD)

ROLE_RANKS: Mapping[str, int] = {
    ROLE_OWNER: 3,
    ROLE_ADMIN: 2,
    ROLE_MOD: 1,
}

# Which role a holder may grant or revoke; nobody manages ``owner``.
ROLE_MANAGERS: Mapping[str, str] = {
    ROLE_ADMIN: ROLE_OWNER,
    ROLE_MOD: ROLE_ADMIN,
}

ROLE_FILTER_OPTIONS: Tuple[str, ...] = ("all", ROLE_ADMIN, ROLE_MOD, ROLE_OWNER)
USER_SORT_OPTIONS: Tuple[str, ...] = ("username", "uid", "roles")

REPORT_STATUS_OPEN: Final[str] = "Open"
REPORT_STATUS_RESOLVED: Final[str] = "Resolved"

DEFAULT_SUSPENSION_DAYS: Final[int] = 7
RECENT_ACTIVITY_LIMIT: Final[int] = 20

__all__ = [
    "USERS_COLLECTION",
    "ROLES_SUBCOLLECTION",
    "REPORTS_COLLECTION",
    "APP_STATUS_DOCUMENT",
    "ROLE_OWNER",
    "ROLE_ADMIN",
    "ROLE_MOD",
    "ROLE_NAMES",
    "ROLE_RANKS",
    "ROLE_MANAGERS",
    "ROLE_FILTER_OPTIONS",
    "USER_SORT_OPTIONS",
    "REPORT_STATUS_OPEN",
    "REPORT_STATUS_RESOLVED",
    "DEFAULT_SUSPENSION_DAYS",
    "RECENT_ACTIVITY_LIMIT",
]
