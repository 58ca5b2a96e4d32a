"""User directory built from ``users`` profiles and their role records."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from iskate_admin import store
from iskate_admin.constants import ROLE_NAMES, USER_SORT_OPTIONS, USERS_COLLECTION
from iskate_admin.roles import fetch_roles_for_users, role_rank
from iskate_admin.status import UserStatus


@dataclass(slots=True)
class PortalUser:
    uid: str
    username: str = ""
    photo_url: str | None = None
    status: UserStatus = field(default_factory=UserStatus)
    roles: frozenset[str] = frozenset()

    @property
    def display_name(self) -> str:
        return self.username or self.uid

    @property
    def sorted_roles(self) -> list[str]:
        return [role for role in ROLE_NAMES if role in self.roles]


def _serialize_user(uid: str, data: Mapping[str, Any], roles: frozenset[str]) -> PortalUser:
    return PortalUser(
        uid=uid,
        username=str(data.get("username") or ""),
        photo_url=data.get("photoURL") or None,
        status=UserStatus.from_mapping(data.get("status")),
        roles=roles,
    )


def list_users() -> list[PortalUser]:
    """Load every profile plus its roles; role lookups go out as one batch."""

    documents = store.list_collection(USERS_COLLECTION)
    roles = fetch_roles_for_users(uid for uid, _data in documents)
    return [_serialize_user(uid, data, roles.get(uid, frozenset())) for uid, data in documents]


def get_profile(uid: str) -> tuple[str | None, str | None]:
    """Return ``(username, photo_url)`` from the user's profile, if any."""

    data = store.get_document(f"{USERS_COLLECTION}/{uid}") or {}
    return (data.get("username") or None), (data.get("photoURL") or None)


def _normalize_role_filter(role: str | None) -> str | None:
    normalized = (role or "").strip().lower()
    if not normalized or normalized == "all":
        return None
    if normalized not in ROLE_NAMES:
        raise ValueError(f"Unknown role filter: {role!r}")
    return normalized


def _matches_search(user: PortalUser, term: str) -> bool:
    return term in user.username.lower() or term in user.uid.lower()


def filter_users(
    users: Sequence[PortalUser],
    *,
    role: str | None = "all",
    search: str | None = "",
    sort: str = "username",
) -> list[PortalUser]:
    """Return the active users matching the role filter and search term, sorted.

    Banned or suspended users are always left out, whatever roles they hold.
    """

    if sort not in USER_SORT_OPTIONS:
        raise ValueError(f"Unknown sort option: {sort!r}")

    role_filter = _normalize_role_filter(role)
    term = (search or "").strip().lower()

    selected = [
        user
        for user in users
        if (role_filter is None or role_filter in user.roles)
        and (not term or _matches_search(user, term))
        and user.status.is_active
    ]

    if sort == "uid":
        return sorted(selected, key=lambda user: user.uid)
    if sort == "roles":
        return sorted(selected, key=lambda user: (-role_rank(user.roles), user.username.lower()))
    return sorted(selected, key=lambda user: user.username.lower())


def banned_users(users: Sequence[PortalUser]) -> list[PortalUser]:
    return [user for user in users if user.status.banned]


def suspended_users(users: Sequence[PortalUser]) -> list[PortalUser]:
    return [user for user in users if user.status.suspended]


__all__ = [
    "PortalUser",
    "list_users",
    "get_profile",
    "filter_users",
    "banned_users",
    "suspended_users",
]
