"""Role records stored under ``users/{uid}/roles/{role}``."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Sequence, TypeVar

from iskate_admin import store
from iskate_admin.constants import ROLE_NAMES, ROLE_RANKS, ROLES_SUBCOLLECTION, USERS_COLLECTION
from iskate_admin.policy import require_role_change

logger = logging.getLogger(__name__)

T = TypeVar("T")


def role_path(uid: str, role: str) -> str:
    return f"{USERS_COLLECTION}/{uid}/{ROLES_SUBCOLLECTION}/{role}"


def _is_active(record: dict[str, Any] | None) -> bool:
    return bool(record) and record.get("active") is True


def _require_known_role(role: str) -> None:
    if role not in ROLE_NAMES:
        raise ValueError(f"Unknown role: {role!r}")


def has_role(uid: str, role: str) -> bool:
    """Return whether ``uid`` holds ``role``; a missing record simply means no."""

    _require_known_role(role)
    return _is_active(store.get_document(role_path(uid, role)))


def fetch_roles_for_users(uids: Iterable[str]) -> dict[str, frozenset[str]]:
    """Resolve the effective role set of many users with a single batched read."""

    uid_list = [uid for uid in dict.fromkeys(uids) if uid]
    paths = {(uid, role): role_path(uid, role) for uid in uid_list for role in ROLE_NAMES}
    records = store.get_documents(paths.values())
    return {
        uid: frozenset(role for role in ROLE_NAMES if _is_active(records.get(paths[(uid, role)])))
        for uid in uid_list
    }


def fetch_user_roles(uid: str) -> frozenset[str]:
    """Return the roles whose record for ``uid`` is marked ``active``."""

    return fetch_roles_for_users([uid]).get(uid, frozenset())


def role_rank(roles: Iterable[str]) -> int:
    """Rank used for display ordering: owner 3, admin 2, mod 1, none 0."""

    return max((ROLE_RANKS.get(role, 0) for role in roles), default=0)


def sort_by_rank(
    items: Sequence[T],
    *,
    key: Callable[[T], Iterable[str]] | None = None,
    name: Callable[[T], str] | None = None,
) -> list[T]:
    """Stable sort putting the highest-ranked role holders first.

    With ``name`` equal ranks are ordered by that name, case-insensitively;
    without it they keep their input order.
    """

    roles_of = key or (lambda item: item)  # type: ignore[assignment,return-value]
    if name is None:
        return sorted(items, key=lambda item: -role_rank(roles_of(item)))
    return sorted(items, key=lambda item: (-role_rank(roles_of(item)), (name(item) or "").lower()))


def _write_role(uid: str, role: str, give: bool) -> None:
    payload: dict[str, Any] = {"active": bool(give)}
    if give:
        payload["grantedAt"] = datetime.now(timezone.utc)
    store.merge_document(role_path(uid, role), payload)
    logger.info("Role %s %s for %s", role, "granted" if give else "revoked", uid)


def set_user_role(uid: str, role: str, give: bool, *, actor_roles: Iterable[str]) -> None:
    """Grant or revoke ``role`` for ``uid`` on behalf of an operator holding ``actor_roles``."""

    require_role_change(actor_roles, role)
    _write_role(uid, role, give)


def bootstrap_role(uid: str, role: str, give: bool) -> None:
    """Write a role record without a policy check; for operator scripts only."""

    _require_known_role(role)
    _write_role(uid, role, give)


__all__ = [
    "role_path",
    "has_role",
    "fetch_user_roles",
    "fetch_roles_for_users",
    "role_rank",
    "sort_by_rank",
    "set_user_role",
    "bootstrap_role",
]
