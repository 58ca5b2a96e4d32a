"""Who may do what in the portal.

``owner`` manages ``admin``, ``admin`` manages ``mod`` and nobody manages
``owner``. Only owners may flip the application kill switch, and signing in
requires an active ``admin`` role. The views use these checks to decide which
controls to render; the service layer calls the ``require_*`` variants again
before writing.
"""
from __future__ import annotations

from typing import Iterable

from iskate_admin.constants import ROLE_ADMIN, ROLE_MANAGERS, ROLE_NAMES, ROLE_OWNER


class PermissionDenied(RuntimeError):
    """Raised when the acting operator lacks the role an action requires."""


def manageable_roles(actor_roles: Iterable[str]) -> tuple[str, ...]:
    held = set(actor_roles)
    return tuple(role for role in ROLE_NAMES if ROLE_MANAGERS.get(role) in held)


def can_manage_role(actor_roles: Iterable[str], role: str) -> bool:
    return role in manageable_roles(actor_roles)


def can_toggle_app(actor_roles: Iterable[str]) -> bool:
    return ROLE_OWNER in set(actor_roles)


def can_access_portal(actor_roles: Iterable[str]) -> bool:
    return ROLE_ADMIN in set(actor_roles)


def require_role_change(actor_roles: Iterable[str], role: str) -> None:
    if role not in ROLE_NAMES:
        raise ValueError(f"Unknown role: {role!r}")
    if not can_manage_role(actor_roles, role):
        if role == ROLE_OWNER:
            raise PermissionDenied("The owner role cannot be changed from the portal.")
        raise PermissionDenied(f"Only {ROLE_MANAGERS[role]}s can grant or revoke the {role} role.")


def require_app_toggle(actor_roles: Iterable[str]) -> None:
    if not can_toggle_app(actor_roles):
        raise PermissionDenied("Only owners can change the application status.")


__all__ = [
    "PermissionDenied",
    "manageable_roles",
    "can_manage_role",
    "can_toggle_app",
    "can_access_portal",
    "require_role_change",
    "require_app_toggle",
]
