"""Global kill switch for the iSkate mobile app (``app/main.active``)."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from iskate_admin import store
from iskate_admin.constants import APP_STATUS_DOCUMENT
from iskate_admin.policy import require_app_toggle

logger = logging.getLogger(__name__)


class AppStatusNotFound(store.RecordNotFound):
    """Raised when the application status document has not been created."""

    def __init__(self) -> None:
        super().__init__(APP_STATUS_DOCUMENT)


def get_app_status() -> tuple[bool, datetime | None]:
    """Return the current flag together with the version it was read at."""

    data, version = store.get_document_version(APP_STATUS_DOCUMENT)
    if data is None:
        raise AppStatusNotFound()
    return data.get("active") is True, version


def get_app_active() -> bool:
    active, _version = get_app_status()
    return active


def set_app_active(
    active: bool,
    *,
    actor_roles: Iterable[str],
    expected_version: datetime | None = None,
) -> None:
    """Write the flag; with ``expected_version`` the write fails if someone else wrote first."""

    require_app_toggle(actor_roles)
    try:
        store.update_document(
            APP_STATUS_DOCUMENT,
            {"active": bool(active)},
            if_unchanged_since=expected_version,
        )
    except store.RecordNotFound as exc:
        raise AppStatusNotFound() from exc
    logger.warning("Application %s", "reactivated" if active else "deactivated")


def toggle_app_active(*, actor_roles: Iterable[str]) -> bool:
    """Flip the flag and return the new value.

    A concurrent toggle between the read and the write makes this raise
    :class:`~iskate_admin.store.ConcurrentUpdateError` instead of silently
    overwriting it.
    """

    roles = frozenset(actor_roles)
    require_app_toggle(roles)
    current, version = get_app_status()
    set_app_active(not current, actor_roles=roles, expected_version=version)
    return not current


__all__ = [
    "AppStatusNotFound",
    "get_app_status",
    "get_app_active",
    "set_app_active",
    "toggle_app_active",
]
