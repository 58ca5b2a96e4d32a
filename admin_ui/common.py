"""Shared helpers for the portal views."""
from __future__ import annotations

from typing import Any, Iterable, Sequence

import streamlit as st

from iskate_admin.constants import ROLE_NAMES
from iskate_admin.user_service import PortalUser
from utils.time_utils import format_timestamp

ROLE_LABELS = {
    "owner": "Owner",
    "admin": "Admin",
    "mod": "Mod",
}


def role_label(role: str) -> str:
    return ROLE_LABELS.get(role, role.title())


def roles_summary(roles: Iterable[str]) -> str:
    held = [role_label(role) for role in ROLE_NAMES if role in set(roles)]
    return ", ".join(held) if held else "—"


def user_rows(users: Sequence[PortalUser], *, include_status: bool = False) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for user in users:
        row: dict[str, Any] = {
            "Avatar": user.photo_url or "",
            "Username": user.username or "—",
            "UID": user.uid,
            "Roles": roles_summary(user.roles),
        }
        if include_status:
            row["Reason"] = user.status.reason or "—"
            row["Banned at"] = format_timestamp(user.status.banned_at)
            row["Suspended until"] = format_timestamp(user.status.unsuspend_date, with_time=False)
        rows.append(row)
    return rows


def render_user_table(users: Sequence[PortalUser], *, include_status: bool = False) -> None:
    st.dataframe(
        user_rows(users, include_status=include_status),
        hide_index=True,
        width="stretch",
        column_config={"Avatar": st.column_config.ImageColumn("Avatar", width="small")},
    )


def confirm_and_submit(label: str, *, key: str, prompt: str, danger: bool = False) -> bool:
    """Two-step button: the action only fires once the operator ticks ``prompt``."""

    confirmed = st.checkbox(prompt, key=f"{key}-confirm")
    return st.button(label, key=key, type="primary" if danger else "secondary", disabled=not confirmed)


__all__ = [
    "ROLE_LABELS",
    "role_label",
    "roles_summary",
    "user_rows",
    "render_user_table",
    "confirm_and_submit",
]
