"""Landing view with headline numbers and recent operator activity."""
from __future__ import annotations

from typing import Any, Mapping

import streamlit as st

from activity_log import fetch_recent_activity, is_activity_logging_enabled
from iskate_admin.app_settings import AppStatusNotFound, get_app_active
from iskate_admin.constants import RECENT_ACTIVITY_LIMIT
from iskate_admin.reports import list_reports, split_reports
from iskate_admin.store import StoreError
from iskate_admin.user_service import banned_users, list_users, suspended_users
from utils.time_utils import format_timestamp


def _render_app_status() -> None:
    try:
        active = get_app_active()
    except AppStatusNotFound:
        st.warning("App document not found.")
        return
    except StoreError as exc:
        st.error(f"Failed to load app status: {exc}")
        return
    if active:
        st.success("The iSkate app is active.")
    else:
        st.error("The iSkate app is deactivated.")


def _render_recent_activity() -> None:
    st.subheader("Recent operator activity")
    if not is_activity_logging_enabled():
        st.caption("Activity logging is disabled.")
        return
    try:
        entries = fetch_recent_activity(limit=RECENT_ACTIVITY_LIMIT)
    except StoreError as exc:
        st.error(f"Failed to load activity: {exc}")
        return
    if not entries:
        st.caption("No activity recorded yet.")
        return
    st.dataframe(
        [
            {
                "When": format_timestamp(entry.timestamp),
                "Operator": entry.user_id or "—",
                "Action": entry.action,
                "Result": entry.result,
                "Target": entry.params[0] or "—",
            }
            for entry in entries
        ],
        hide_index=True,
        width="stretch",
    )


def render_dashboard(admin_user: Mapping[str, Any]) -> None:
    st.title("🛹 Welcome to the Admin Dashboard")

    try:
        users = list_users()
        pending, _resolved = split_reports(list_reports())
    except StoreError as exc:
        st.error(f"Failed to load overview: {exc}")
    else:
        cols = st.columns(4)
        cols[0].metric("Users", f"{len(users):,}")
        cols[1].metric("Banned", f"{len(banned_users(users)):,}")
        cols[2].metric("Suspended", f"{len(suspended_users(users)):,}")
        cols[3].metric("Pending reports", f"{len(pending):,}")

    _render_app_status()
    _render_recent_activity()


__all__ = ["render_dashboard"]
