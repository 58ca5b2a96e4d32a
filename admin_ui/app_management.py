"""Application kill switch, shown to owners only."""
from __future__ import annotations

from typing import Any, Callable, Mapping

import streamlit as st

from iskate_admin.app_settings import AppStatusNotFound, get_app_status, set_app_active
from iskate_admin.policy import PermissionDenied, can_toggle_app
from iskate_admin.store import ConcurrentUpdateError, StoreError


def render_app_management(
    admin_user: Mapping[str, Any],
    *,
    actor_roles: frozenset[str],
    log_admin_event: Callable[..., None],
    trigger_rerun: Callable[[], None],
    admin_email_lookup: Callable[[Mapping[str, Any]], str | None],
) -> None:
    st.title("📱 App Management")
    st.caption("Manage app settings and status here.")

    if not can_toggle_app(actor_roles):
        st.info("Only owners can change the application status.")
        return

    try:
        active, version = get_app_status()
    except AppStatusNotFound:
        st.error("App document not found.")
        return
    except StoreError as exc:
        st.error(f"Failed to load app status: {exc}")
        return

    with st.container(border=True):
        st.subheader("⚠️ Danger Zone")
        st.markdown(":red[This area is only visible to owners. Use with caution!]")
        st.markdown(f"Current status: **{':green[Active]' if active else ':red[Inactive]'}**")

        verb = "deactivate" if active else "reactivate"
        confirmed = st.checkbox(
            f"I want to {verb} the app. This action cannot be easily undone.",
            key="app-toggle-confirm",
        )
        label = "Kill Switch (Deactivate App)" if active else "Reactivate App"
        if not st.button(label, type="primary", disabled=not confirmed, key="app-toggle"):
            return

    identifier = admin_email_lookup(admin_user)
    try:
        set_app_active(not active, actor_roles=actor_roles, expected_version=version)
    except ConcurrentUpdateError as exc:
        st.error(str(exc))
        outcome, error = "fail", str(exc)
    except (StoreError, PermissionDenied) as exc:
        st.error(f"Failed to update app status: {exc}")
        outcome, error = "fail", str(exc)
    else:
        outcome, error = "success", None

    log_admin_event(
        "app deactivate" if active else "app reactivate",
        outcome,
        admin_identifier=identifier,
        params=[str(not active).lower(), error, None, None, None],
    )
    if outcome == "success":
        st.session_state.pop("app-toggle-confirm", None)
        trigger_rerun()


__all__ = ["render_app_management"]
