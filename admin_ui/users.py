"""User management: directory, bans, suspensions and role grants."""
from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence

import streamlit as st

from iskate_admin.auth import operator_roles
from iskate_admin.constants import DEFAULT_SUSPENSION_DAYS, ROLE_FILTER_OPTIONS, USER_SORT_OPTIONS
from iskate_admin.policy import PermissionDenied, manageable_roles
from iskate_admin.roles import set_user_role
from iskate_admin.status import ban_user, clear_user_status, suspend_user, suspension_end
from iskate_admin.store import StoreError
from iskate_admin.user_service import PortalUser, banned_users, filter_users, list_users, suspended_users
from utils.time_utils import format_timestamp

from . import common

USER_SEARCH_STATE_KEY = "iskate_user_directory_state"
SORT_LABELS = {"username": "Sort by Username", "uid": "Sort by UID", "roles": "Sort by Roles"}
FILTER_LABELS = {"all": "All Users", "admin": "Admin", "mod": "Mod", "owner": "Owner"}


def _render_status_actions(
    user: PortalUser,
    *,
    administrator: Mapping[str, Any],
    log_moderation_event: Callable[..., None],
    trigger_rerun: Callable[[], None],
    admin_email_lookup: Callable[[Mapping[str, Any]], str | None],
) -> None:
    identifier = admin_email_lookup(administrator)
    ban_col, suspend_col = st.columns(2)

    with ban_col.form(f"ban-form-{user.uid}"):
        st.markdown("**Ban user**")
        ban_reason = st.text_input("Reason for ban", key=f"ban-reason-{user.uid}")
        ban_confirmed = st.checkbox(f"Ban {user.display_name}", key=f"ban-confirm-{user.uid}")
        ban_submitted = st.form_submit_button("Ban User", type="primary")

    if ban_submitted:
        if not ban_confirmed:
            st.warning("Tick the confirmation box to ban this user.")
        else:
            try:
                ban_user(user.uid, ban_reason.strip() or None)
            except StoreError as exc:
                st.error(f"Could not ban the user: {exc}")
                log_moderation_event(
                    "user ban",
                    "fail",
                    admin_identifier=identifier,
                    params=[user.uid, ban_reason, None, None, None],
                    metadata={"error": str(exc)},
                )
            else:
                log_moderation_event(
                    "user ban",
                    "success",
                    admin_identifier=identifier,
                    params=[user.uid, ban_reason, None, None, None],
                )
                st.success("User banned.")
                trigger_rerun()

    with suspend_col.form(f"suspend-form-{user.uid}"):
        st.markdown("**Suspend user**")
        days = st.number_input(
            "Suspend for how many days?",
            min_value=1,
            value=DEFAULT_SUSPENSION_DAYS,
            step=1,
            key=f"suspend-days-{user.uid}",
        )
        suspend_reason = st.text_input("Reason for suspension", key=f"suspend-reason-{user.uid}")
        suspend_submitted = st.form_submit_button("Suspend User")

    if suspend_submitted:
        try:
            until = suspension_end(int(days))
            suspend_user(user.uid, until, suspend_reason.strip() or None)
        except (StoreError, ValueError) as exc:
            st.error(f"Could not suspend the user: {exc}")
            log_moderation_event(
                "user suspend",
                "fail",
                admin_identifier=identifier,
                params=[user.uid, suspend_reason, str(days), None, None],
                metadata={"error": str(exc)},
            )
        else:
            log_moderation_event(
                "user suspend",
                "success",
                admin_identifier=identifier,
                params=[user.uid, suspend_reason, str(days), until.isoformat(), None],
            )
            st.success(f"User suspended until {format_timestamp(until, with_time=False)}.")
            trigger_rerun()


def _render_role_actions(
    user: PortalUser,
    *,
    administrator: Mapping[str, Any],
    actor_roles: frozenset[str],
    log_admin_event: Callable[..., None],
    trigger_rerun: Callable[[], None],
    admin_email_lookup: Callable[[Mapping[str, Any]], str | None],
) -> None:
    st.markdown("**Manage roles**")
    allowed = manageable_roles(actor_roles)
    if not allowed:
        st.caption("You cannot change roles.")
        return

    for role in allowed:
        holds = role in user.roles
        label_col, button_col = st.columns([3, 1])
        label_col.write(f"{common.role_label(role)}: {'granted' if holds else 'not granted'}")
        button_label = f"Remove {common.role_label(role)}" if holds else f"Give {common.role_label(role)}"
        if not button_col.button(button_label, key=f"role-{role}-{user.uid}"):
            continue

        identifier = admin_email_lookup(administrator)
        try:
            set_user_role(user.uid, role, not holds, actor_roles=actor_roles)
        except (StoreError, PermissionDenied) as exc:
            st.error(f"Could not update the role: {exc}")
            log_admin_event(
                "role change",
                "fail",
                admin_identifier=identifier,
                params=[user.uid, role, "revoke" if holds else "grant", str(exc), None],
            )
        else:
            log_admin_event(
                "role change",
                "success",
                admin_identifier=identifier,
                params=[user.uid, role, "revoke" if holds else "grant", None, None],
            )
            if user.uid == administrator.get("uid"):
                operator_roles(administrator, refresh=True)
            trigger_rerun()


def _render_reinstate_list(
    title: str,
    users: Sequence[PortalUser],
    *,
    action_label: str,
    action_name: str,
    administrator: Mapping[str, Any],
    log_moderation_event: Callable[..., None],
    trigger_rerun: Callable[[], None],
    admin_email_lookup: Callable[[Mapping[str, Any]], str | None],
) -> None:
    st.subheader(title)
    if not users:
        st.caption(f"No {title.lower()}.")
        return

    common.render_user_table(users, include_status=True)
    for user in users:
        with st.container(border=True):
            st.write(f"**{user.display_name}** · {user.uid}")
            if not common.confirm_and_submit(
                action_label,
                key=f"{action_name}-{user.uid}",
                prompt=f"{action_label} {user.display_name}",
            ):
                continue

            identifier = admin_email_lookup(administrator)
            try:
                clear_user_status(user.uid)
            except StoreError as exc:
                st.error(f"Could not update the user: {exc}")
                log_moderation_event(
                    action_name,
                    "fail",
                    admin_identifier=identifier,
                    params=[user.uid, None, None, None, None],
                    metadata={"error": str(exc)},
                )
            else:
                log_moderation_event(
                    action_name,
                    "success",
                    admin_identifier=identifier,
                    params=[user.uid, None, None, None, None],
                )
                trigger_rerun()


def render_user_management(
    admin_user: Mapping[str, Any],
    *,
    actor_roles: frozenset[str],
    log_admin_event: Callable[..., None],
    log_moderation_event: Callable[..., None],
    trigger_rerun: Callable[[], None],
    admin_email_lookup: Callable[[Mapping[str, Any]], str | None],
) -> None:
    st.title("👥 User Management")
    state = st.session_state.setdefault(
        USER_SEARCH_STATE_KEY,
        {"search": "", "sort": "username", "role": "all"},
    )

    search_col, sort_col, filter_col = st.columns([2, 1, 1])
    state["search"] = search_col.text_input(
        "Search",
        value=state.get("search", ""),
        placeholder="Search by username or UID...",
    )
    state["sort"] = sort_col.selectbox(
        "Sort",
        options=USER_SORT_OPTIONS,
        index=USER_SORT_OPTIONS.index(state.get("sort", "username")),
        format_func=SORT_LABELS.get,
    )
    state["role"] = filter_col.selectbox(
        "Filter",
        options=ROLE_FILTER_OPTIONS,
        index=ROLE_FILTER_OPTIONS.index(state.get("role", "all")),
        format_func=FILTER_LABELS.get,
    )

    try:
        with st.spinner("Loading users..."):
            users = list_users()
    except StoreError as exc:
        st.error(f"Failed to load users: {exc}")
        return

    visible = filter_users(users, role=state["role"], search=state["search"], sort=state["sort"])

    st.subheader("Users")
    st.caption(f"{len(visible)} active users")
    if visible:
        common.render_user_table(visible)
        selected_uid = st.selectbox(
            "User actions",
            options=[user.uid for user in visible],
            format_func=lambda uid: next(u.display_name for u in visible if u.uid == uid),
        )
        selected = next(user for user in visible if user.uid == selected_uid)
        with st.container(border=True):
            _render_status_actions(
                selected,
                administrator=admin_user,
                log_moderation_event=log_moderation_event,
                trigger_rerun=trigger_rerun,
                admin_email_lookup=admin_email_lookup,
            )
            _render_role_actions(
                selected,
                administrator=admin_user,
                actor_roles=actor_roles,
                log_admin_event=log_admin_event,
                trigger_rerun=trigger_rerun,
                admin_email_lookup=admin_email_lookup,
            )
    else:
        st.info("No users match the current filters.")

    st.divider()
    _render_reinstate_list(
        "Banned Users",
        banned_users(users),
        action_label="Unban",
        action_name="user unban",
        administrator=admin_user,
        log_moderation_event=log_moderation_event,
        trigger_rerun=trigger_rerun,
        admin_email_lookup=admin_email_lookup,
    )
    st.divider()
    _render_reinstate_list(
        "Suspended Users",
        suspended_users(users),
        action_label="Unsuspend",
        action_name="user unsuspend",
        administrator=admin_user,
        log_moderation_event=log_moderation_event,
        trigger_rerun=trigger_rerun,
        admin_email_lookup=admin_email_lookup,
    )


__all__ = ["render_user_management"]
