"""Streamlit entry point for the iSkate admin portal."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

import streamlit as st
from dotenv import find_dotenv, load_dotenv


# Load project-level environment variables before importing modules that read them
ROOT_ENV = find_dotenv(usecwd=True)
if ROOT_ENV:
    load_dotenv(ROOT_ENV, override=False)
ENV_PATH = Path(__file__).resolve().parent / ".env"
if ENV_PATH.is_file():
    load_dotenv(ENV_PATH, override=False)


from activity_log import get_activity_logging_status, init_activity_log, log_event
from firebase_auth import FirebaseAuthError, sign_in
from iskate_admin.auth import (
    clear_operator_session,
    ensure_active_operator_session,
    operator_display_name,
    operator_email,
    operator_error_message,
    operator_roles,
    set_operator_error,
    store_operator_session,
    verify_operator_session,
    verify_operator_token,
)
from iskate_admin.policy import can_access_portal
from iskate_admin.store import StoreError
from iskate_admin.user_service import get_profile
from utils.network import get_client_ip

from admin_ui import app_management, dashboard, reports, users


logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("iskate_admin.app")

st.set_page_config(page_title="iSkate Admin Portal", page_icon="🛹", layout="wide")
init_activity_log()

NAV_KEY = "iskate_nav_selection"
SECTIONS = ("Dashboard", "User Management", "Reports", "App Management")


def _trigger_rerun() -> None:
    st.rerun()


def _log_admin_event(
    action: str,
    result: str,
    *,
    admin_identifier: str | None,
    params: Sequence[str | None] | None = None,
    metadata: Mapping | None = None,
) -> None:
    log_event(
        type="admin",
        action=action,
        result=result,
        user_id=admin_identifier,
        params=params,
        client_ip=get_client_ip(),
        metadata=metadata,
    )


def _log_moderation_event(
    action: str,
    result: str,
    *,
    admin_identifier: str | None,
    params: Sequence[str | None],
    metadata: Mapping | None = None,
) -> None:
    log_event(
        type="moderation",
        action=action,
        result=result,
        user_id=admin_identifier,
        params=params,
        client_ip=get_client_ip(),
        metadata=metadata,
    )


def _render_login() -> None:
    st.title("🛹 iSkate Admin Portal")
    st.subheader("Admin Login")

    if error := operator_error_message():
        st.error(error)

    with st.form("admin_login_form", clear_on_submit=False):
        email = st.text_input("Email", placeholder="Enter your email", max_chars=120, key="admin_login_email")
        password = st.text_input("Password", type="password", placeholder="Enter your password")
        submitted = st.form_submit_button("Login", type="primary")

    if not submitted:
        return

    normalized_email = email.strip()
    if not normalized_email or not password:
        st.error("Please enter both your email and password.")
        return

    try:
        with st.spinner("Logging in..."):
            session = sign_in(normalized_email, password)
            uid = verify_operator_token(session.id_token, expected_uid=session.uid)
            roles = operator_roles({"uid": uid}, refresh=True)
            username, photo_url = get_profile(uid)
    except FirebaseAuthError as exc:
        st.error(str(exc))
        _log_admin_event("login", "fail", admin_identifier=normalized_email, params=[normalized_email, "signin", exc.code])
        return
    except StoreError as exc:
        st.error(f"Login failed. Please try again. ({exc})")
        _log_admin_event("login", "fail", admin_identifier=normalized_email, params=[normalized_email, "roles", str(exc)])
        return

    if not can_access_portal(roles):
        clear_operator_session()
        st.error("You do not currently have admin access.")
        _log_admin_event("login", "fail", admin_identifier=normalized_email, params=[normalized_email, "role-check"])
        return

    store_operator_session(session, username=username, photo_url=photo_url, verified_uid=uid)
    _log_admin_event("login", "success", admin_identifier=normalized_email, params=[normalized_email, "signin"])
    logger.info("Operator %s signed in", uid)
    st.session_state[NAV_KEY] = SECTIONS[0]
    _trigger_rerun()


def _sidebar(operator: Mapping[str, Any], roles: frozenset[str]) -> str:
    with st.sidebar:
        st.header("iSkate Admin Portal")

        if operator.get("photo_url"):
            st.image(str(operator["photo_url"]), width=48)
        name = operator_display_name(operator)
        email = operator_email(operator) or "—"
        st.markdown(f"**{name}**\n\n{email}" if name != email else f"**{email}**")
        st.caption("Roles: " + (", ".join(sorted(roles)) or "—"))

        logging_enabled, disabled_reason = get_activity_logging_status()
        if not logging_enabled:
            st.warning(
                f"Activity logging is disabled ({disabled_reason or 'unknown reason'}); "
                "operator actions are not being audited."
            )

        selection = st.radio("Navigation", options=SECTIONS, key=NAV_KEY)

        if st.button("Sign out", type="secondary"):
            identifier = operator_email(operator)
            _log_admin_event("logout", "success", admin_identifier=identifier, params=[identifier])
            clear_operator_session()
            _trigger_rerun()

    return selection


def main() -> None:
    operator = ensure_active_operator_session()
    if operator:
        operator = verify_operator_session(operator)
    if not operator:
        _render_login()
        return

    try:
        roles = operator_roles(operator)
    except StoreError as exc:
        st.error(f"Failed to load your roles: {exc}")
        return

    if not can_access_portal(roles):
        clear_operator_session()
        set_operator_error("Your admin access has been revoked.")
        _trigger_rerun()

    section = _sidebar(operator, roles)

    if section == "Dashboard":
        dashboard.render_dashboard(operator)
    elif section == "User Management":
        users.render_user_management(
            operator,
            actor_roles=roles,
            log_admin_event=_log_admin_event,
            log_moderation_event=_log_moderation_event,
            trigger_rerun=_trigger_rerun,
            admin_email_lookup=operator_email,
        )
    elif section == "Reports":
        reports.render_reports(
            operator,
            log_moderation_event=_log_moderation_event,
            trigger_rerun=_trigger_rerun,
            admin_email_lookup=operator_email,
        )
    else:
        app_management.render_app_management(
            operator,
            actor_roles=roles,
            log_admin_event=_log_admin_event,
            trigger_rerun=_trigger_rerun,
            admin_email_lookup=operator_email,
        )


if __name__ == "__main__":
    main()
