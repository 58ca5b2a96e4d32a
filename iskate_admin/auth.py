"""Operator session handling on top of Streamlit session state."""
from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

import streamlit as st
from firebase_admin import exceptions as firebase_exceptions
from google.auth import exceptions as google_auth_exceptions

from firebase_auth import AuthSession, FirebaseAuthError, refresh_id_token, verify_id_token
from iskate_admin.roles import fetch_user_roles

logger = logging.getLogger(__name__)

_OPERATOR_SESSION_KEY = "iskate_operator"
_OPERATOR_ERROR_KEY = "iskate_operator_error"
_OPERATOR_ROLES_KEY = "iskate_operator_roles"
_OPERATOR_VERIFIED_KEY = "iskate_operator_verified"
_TOKEN_LEEWAY = timedelta(minutes=2)
_CLOCK_SKEW_RETRY_SECONDS = 2
_VERIFICATION_ERRORS = (
    ValueError,
    firebase_exceptions.FirebaseError,
    google_auth_exceptions.GoogleAuthError,
)


def _parse_iso_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        dt = value
    elif value:
        try:
            dt = datetime.fromisoformat(str(value))
        except ValueError:
            return None
    else:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def store_operator_session(
    session: AuthSession,
    *,
    username: str | None = None,
    photo_url: str | None = None,
    previous: Mapping[str, Any] | None = None,
    verified_uid: str | None = None,
) -> None:
    """Remember the signed-in operator; blanks fall back to ``previous`` values.

    ``verified_uid`` records that ``session.id_token`` already passed
    :func:`verify_operator_token` so the next run does not verify it again.
    """

    prev = dict(previous) if previous else {}
    st.session_state[_OPERATOR_SESSION_KEY] = {
        "uid": session.uid or prev.get("uid", ""),
        "email": session.email or prev.get("email", ""),
        "username": username or session.display_name or prev.get("username", ""),
        "photo_url": photo_url or prev.get("photo_url"),
        "id_token": session.id_token or prev.get("id_token", ""),
        "refresh_token": session.refresh_token or prev.get("refresh_token", ""),
        "expires_at": session.expires_at.isoformat(),
    }
    st.session_state[_OPERATOR_ERROR_KEY] = None
    if verified_uid:
        st.session_state[_OPERATOR_VERIFIED_KEY] = {"id_token": session.id_token, "uid": verified_uid}


def clear_operator_session() -> None:
    st.session_state[_OPERATOR_SESSION_KEY] = None
    st.session_state[_OPERATOR_ERROR_KEY] = None
    st.session_state.pop(_OPERATOR_ROLES_KEY, None)
    st.session_state.pop(_OPERATOR_VERIFIED_KEY, None)


def operator_session_from_state() -> dict[str, Any] | None:
    raw = st.session_state.get(_OPERATOR_SESSION_KEY)
    if not isinstance(raw, Mapping):
        return None

    data = dict(raw)
    expires_at = _parse_iso_datetime(data.get("expires_at"))
    if not expires_at or not data.get("id_token") or not data.get("refresh_token"):
        clear_operator_session()
        return None

    data["expires_at"] = expires_at
    return data


def ensure_active_operator_session() -> dict[str, Any] | None:
    """Return the current operator session, refreshing the ID token near expiry."""

    operator = operator_session_from_state()
    if not operator:
        return None

    if operator["expires_at"] - datetime.now(timezone.utc) > _TOKEN_LEEWAY:
        return operator

    try:
        refreshed = refresh_id_token(str(operator["refresh_token"]))
    except FirebaseAuthError as exc:
        logger.info("Operator token refresh failed: %s", exc)
        clear_operator_session()
        st.session_state[_OPERATOR_ERROR_KEY] = f"Your session has expired: {exc}"
        return None

    store_operator_session(refreshed, previous=operator)
    return operator_session_from_state()


def verify_operator_token(id_token: str, *, expected_uid: str | None = None) -> str:
    """Verify ``id_token`` with the Admin SDK and return its ``uid`` claim.

    A token minted a moment ahead of the local clock is retried once. Any
    other verification failure, or a ``uid`` different from ``expected_uid``,
    raises :class:`FirebaseAuthError`.
    """

    try:
        claims = verify_id_token(id_token)
    except _VERIFICATION_ERRORS as exc:
        if "Token used too early" not in str(exc):
            raise FirebaseAuthError(f"Could not verify your sign-in: {exc}", code="INVALID_ID_TOKEN") from exc
        time.sleep(_CLOCK_SKEW_RETRY_SECONDS)
        try:
            claims = verify_id_token(id_token)
        except _VERIFICATION_ERRORS as retry_exc:
            raise FirebaseAuthError(
                f"Could not verify your sign-in: {retry_exc}", code="INVALID_ID_TOKEN"
            ) from retry_exc

    uid = str(claims.get("uid") or claims.get("sub") or "")
    if not uid or (expected_uid and uid != expected_uid):
        raise FirebaseAuthError("The sign-in token does not belong to this account.", code="UID_MISMATCH")
    return uid


def verify_operator_session(operator: Mapping[str, Any]) -> dict[str, Any] | None:
    """Check the restored session's ID token, signing the operator out when it fails.

    The outcome is remembered per token, so only a refreshed token is verified again.
    """

    id_token = str(operator.get("id_token") or "")
    verified = st.session_state.get(_OPERATOR_VERIFIED_KEY)
    if isinstance(verified, Mapping) and verified.get("id_token") == id_token:
        return dict(operator, uid=verified["uid"])

    try:
        uid = verify_operator_token(id_token, expected_uid=str(operator.get("uid") or "") or None)
    except FirebaseAuthError as exc:
        logger.warning("Operator token verification failed: %s", exc)
        clear_operator_session()
        st.session_state[_OPERATOR_ERROR_KEY] = str(exc)
        return None

    st.session_state[_OPERATOR_VERIFIED_KEY] = {"id_token": id_token, "uid": uid}
    return dict(operator, uid=uid)


def operator_roles(operator: Mapping[str, Any], *, refresh: bool = False) -> frozenset[str]:
    """Return the operator's roles, cached in the session until ``refresh``."""

    cached = st.session_state.get(_OPERATOR_ROLES_KEY)
    if not refresh and isinstance(cached, frozenset):
        return cached
    roles = fetch_user_roles(str(operator.get("uid") or ""))
    st.session_state[_OPERATOR_ROLES_KEY] = roles
    return roles


def operator_display_name(operator: Mapping[str, Any]) -> str:
    username = str(operator.get("username") or "").strip()
    email = str(operator.get("email") or "").strip()
    return username or email or "Operator"


def operator_email(operator: Mapping[str, Any] | None) -> str | None:
    if not operator:
        return None
    email = str(operator.get("email") or "").strip()
    return email or None


def operator_error_message() -> str | None:
    raw = st.session_state.get(_OPERATOR_ERROR_KEY)
    if isinstance(raw, str) and raw.strip():
        return raw
    return None


def set_operator_error(message: str | None) -> None:
    st.session_state[_OPERATOR_ERROR_KEY] = message


__all__ = [
    "store_operator_session",
    "clear_operator_session",
    "operator_session_from_state",
    "ensure_active_operator_session",
    "verify_operator_token",
    "verify_operator_session",
    "operator_roles",
    "operator_display_name",
    "operator_email",
    "operator_error_message",
    "set_operator_error",
]
