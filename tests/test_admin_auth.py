from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from firebase_admin import auth as admin_auth

from firebase_auth import AuthSession, FirebaseAuthError
from iskate_admin import auth as operator_auth


def _build_session(expires_in: timedelta, *, id_token: str = "id-token") -> AuthSession:
    return AuthSession(
        uid="operator-uid",
        email="ops@example.com",
        id_token=id_token,
        refresh_token="refresh-token",
        expires_at=datetime.now(timezone.utc) + expires_in,
        display_name=None,
    )


def test_store_and_clear_operator_session(monkeypatch):
    monkeypatch.setattr(operator_auth.st, "session_state", {})

    operator_auth.store_operator_session(_build_session(timedelta(hours=1)), username="sk8r", photo_url="https://img/p.png")
    operator = operator_auth.operator_session_from_state()
    assert operator is not None
    assert operator["username"] == "sk8r"
    assert operator_auth.operator_display_name(operator) == "sk8r"
    assert operator_auth.operator_email(operator) == "ops@example.com"

    operator_auth.clear_operator_session()
    assert operator_auth.operator_session_from_state() is None


def test_session_without_tokens_is_discarded(monkeypatch):
    monkeypatch.setattr(operator_auth.st, "session_state", {})
    operator_auth.store_operator_session(_build_session(timedelta(hours=1), id_token=""))

    assert operator_auth.operator_session_from_state() is None


def test_ensure_active_session_refreshes_near_expiry(monkeypatch):
    monkeypatch.setattr(operator_auth.st, "session_state", {})
    operator_auth.store_operator_session(_build_session(timedelta(minutes=1)), username="sk8r")

    refreshed = _build_session(timedelta(hours=1), id_token="new-token")
    monkeypatch.setattr(operator_auth, "refresh_id_token", lambda token: refreshed)

    active = operator_auth.ensure_active_operator_session()
    assert active is not None
    assert active["id_token"] == "new-token"
    assert active["username"] == "sk8r"
    assert operator_auth.operator_error_message() is None


def test_ensure_active_session_handles_refresh_failure(monkeypatch):
    monkeypatch.setattr(operator_auth.st, "session_state", {})
    operator_auth.store_operator_session(_build_session(timedelta(minutes=-1)))

    def fake_refresh(token):  # noqa: ARG001
        raise FirebaseAuthError("TOKEN_EXPIRED", code="TOKEN_EXPIRED")

    monkeypatch.setattr(operator_auth, "refresh_id_token", fake_refresh)

    assert operator_auth.ensure_active_operator_session() is None
    assert "TOKEN_EXPIRED" in operator_auth.operator_error_message()


def test_operator_roles_cached_until_refresh(monkeypatch, fake_firestore):
    monkeypatch.setattr(operator_auth.st, "session_state", {})
    fake_firestore.seed("users/operator-uid/roles/admin", {"active": True})
    operator = {"uid": "operator-uid"}

    assert operator_auth.operator_roles(operator) == frozenset({"admin"})
    fake_firestore.seed("users/operator-uid/roles/owner", {"active": True})
    assert operator_auth.operator_roles(operator) == frozenset({"admin"})
    assert operator_auth.operator_roles(operator, refresh=True) == frozenset({"admin", "owner"})

    operator_auth.clear_operator_session()
    assert operator_auth.operator_roles(operator) == frozenset({"admin", "owner"})
    assert len(fake_firestore.batch_calls) == 3


def test_verify_operator_token_returns_uid_claim(monkeypatch):
    monkeypatch.setattr(operator_auth, "verify_id_token", lambda token: {"uid": "operator-uid", "sub": "operator-uid"})

    assert operator_auth.verify_operator_token("id-token", expected_uid="operator-uid") == "operator-uid"


def test_verify_operator_token_rejects_invalid_token(monkeypatch):
    def reject(token):  # noqa: ARG001
        raise admin_auth.InvalidIdTokenError("Could not verify token signature.")

    monkeypatch.setattr(operator_auth, "verify_id_token", reject)

    with pytest.raises(FirebaseAuthError) as excinfo:
        operator_auth.verify_operator_token("forged-token", expected_uid="operator-uid")
    assert excinfo.value.code == "INVALID_ID_TOKEN"


def test_verify_operator_token_rejects_other_account(monkeypatch):
    monkeypatch.setattr(operator_auth, "verify_id_token", lambda token: {"uid": "someone-else"})

    with pytest.raises(FirebaseAuthError) as excinfo:
        operator_auth.verify_operator_token("id-token", expected_uid="operator-uid")
    assert excinfo.value.code == "UID_MISMATCH"


def test_verify_operator_token_retries_token_used_too_early(monkeypatch):
    calls = []

    def verify(token):  # noqa: ARG001
        calls.append(token)
        if len(calls) == 1:
            raise admin_auth.InvalidIdTokenError("Token used too early, 1700000001 < 1700000000.")
        return {"uid": "operator-uid"}

    monkeypatch.setattr(operator_auth, "verify_id_token", verify)
    monkeypatch.setattr(operator_auth.time, "sleep", lambda seconds: None)

    assert operator_auth.verify_operator_token("id-token") == "operator-uid"
    assert len(calls) == 2


def test_login_verification_is_reused_on_session_restore(monkeypatch):
    monkeypatch.setattr(operator_auth.st, "session_state", {})
    operator_auth.store_operator_session(_build_session(timedelta(hours=1)), verified_uid="operator-uid")

    def fail(token):  # noqa: ARG001
        raise AssertionError("token should not be verified twice")

    monkeypatch.setattr(operator_auth, "verify_id_token", fail)

    operator = operator_auth.verify_operator_session(operator_auth.operator_session_from_state())
    assert operator is not None
    assert operator["uid"] == "operator-uid"


def test_restored_session_with_unverifiable_token_is_signed_out(monkeypatch):
    monkeypatch.setattr(operator_auth.st, "session_state", {})
    operator_auth.store_operator_session(_build_session(timedelta(hours=1), id_token="forged-token"))

    def reject(token):  # noqa: ARG001
        raise admin_auth.InvalidIdTokenError("Could not verify token signature.")

    monkeypatch.setattr(operator_auth, "verify_id_token", reject)

    assert operator_auth.verify_operator_session(operator_auth.operator_session_from_state()) is None
    assert operator_auth.operator_session_from_state() is None
    assert "Could not verify" in operator_auth.operator_error_message()
