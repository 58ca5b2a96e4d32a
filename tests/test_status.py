from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from google.auth import exceptions as google_auth_exceptions

from iskate_admin import status, store
from iskate_admin.store import StoreError


def test_ban_then_read(fake_firestore):
    status.ban_user("u1", "x")

    result = status.get_user_status("u1")
    assert result.banned is True
    assert result.reason == "x"
    assert result.unsuspend_date is None
    assert isinstance(result.banned_at, datetime)


def test_ban_leaves_suspension_and_profile_untouched(fake_firestore):
    fake_firestore.seed("users/u1", {"username": "tony", "status": {"suspended": True}})

    status.ban_user("u1")

    document = fake_firestore.documents["users/u1"]
    assert document["username"] == "tony"
    assert document["status"]["suspended"] is True
    assert document["status"]["banned"] is True
    assert document["status"]["reason"] == ""


def test_suspend_then_clear_is_full_reset(fake_firestore):
    until = datetime(2030, 5, 1, tzinfo=timezone.utc)
    status.ban_user("u1", "spam")
    status.suspend_user("u1", until, "y")

    suspended = status.get_user_status("u1")
    assert suspended.suspended is True
    assert suspended.banned is True
    assert suspended.unsuspend_date == until
    assert suspended.reason == "y"

    status.clear_user_status("u1")

    cleared = status.get_user_status("u1")
    assert cleared.banned is False
    assert cleared.suspended is False
    assert cleared.reason == ""
    assert cleared.unsuspend_date is None
    assert cleared.is_active is True


def test_unban_and_unsuspend_are_the_same_operation():
    assert status.unban_user is status.clear_user_status
    assert status.unsuspend_user is status.clear_user_status


def test_ban_clears_pending_unsuspend_date(fake_firestore):
    status.suspend_user("u1", datetime(2030, 1, 1, tzinfo=timezone.utc))
    status.ban_user("u1", "escalated")

    result = status.get_user_status("u1")
    assert result.banned is True
    assert result.suspended is True
    assert result.unsuspend_date is None


def test_naive_until_is_treated_as_utc(fake_firestore):
    status.suspend_user("u1", datetime(2030, 1, 1))
    stored = fake_firestore.documents["users/u1"]["status"]["unsuspendDate"]
    assert stored == datetime(2030, 1, 1, tzinfo=timezone.utc)


def test_status_for_unknown_user_is_default(fake_firestore):
    result = status.get_user_status("new-user")
    assert result == status.UserStatus()
    assert result.is_active is True


def test_from_mapping_ignores_non_boolean_flags():
    result = status.UserStatus.from_mapping({"banned": "true", "suspended": 1, "reason": None})
    assert result.banned is False
    assert result.suspended is False
    assert result.reason == ""


def test_write_failure_propagates(fake_firestore):
    fake_firestore.fail_on = {"write"}
    with pytest.raises(StoreError):
        status.ban_user("u1", "x")


def test_invalid_uid_rejected(fake_firestore):
    with pytest.raises(ValueError):
        status.ban_user("users/u1")
    with pytest.raises(ValueError):
        status.clear_user_status("")


def test_suspension_end():
    start = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert status.suspension_end(7, now=start) == start + timedelta(days=7)
    for bad in (0, -3, True):
        with pytest.raises(ValueError):
            status.suspension_end(bad, now=start)


def test_ban_without_credentials_raises_store_error(fake_firestore, monkeypatch):
    def no_credentials():
        raise google_auth_exceptions.DefaultCredentialsError("no ADC")

    monkeypatch.setattr(store, "_get_firestore_client", no_credentials)

    with pytest.raises(StoreError):
        status.ban_user("u1", "x")
    assert fake_firestore.documents == {}
