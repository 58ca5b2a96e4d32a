from __future__ import annotations

import pytest

from iskate_admin import app_settings
from iskate_admin.policy import PermissionDenied
from iskate_admin.store import ConcurrentUpdateError, RecordNotFound


def test_missing_app_document_is_not_found(fake_firestore):
    with pytest.raises(app_settings.AppStatusNotFound) as excinfo:
        app_settings.get_app_active()
    assert isinstance(excinfo.value, RecordNotFound)


def test_get_app_active_requires_literal_true(fake_firestore):
    fake_firestore.seed("app/main", {"active": "yes"})
    assert app_settings.get_app_active() is False
    fake_firestore.seed("app/main", {"active": True})
    assert app_settings.get_app_active() is True


def test_toggle_flips_flag_for_owner(fake_firestore):
    fake_firestore.seed("app/main", {"active": True, "message": "keep"})

    assert app_settings.toggle_app_active(actor_roles={"owner"}) is False
    assert fake_firestore.documents["app/main"] == {"active": False, "message": "keep"}
    assert app_settings.toggle_app_active(actor_roles={"owner"}) is True


def test_toggle_rejected_for_non_owner(fake_firestore):
    fake_firestore.seed("app/main", {"active": True})

    with pytest.raises(PermissionDenied):
        app_settings.toggle_app_active(actor_roles={"admin", "mod"})
    assert fake_firestore.documents["app/main"] == {"active": True}


def test_concurrent_toggle_fails_loudly(fake_firestore):
    fake_firestore.seed("app/main", {"active": True})
    _active, version = app_settings.get_app_status()

    app_settings.toggle_app_active(actor_roles={"owner"})

    with pytest.raises(ConcurrentUpdateError):
        app_settings.set_app_active(False, actor_roles={"owner"}, expected_version=version)
    assert fake_firestore.documents["app/main"] == {"active": False}


def test_set_app_active_without_document(fake_firestore):
    with pytest.raises(app_settings.AppStatusNotFound):
        app_settings.set_app_active(True, actor_roles={"owner"})
