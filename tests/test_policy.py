from __future__ import annotations

import pytest

from iskate_admin import policy


def test_owner_manages_admin_only():
    assert policy.manageable_roles({"owner"}) == ("admin",)


def test_admin_manages_mod_only():
    assert policy.manageable_roles({"admin"}) == ("mod",)


def test_owner_and_admin_manage_both_but_never_owner():
    assert policy.manageable_roles({"owner", "admin"}) == ("admin", "mod")
    assert policy.can_manage_role({"owner", "admin", "mod"}, "owner") is False


def test_mod_manages_nothing():
    assert policy.manageable_roles({"mod"}) == ()
    assert policy.manageable_roles(set()) == ()


def test_require_role_change_rejects_owner_and_unauthorised():
    with pytest.raises(policy.PermissionDenied):
        policy.require_role_change({"owner", "admin"}, "owner")
    with pytest.raises(policy.PermissionDenied):
        policy.require_role_change({"admin"}, "admin")
    with pytest.raises(ValueError):
        policy.require_role_change({"owner"}, "superuser")
    policy.require_role_change({"admin"}, "mod")


def test_app_toggle_and_portal_access():
    assert policy.can_toggle_app({"owner"}) is True
    assert policy.can_toggle_app({"admin"}) is False
    assert policy.can_access_portal({"admin"}) is True
    assert policy.can_access_portal({"owner", "mod"}) is False
    with pytest.raises(policy.PermissionDenied):
        policy.require_app_toggle({"admin", "mod"})
