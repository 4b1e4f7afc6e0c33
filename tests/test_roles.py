import pytest

from kgoc.config import settings
from kgoc.services import roles
from kgoc.services.roles import Permission, UserRole


@pytest.mark.parametrize(
    "role,permission,expected",
    [
        ("welltester", "well_test_create", True),
        ("welltester", "well_services_view", False),
        ("operator", "well_test_view", True),
        ("operator", "well_test_create", False),
        ("supervisor", "well_test_approve", True),
        ("supervisor", "well_services_delete", False),
        ("coordinator", "well_services_delete", True),
        ("administrator", "user_management", True),
        ("administrator", "system_settings", False),
        ("admin", "audit_logs", True),
        ("nobody", "well_test_view", False),
        (None, "well_test_view", False),
    ],
)
def test_permission_matrix(role, permission, expected):
    assert roles.has_permission(role, permission) is expected


def test_admin_has_every_permission():
    assert roles.has_all_permissions("admin", [p.value for p in Permission])


def test_any_and_all():
    assert roles.has_any_permission("operator", ["well_test_delete", "well_test_view"])
    assert not roles.has_all_permissions("operator", ["well_test_delete", "well_test_view"])
    assert not roles.has_any_permission("operator", None)


def test_accessible_modules():
    assert roles.get_accessible_modules("welltester") == {
        "wellTest": True,
        "wellServices": False,
        "administration": False,
        "userManagement": False,
    }
    assert all(roles.get_accessible_modules("admin").values())
    assert not any(roles.get_accessible_modules(None).values())


def test_set_role_rejects_unknown_role(failing_remote, local):
    result = roles.set_user_role(failing_remote, local, "u1", "overlord")
    assert result.error == "invalid-argument"
    assert failing_remote.calls == 0


def test_set_role_falls_back_locally(failing_remote, local):
    result = roles.set_user_role(failing_remote, local, "u1", "supervisor")
    assert result.success and result.fallback
    assert local.get_json(roles.role_key("u1"))["fallbackMode"] is True


def test_get_user_role_assigns_default(remote, local):
    result = roles.get_user_role(remote, local, "u1")
    assert result.role == roles.DEFAULT_ROLE
    assert result.source == "default"
    assert remote.get(roles.USER_ROLES_COLLECTION, "u1")["role"] == "operator"


def test_first_user_becomes_admin(remote, local):
    assert roles.check_if_first_user(remote, local)

    first = roles.initialize_user_role(remote, local, "first", "first@kgoc.com")
    assert first.role == UserRole.admin.value
    assert first.to_response()["isFirstUser"] is True
    assert remote.get(roles.SYSTEM_CONFIG_COLLECTION, "firstUser")["userId"] == "first"
    assert not roles.check_if_first_user(remote, local)

    second = roles.initialize_user_role(remote, local, "second", "second@kgoc.com")
    assert second.role == UserRole.operator.value


def test_role_derived_from_email(remote, local):
    roles.initialize_user_role(remote, local, "first", None)
    assert roles.initialize_user_role(remote, local, "s", "ops.supervisor@kgoc.com").role == "supervisor"
    assert roles.initialize_user_role(remote, local, "a", "admin@kgoc.com").role == "admin"


def test_email_role_match_is_case_sensitive(remote, local):
    roles.initialize_user_role(remote, local, "first", None)
    assert roles.initialize_user_role(remote, local, "a", "Admin@kgoc.com").role == "operator"
    assert roles.initialize_user_role(remote, local, "s", "SUPERVISOR@kgoc.com").role == "operator"


def test_manually_assigned_role_is_kept(remote, local):
    roles.initialize_user_role(remote, local, "first", None)
    roles.set_user_role(remote, local, "u1", "coordinator", assigned_by="first")
    assert roles.initialize_user_role(remote, local, "u1", "u1@kgoc.com").role == "coordinator"


def test_configured_admin_ids(remote, local, monkeypatch):
    monkeypatch.setattr(settings, "admin_user_ids", "boss, chief")
    roles.initialize_user_role(remote, local, "first", None)
    assert roles.is_predefined_admin("chief")
    assert roles.initialize_user_role(remote, local, "chief", "chief@kgoc.com").role == "admin"


def test_override_to_admin_is_verified(remote, local):
    roles.set_user_role(remote, local, "u1", "operator")
    result = roles.override_to_admin_role(remote, local, "u1")
    assert result.to_response()["verification"] == "passed"
    assert remote.get(roles.USER_ROLES_COLLECTION, "u1")["assignedBy"] == "manual_override"


def test_first_user_marker_alone_blocks_detection(remote, local):
    roles.mark_first_user_created(remote, local, "first")
    local.remove_item(roles.FIRST_USER_FLAG_KEY)
    assert not roles.check_if_first_user(remote, local)


def test_registered_user_blocks_detection(remote, local):
    remote.set(roles.USERS_COLLECTION, "u1", {"uid": "u1"})
    assert not roles.check_if_first_user(remote, local)


def test_first_user_detection_offline_uses_mirror(failing_remote, local):
    assert roles.check_if_first_user(failing_remote, local)
    local.set_json("user_u1", {"uid": "u1"})
    assert not roles.check_if_first_user(failing_remote, local)


def test_reset_first_user_detection(remote, local):
    roles.initialize_user_role(remote, local, "first", None)
    roles.initialize_user_role(remote, local, "second", None)
    remote.set(roles.USERS_COLLECTION, "first", {"uid": "first"})
    local.set_json("user_first", {"uid": "first"})
    local.set_json("wellTests", [])

    removed = roles.reset_first_user_detection(remote, local)

    assert removed["roles"] == 2
    assert removed["users"] == 1
    assert roles.check_if_first_user(remote, local)
    assert local.keys() == ["wellTests"]
    assert roles.initialize_user_role(remote, local, "next", None).role == "admin"
