from kgoc.config import settings
from kgoc.services import profiles, roles, system, users


def test_create_user_validates_input(failing_remote, local):
    assert users.create_user(failing_remote, local, "", "a@kgoc.com").error == "invalid-argument"
    assert users.create_user(failing_remote, local, "u1", "not-an-email").error == "invalid-argument"
    assert failing_remote.calls == 0


def test_first_registered_user_is_admin(remote, local):
    first = users.create_user(remote, local, "u1", "first@kgoc.com", display_name="First")
    assert first.role == "admin"
    assert first.to_response()["isFirstUser"] is True
    assert first.to_response()["isNewUser"] is True

    second = users.create_user(remote, local, "u2", "second@kgoc.com")
    assert second.role == "operator"
    assert second.data["displayName"] == "second"
    assert second.data["isFirstUser"] is False


def test_registration_seeds_profile_settings_and_activity(remote, local):
    users.create_user(remote, local, "u1", "first@kgoc.com", photo_url="http://img/u1.png")

    registered = remote.get(roles.USERS_COLLECTION, "u1")
    assert registered["email"] == "first@kgoc.com"
    assert registered["isActive"] is True
    assert registered["provider"] == users.DEFAULT_PROVIDER
    assert local.get_json(roles.user_key("u1"))["uid"] == "u1"

    assert profiles.get_user_profile(remote, local, "u1").data["photoURL"] == "http://img/u1.png"
    assert remote.get(profiles.SETTINGS_COLLECTION, "u1")["language"] == "en"
    assert profiles.get_user_activities(remote, local, "u1").data[0]["action"] == "user_created"


def test_existing_user_keeps_email_and_gets_login_refreshed(remote, local):
    created = users.create_user(remote, local, "u1", "first@kgoc.com")
    again = users.create_user(remote, local, "u1", "admin@kgoc.com")

    assert again.to_response()["isNewUser"] is False
    assert again.data["email"] == "first@kgoc.com"
    assert again.data["lastLogin"] >= created.data["lastLogin"]
    assert users.stored_email(remote, local, "u1") == "first@kgoc.com"


def test_stored_email_falls_back_to_profile(remote, local):
    profiles.create_user_profile(remote, local, "u1", {"email": "p@kgoc.com"})
    assert users.stored_email(remote, local, "u1") == "p@kgoc.com"
    assert users.stored_email(remote, local, "nobody") is None


def test_get_user_includes_role_info(remote, local):
    users.create_user(remote, local, "u1", "first@kgoc.com")
    user = users.get_user(remote, local, "u1").data
    assert user["role"] == "admin"
    assert user["roleInfo"]["name"] == "System Admin"
    assert users.get_user(remote, local, "ghost").error == "not-found"


def test_user_exists(remote, local):
    users.create_user(remote, local, "u1", "first@kgoc.com")
    assert users.user_exists(remote, local, "u1").to_response()["exists"] is True
    assert users.user_exists(remote, local, "u2").to_response()["exists"] is False


def test_last_login_requires_registration(remote, local):
    assert users.update_user_last_login(remote, local, "ghost").error == "not-found"


def test_get_all_users_remote_and_offline(remote, local, failing_remote):
    users.create_user(remote, local, "u1", "first@kgoc.com")
    users.create_user(remote, local, "u2", "second@kgoc.com")

    listing = users.get_all_users(remote, local)
    assert listing.count == 2
    assert {u["uid"]: u["role"] for u in listing.data} == {"u1": "admin", "u2": "operator"}

    offline = users.get_all_users(failing_remote, local, limit=1)
    assert offline.fallback
    assert offline.count == 1


def test_update_user_role_requires_user_management(remote, local):
    users.create_user(remote, local, "boss", "boss@kgoc.com")
    users.create_user(remote, local, "crew", "crew@kgoc.com")

    denied = users.update_user_role(remote, local, "boss", "operator", "crew")
    assert denied.error == "permission-denied"
    assert roles.lookup_role(remote, local, "boss")[0]["role"] == "admin"


def test_update_user_role_records_the_change(remote, local):
    users.create_user(remote, local, "boss", "boss@kgoc.com")
    users.create_user(remote, local, "crew", "crew@kgoc.com")

    result = users.update_user_role(remote, local, "crew", "supervisor", "boss")

    assert result.success and result.role == "supervisor"
    registered = remote.get(roles.USERS_COLLECTION, "crew")
    assert registered["role"] == "supervisor"
    assert registered["roleUpdatedBy"] == "boss"
    assert profiles.get_user_activities(remote, local, "boss").data[0]["action"] == "role_updated"
    assert system.get_audit_logs(remote, local).data[0]["user"] == "boss"


def test_update_user_role_rejects_unknown_role(remote, local):
    users.create_user(remote, local, "boss", "boss@kgoc.com")
    assert users.update_user_role(remote, local, "boss", "overlord", "boss").error == "invalid-argument"


def test_registration_offline_uses_mirror(failing_remote, local):
    result = users.create_user(failing_remote, local, "u1", "first@kgoc.com")
    assert result.success and result.fallback
    assert result.role == "admin"
    assert local.get_json(roles.user_key("u1"))["email"] == "first@kgoc.com"
    assert not roles.check_if_first_user(failing_remote, local)


def test_configured_admin_registers_as_admin(remote, local, monkeypatch):
    monkeypatch.setattr(settings, "admin_user_ids", "chief")
    users.create_user(remote, local, "u1", "first@kgoc.com")
    assert users.create_user(remote, local, "chief", "chief@kgoc.com").role == "admin"
