import pytest

from kgoc.services.roles import set_user_role


def _as(user_id):
    return {"X-User-Id": user_id}


@pytest.fixture
def users(remote, local):
    for user_id, role in (
        ("admin-1", "admin"),
        ("op-1", "operator"),
        ("tester-1", "welltester"),
        ("sup-1", "supervisor"),
    ):
        set_user_role(remote, local, user_id, role)


def test_missing_identity_is_401(client):
    assert client.get("/maintenance/requests").status_code == 401


def test_user_without_role_is_403_on_guarded_routes(client):
    assert client.get("/well-tests", headers=_as("stranger")).status_code == 403


def test_request_id_header_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert resp.status_code == 200
    assert resp.headers["X-Request-ID"] == "abc-123"


def test_parts(client):
    resp = client.get("/maintenance/parts", headers=_as("anyone"))
    assert len(resp.json()) == 12
    grouped = client.get("/maintenance/parts", params={"grouped": True}, headers=_as("anyone")).json()
    assert "Surface Equipment" in grouped


def test_maintenance_flow(client, users):
    created = client.post(
        "/maintenance/requests",
        json={"wellNumber": "KGC-001", "partId": "pump", "description": "Noisy"},
        headers=_as("op-1"),
    ).json()
    assert created["success"] is True
    assert created["data"]["requestedBy"] == "op-1"

    listing = client.get("/maintenance/requests/well/kgc-001", headers=_as("op-1")).json()
    assert listing["count"] == 1
    assert listing["wellNumber"] == "kgc-001"

    resp = client.patch(
        f"/maintenance/requests/{created['id']}/status",
        json={"status": "in-progress", "notes": "Crew dispatched"},
        headers=_as("op-1"),
    )
    assert resp.json()["success"] is True


def test_maintenance_missing_fields_returns_failure_envelope(client, users):
    resp = client.post("/maintenance/requests", json={"description": "?"}, headers=_as("op-1"))
    assert resp.status_code == 200
    assert resp.json() == {
        "success": False,
        "error": "invalid-argument",
        "message": "Well Number and Part ID are required",
        "fallback": False,
    }


def test_clearing_maintenance_requires_system_settings(client, users):
    assert client.delete("/maintenance/requests", headers=_as("op-1")).status_code == 403
    resp = client.delete("/maintenance/requests", headers=_as("admin-1"))
    assert resp.json()["success"] is True


def test_well_test_permissions(client, users):
    body = {"wellNumber": "KGC-001", "api": "12-345", "wellType": "Oil", "flowRate": 100}
    assert client.post("/well-tests", json=body, headers=_as("op-1")).status_code == 403

    created = client.post("/well-tests", json=body, headers=_as("tester-1")).json()
    assert created["success"] is True
    assert created["data"]["createdBy"] == "tester-1"

    updated = client.patch(
        f"/well-tests/{created['id']}", json={"flowRate": 90, "version": 1}, headers=_as("tester-1")
    ).json()
    assert updated["data"]["version"] == 2

    mine = client.get("/well-tests/mine", headers=_as("tester-1")).json()
    assert mine["count"] == 1

    assert client.delete(f"/well-tests/{created['id']}", headers=_as("sup-1")).status_code == 403
    assert client.delete(f"/well-tests/{created['id']}", headers=_as("admin-1")).json()["success"] is True


def test_well_services_routes(client, users):
    created = client.post(
        "/well-services",
        json={"wellNumber": "KGC-002", "serviceType": "Inspection", "priority": "Critical"},
        headers=_as("op-1"),
    ).json()
    assert created["success"] is True

    by_priority = client.get("/well-services/priority/Critical", headers=_as("op-1")).json()
    assert by_priority["count"] == 1

    stats = client.get("/well-services/statistics", headers=_as("sup-1")).json()
    assert stats["data"]["criticalRequestsPending"] == 1

    assert client.delete(f"/well-services/{created['id']}", headers=_as("op-1")).status_code == 403


def test_profile_and_activity_routes(client):
    headers = _as("u1")
    client.post("/users/me/profile", json={"name": "Ada"}, headers=headers)
    assert client.get("/users/me/profile", headers=headers).json()["data"]["name"] == "Ada"

    settings = client.get("/users/me/settings", headers=headers).json()
    assert settings["source"] == "default"

    client.post("/users/me/activities", json={"action": "login", "module": "auth"}, headers=headers)
    activities = client.get("/users/me/activities", headers=headers).json()
    assert activities["data"][0]["action"] == "login"


def test_first_user_initialization_and_role_admin(client):
    first = client.post("/users/me/role/initialize", headers=_as("first")).json()
    assert first["role"] == "admin"

    client.post("/users/me/role/initialize", headers=_as("second"))
    modules = client.get("/users/me/modules", headers=_as("second")).json()
    assert modules["role"] == "operator"
    assert modules["modules"]["userManagement"] is False

    assert client.put("/users/first/role", json={"role": "operator"}, headers=_as("second")).status_code == 403
    promoted = client.put("/users/second/role", json={"role": "supervisor"}, headers=_as("first")).json()
    assert promoted["role"] == "supervisor"



def test_initialize_reads_email_from_registration_not_request(client):
    client.post("/users/me/register", json={"email": "first@kgoc.com"}, headers=_as("first"))
    client.post("/users/me/register", json={"email": "crew@kgoc.com"}, headers=_as("crew"))

    resp = client.post(
        "/users/me/role/initialize", json={"email": "admin@kgoc.com"}, headers=_as("crew")
    ).json()
    assert resp["role"] == "operator"

    again = client.post("/users/me/register", json={"email": "admin@kgoc.com"}, headers=_as("crew")).json()
    assert again["isNewUser"] is False
    assert again["data"]["email"] == "crew@kgoc.com"
    assert client.post("/users/me/role/initialize", headers=_as("crew")).json()["role"] == "operator"


def test_uppercase_admin_email_is_not_promoted(client):
    client.post("/users/me/register", json={"email": "first@kgoc.com"}, headers=_as("first"))
    resp = client.post("/users/me/register", json={"email": "Admin@kgoc.com"}, headers=_as("mixed")).json()
    assert resp["role"] == "operator"


def test_registry_routes(client):
    first = client.post(
        "/users/me/register", json={"email": "ops.lead@kgoc.com", "displayName": "Lead"}, headers=_as("lead")
    ).json()
    assert first["isFirstUser"] is True
    assert first["role"] == "admin"
    client.post("/users/me/register", json={"email": "crew@kgoc.com"}, headers=_as("crew"))

    assert client.get("/users/me", headers=_as("crew")).json()["data"]["displayName"] == "crew"
    assert client.post("/users/me/login", headers=_as("crew")).json()["success"] is True

    listing = client.get("/users", headers=_as("lead")).json()
    assert {u["uid"] for u in listing["data"]} == {"lead", "crew"}
    assert client.get("/users", headers=_as("crew")).status_code == 403
    assert client.get("/users/crew/exists", headers=_as("lead")).json()["exists"] is True

    client.put("/users/crew/role", json={"role": "coordinator"}, headers=_as("lead"))
    crew = client.get("/users/crew", headers=_as("lead")).json()["data"]
    assert crew["role"] == "coordinator"
    assert crew["roleUpdatedBy"] == "lead"


@pytest.mark.parametrize(
    "path",
    [
        "/maintenance/requests?limit=-1",
        "/well-tests?limit=0",
        "/well-tests/mine?limit=-5",
        "/well-services?limit=-1",
        "/well-services/recent?days=0",
        "/users/me/activities?limit=-1",
        "/users?limit=0",
        "/notifications/me?limit=-1",
        "/system/logs?limit=0",
    ],
)
def test_non_positive_limits_are_rejected(client, users, path):
    assert client.get(path, headers=_as("admin-1")).status_code == 422


def test_notification_routes(client, users):
    assert client.post(
        "/notifications", json={"title": "Hi", "message": "All hands"}, headers=_as("op-1")
    ).status_code == 403

    created = client.post(
        "/notifications",
        json={"title": "Shut-in", "message": "KGC-001 shut in", "type": "alert", "targetUsers": ["op-1"]},
        headers=_as("admin-1"),
    ).json()
    assert created["success"] is True
    assert created["data"]["createdBy"] == "admin-1"

    assert client.get("/notifications/me/unread-count", headers=_as("op-1")).json()["count"] == 1
    assert client.get("/notifications/me/unread-count", headers=_as("sup-1")).json()["count"] == 0

    client.patch(f"/notifications/{created['id']}/read", headers=_as("op-1"))
    inbox = client.get("/notifications/me", headers=_as("op-1")).json()
    assert inbox["data"][0]["isRead"] is True

    stats = client.get("/notifications/statistics", headers=_as("admin-1")).json()
    assert stats["data"]["byType"] == {"alert": 1}
    assert client.delete(f"/notifications/{created['id']}", headers=_as("admin-1")).json()["success"] is True


def test_system_routes(client, users):
    assert client.get("/system/maintenance-mode", headers=_as("op-1")).json()["data"]["enabled"] is False
    assert client.put(
        "/system/maintenance-mode", json={"enabled": True}, headers=_as("op-1")
    ).status_code == 403

    client.put("/system/maintenance-mode", json={"enabled": True, "message": "Upgrade"}, headers=_as("admin-1"))
    status = client.get("/system/maintenance-mode", headers=_as("op-1")).json()["data"]
    assert status["enabled"] is True
    assert status["setBy"] == "admin-1"

    audit = client.get("/system/audit-logs", headers=_as("admin-1")).json()
    assert audit["data"][0]["action"] == "Maintenance mode enabled"
    assert audit["data"][0]["user"] == "admin-1"
    assert client.get("/system/logs", headers=_as("sup-1")).status_code == 403

    health = client.get("/system/health", headers=_as("sup-1")).json()
    assert health["data"]["status"] == "healthy"


def test_routes_fall_back_when_remote_is_down(offline_client, local):
    local.set_json("userRole_op-1", {"userId": "op-1", "role": "operator"})
    resp = offline_client.post(
        "/well-services",
        json={"wellNumber": "KGC-003", "serviceType": "Repair"},
        headers=_as("op-1"),
    ).json()
    assert resp["success"] is True
    assert resp["fallback"] is True
    assert resp["id"].startswith("local_")


def test_integration_status(client):
    assert client.get("/integrations/status").json() == {"db": True, "localStore": True}


def test_integration_status_offline(offline_client):
    assert offline_client.get("/integrations/status").json()["db"] is False


def test_storage_stats_route(client):
    client.put("/users/me/settings", json={"darkMode": True}, headers=_as("u1"))
    stats = client.get("/storage/stats", headers=_as("u1")).json()
    assert "userSettings_u1" in stats["data"]["items"]


def test_override_admin_is_admin_only(client, users):
    assert client.post("/users/op-1/role/override-admin", headers=_as("sup-1")).status_code == 403
    resp = client.post("/users/op-1/role/override-admin", headers=_as("admin-1")).json()
    assert resp["verification"] == "passed"
    assert client.get("/users/me/role", headers=_as("op-1")).json()["role"] == "admin"
