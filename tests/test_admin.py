import pytest

from conftest import OWNER, auth

from eventhub_api.app.core.db import get_cursor
from eventhub_api.app.core.security import ADMIN_PERMISSIONS, permissions_for_role


def admin_login(client, password, username="admin"):
    return client.post("/api/auth/admin/login", json={"username": username, "password": password})


def lock_state(username="admin"):
    with get_cursor() as cursor:
        row = cursor.execute(
            "SELECT login_attempts, lock_until FROM admin_users WHERE username = ?", (username,)
        ).fetchone()
    return row["login_attempts"], row["lock_until"]


def create_admin(client, owner_token, username="moderator", role="user"):
    response = client.post(
        "/api/admin/admins",
        json={
            "username": username,
            "email": f"{username}@example.com",
            "password": "modpass1",
            "name": "Moderator",
            "role": role,
        },
        headers=auth(owner_token),
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_permissions_for_role():
    owner = permissions_for_role("owner")
    assert set(owner) == set(ADMIN_PERMISSIONS)
    assert all(owner.values())

    user = permissions_for_role("user")
    assert {name for name, granted in user.items() if granted} == {
        "manage_users",
        "manage_events",
        "view_analytics",
        "moderate_content",
    }


def test_owner_can_only_be_created_once(client, owner_token):
    response = client.post("/api/auth/admin/create-owner", json={**OWNER, "username": "second"})
    assert response.status_code == 400
    assert response.json()["message"] == "Admin system already initialized"


def test_admin_login_returns_role_claim(client, owner_token):
    response = admin_login(client, OWNER["password"])
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["admin"]["role"] == "owner"
    assert data["admin"]["last_login"] is not None


def test_lockout_after_five_failures(client, owner_token):
    for attempt in range(1, 6):
        response = admin_login(client, "wrong-password")
        assert response.status_code == 401
        assert lock_state()[0] == attempt

    attempts, lock_until = lock_state()
    assert attempts == 5
    assert lock_until is not None

    response = admin_login(client, OWNER["password"])
    assert response.status_code == 423
    assert response.json()["error"] == "AccountLocked"


def test_success_resets_failed_attempts(client, owner_token):
    for _ in range(3):
        admin_login(client, "wrong-password")
    assert lock_state()[0] == 3

    assert admin_login(client, OWNER["password"]).status_code == 200
    assert lock_state() == (0, None)


def test_failure_after_expired_lock_restarts_count(client, owner_token):
    with get_cursor() as cursor:
        cursor.execute(
            "UPDATE admin_users SET login_attempts = 5, lock_until = ? WHERE username = 'admin'",
            ("2000-01-01T00:00:00+00:00",),
        )
    response = admin_login(client, "wrong-password")
    assert response.status_code == 401
    assert lock_state() == (1, None)


def test_reset_password_script_unlocks_admin(client, owner_token):
    import reset_password

    for _ in range(5):
        admin_login(client, "wrong-password")
    assert admin_login(client, OWNER["password"]).status_code == 423

    code = reset_password.main(["--account", "admin", "--login", "admin", "--password", "fresh-pass"])
    assert code == 0
    assert lock_state() == (0, None)
    assert admin_login(client, "fresh-pass").status_code == 200


def test_reset_password_script_unknown_account(client):
    import reset_password

    assert reset_password.main(["--login", "ghost@example.com", "--password", "whatever"]) == 2
    assert reset_password.main(["--login", "ghost@example.com", "--password", "123"]) == 1


def test_admin_crud_and_role_change(client, owner_token):
    created = create_admin(client, owner_token)
    assert created["role"] == "user"
    assert created["permissions"]["delete_data"] is False

    response = client.put(
        f"/api/admin/admins/{created['id']}", json={"role": "owner"}, headers=auth(owner_token)
    )
    assert response.json()["data"]["permissions"]["delete_data"] is True

    listed = client.get("/api/admin/admins", headers=auth(owner_token)).json()["data"]
    assert {a["username"] for a in listed} == {"admin", "moderator"}

    response = client.delete(f"/api/admin/admins/{created['id']}", headers=auth(owner_token))
    assert response.status_code == 200
    assert client.get(f"/api/admin/admins/{created['id']}", headers=auth(owner_token)).status_code == 404


def test_duplicate_admin(client, owner_token):
    create_admin(client, owner_token)
    response = client.post(
        "/api/admin/admins",
        json={"username": "moderator", "email": "other@example.com", "password": "modpass1", "name": "Dup"},
        headers=auth(owner_token),
    )
    assert response.json()["error"] == "DuplicateAccount"


def test_protected_owner_and_self_delete(client, owner_token):
    owner_id = client.get("/api/auth/me", headers=auth(owner_token)).json()["data"]["admin"]["id"]
    response = client.delete(f"/api/admin/admins/{owner_id}", headers=auth(owner_token))
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot delete the main owner admin"

    second = create_admin(client, owner_token, username="deputy", role="owner")
    token = admin_login(client, "modpass1", username="deputy").json()["data"]["token"]
    response = client.delete(f"/api/admin/admins/{second['id']}", headers=auth(token))
    assert response.json()["message"] == "Cannot delete your own admin account"


def test_protected_owner_and_self_deactivate(client, owner_token):
    owner_id = client.get("/api/auth/me", headers=auth(owner_token)).json()["data"]["admin"]["id"]
    response = client.put(
        f"/api/admin/admins/{owner_id}", json={"is_active": False}, headers=auth(owner_token)
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot deactivate the main owner admin"
    assert admin_login(client, OWNER["password"]).status_code == 200

    deputy = create_admin(client, owner_token, username="deputy", role="owner")
    token = admin_login(client, "modpass1", username="deputy").json()["data"]["token"]
    response = client.put(f"/api/admin/admins/{deputy['id']}", json={"is_active": False}, headers=auth(token))
    assert response.json()["message"] == "Cannot deactivate your own admin account"
    response = client.put(f"/api/admin/admins/{owner_id}", json={"is_active": False}, headers=auth(token))
    assert response.json()["message"] == "Cannot deactivate the main owner admin"

    moderator = create_admin(client, owner_token)
    response = client.put(
        f"/api/admin/admins/{moderator['id']}", json={"is_active": False}, headers=auth(token)
    )
    assert response.status_code == 200
    assert response.json()["data"]["is_active"] is False


def test_seed_data_script(client):
    import seed_data

    assert seed_data.main([]) == 0
    with get_cursor() as cursor:
        counts = {
            table: cursor.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            for table in ("admin_users", "users", "events", "event_attendees", "user_connections")
        }
        statuses = [row[0] for row in cursor.execute("SELECT status FROM events ORDER BY id")]
    assert counts == {
        "admin_users": 2,
        "users": 5,
        "events": 5,
        "event_attendees": 12,
        "user_connections": 14,
    }
    assert statuses == ["active"] * 4 + ["completed"]

    assert admin_login(client, "owner123").status_code == 200
    assert admin_login(client, "admin123", username="useradmin").json()["data"]["admin"]["role"] == "user"
    login = client.post("/api/auth/login", json={"email": "demo@example.com", "password": "password123"})
    assert login.status_code == 200

    assert seed_data.main([]) == 2
    assert seed_data.main(["--reset"]) == 0
    with get_cursor() as cursor:
        assert cursor.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 5


@pytest.mark.parametrize(
    "method,path",
    [
        ("get", "/api/admin/admins"),
        ("delete", "/api/admin/users/1"),
        ("delete", "/api/admin/events/1"),
    ],
)
def test_user_role_admin_lacks_owner_permissions(client, owner_token, method, path):
    create_admin(client, owner_token)
    token = admin_login(client, "modpass1", username="moderator").json()["data"]["token"]
    response = getattr(client, method)(path, headers=auth(token))
    assert response.status_code == 403
    assert response.json()["error"] == "AuthorizationError"


def test_user_token_rejected_by_admin_routes(client, make_user):
    token, _ = make_user()
    response = client.get("/api/admin/dashboard/stats", headers=auth(token))
    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. Admin privileges required."


def test_user_management(client, owner_token, make_user):
    _, alice = make_user("Alice Example", company="Acme")
    make_user("Bob Example")

    found = client.get("/api/admin/users", params={"search": "acme"}, headers=auth(owner_token)).json()
    assert [u["id"] for u in found["data"]] == [alice["id"]]

    client.put(f"/api/admin/users/{alice['id']}/deactivate", headers=auth(owner_token))
    inactive = client.get("/api/admin/users", params={"status": "inactive"}, headers=auth(owner_token))
    assert [u["id"] for u in inactive.json()["data"]] == [alice["id"]]

    response = client.put(
        f"/api/admin/users/{alice['id']}", json={"job_title": "CTO"}, headers=auth(owner_token)
    )
    assert response.json()["data"]["job_title"] == "CTO"

    assert client.delete(f"/api/admin/users/{alice['id']}", headers=auth(owner_token)).status_code == 200
    assert client.get(f"/api/admin/users/{alice['id']}", headers=auth(owner_token)).status_code == 404


def test_event_moderation(client, owner_token, make_user, make_event):
    organizer, _ = make_user()
    event = make_event(organizer, activate=False)

    response = client.put(f"/api/admin/events/{event['id']}/approve", headers=auth(owner_token))
    assert response.json()["data"]["status"] == "active"
    response = client.put(f"/api/admin/events/{event['id']}/reject", headers=auth(owner_token))
    assert response.json()["data"]["status"] == "cancelled"

    listed = client.get("/api/admin/events", headers=auth(owner_token)).json()
    assert listed["pagination"]["total"] == 1

    attendees = client.get(f"/api/admin/events/{event['id']}/attendees", headers=auth(owner_token))
    assert attendees.json()["data"]["total_count"] == 0

    assert client.delete(f"/api/admin/events/{event['id']}", headers=auth(owner_token)).status_code == 200


def test_dashboard_and_health(client, owner_token, make_user, make_event):
    organizer, _ = make_user()
    make_event(organizer, price=25)

    stats = client.get("/api/admin/dashboard/stats", headers=auth(owner_token)).json()["data"]
    assert stats["total_users"] == 1
    assert stats["total_events"] == 1
    assert stats["active_events"] == 1

    health = client.get("/api/admin/dashboard/system-health", headers=auth(owner_token)).json()["data"]
    assert health["database"]["status"] == "healthy"
