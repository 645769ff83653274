import asyncio
from concurrent.futures import ThreadPoolExecutor

from conftest import OWNER, auth

from eventhub_api.app.core.errors import DuplicateAccount
from eventhub_api.app.core.security import create_access_token, create_account_token, decode_access_token
from eventhub_api.app.schemas.user import UserAdminUpdate, UserRegister
from eventhub_api.app.services.user_service import UserService


def test_register_returns_token_and_user(client):
    response = client.post(
        "/api/auth/register",
        json={"email": "Ada@Example.com", "password": "secret123", "name": "  Ada Lovelace "},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "User registered successfully"
    assert body["data"]["user"]["email"] == "ada@example.com"
    assert body["data"]["user"]["name"] == "Ada Lovelace"
    assert "password" not in body["data"]["user"]

    payload = decode_access_token(body["data"]["token"])
    assert payload["type"] == "user"
    assert payload["sub"] == str(body["data"]["user"]["id"])


def test_duplicate_registration(client, make_user):
    _, user = make_user()
    response = client.post(
        "/api/auth/register",
        json={"email": user["email"], "password": "secret123", "name": "Someone Else"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "DuplicateAccount"


def test_concurrent_registration_with_same_email(client):
    data = UserRegister(email="race@example.com", password="secret123", name="Racer")

    def attempt(_):
        try:
            return asyncio.run(UserService.register(data)).id
        except DuplicateAccount:
            return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(attempt, range(8)))

    created = [user_id for user_id in outcomes if user_id is not None]
    assert len(created) == 1
    assert outcomes.count(None) == 7


def test_concurrent_email_changes_to_same_address(client, make_user):
    user_ids = [make_user()[1]["id"] for _ in range(6)]

    def attempt(user_id):
        try:
            asyncio.run(UserService.update_profile(user_id, UserAdminUpdate(email="taken@example.com")))
            return True
        except DuplicateAccount:
            return False

    with ThreadPoolExecutor(max_workers=6) as pool:
        outcomes = list(pool.map(attempt, user_ids))

    assert outcomes.count(True) == 1
    assert outcomes.count(False) == 5


def test_register_validates_payload(client):
    response = client.post("/api/auth/register", json={"email": "nope", "password": "123", "name": "A"})
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation failed"
    fields = {error["loc"][-1] for error in body["errors"]}
    assert {"email", "password", "name"} <= fields


def test_login(client, make_user):
    _, user = make_user()
    response = client.post("/api/auth/login", json={"email": user["email"], "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["data"]["user"]["last_login"] is not None

    response = client.post("/api/auth/login", json={"email": user["email"], "password": "wrong"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"


def test_me_for_user_and_admin(client, make_user, owner_token):
    token, user = make_user()
    data = client.get("/api/auth/me", headers=auth(token)).json()["data"]
    assert data["user"]["id"] == user["id"]
    assert data.get("admin") is None

    data = client.get("/api/auth/me", headers=auth(owner_token)).json()["data"]
    assert data["admin"]["username"] == "admin"
    assert data["admin"]["role"] == "owner"


def test_update_me(client, make_user, owner_token):
    token, _ = make_user()
    response = client.put("/api/auth/me", json={"company": "Acme", "interests": ["ml"]}, headers=auth(token))
    assert response.status_code == 200
    assert response.json()["data"]["user"]["company"] == "Acme"

    response = client.put("/api/auth/me", json={"name": "Chief Admin"}, headers=auth(owner_token))
    assert response.json()["data"]["admin"]["name"] == "Chief Admin"

    response = client.put("/api/auth/me", json={"bio": "x" * 501}, headers=auth(token))
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


def test_missing_and_bad_tokens(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "message": "Access denied. No token provided.",
        "error": "AuthenticationError",
    }

    response = client.get("/api/auth/me", headers=auth("not.a.token"))
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token. Please login again."


def test_expired_token(client, make_user):
    _, user = make_user()
    token = create_access_token({"sub": str(user["id"]), "type": "user"}, expires_delta=-10)
    assert client.get("/api/auth/me", headers=auth(token)).status_code == 401


def test_token_for_unknown_account(client):
    token = create_account_token(4242, "user")
    response = client.get("/api/auth/me", headers=auth(token))
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token. User not found."


def test_change_password_for_user(client, make_user):
    token, user = make_user()
    response = client.post(
        "/api/auth/change-password",
        json={"current_password": "wrong", "new_password": "newsecret"},
        headers=auth(token),
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Current password is incorrect"

    response = client.post(
        "/api/auth/change-password",
        json={"current_password": "secret123", "new_password": "newsecret"},
        headers=auth(token),
    )
    assert response.status_code == 200
    login = client.post("/api/auth/login", json={"email": user["email"], "password": "newsecret"})
    assert login.status_code == 200


def test_change_password_for_admin(client, owner_token):
    response = client.post(
        "/api/auth/change-password",
        json={"current_password": OWNER["password"], "new_password": "rotated-pass"},
        headers=auth(owner_token),
    )
    assert response.status_code == 200
    login = client.post("/api/auth/admin/login", json={"username": "admin", "password": "rotated-pass"})
    assert login.status_code == 200


def test_logout_is_stateless(client, make_user):
    token, _ = make_user()
    response = client.post("/api/auth/logout", headers=auth(token))
    assert response.json() == {"success": True, "message": "Logged out successfully"}
    assert client.get("/api/auth/me", headers=auth(token)).status_code == 200


def test_deactivated_user_cannot_log_in(client, make_user, owner_token):
    token, user = make_user()
    client.put(f"/api/admin/users/{user['id']}/deactivate", headers=auth(owner_token))

    response = client.post("/api/auth/login", json={"email": user["email"], "password": "secret123"})
    assert response.status_code == 401
    assert response.json()["message"] == "Account is deactivated"
    response = client.get("/api/auth/me", headers=auth(token))
    assert response.json()["message"] == "Account is deactivated."


def test_admin_token_cannot_use_user_routes(client, owner_token):
    response = client.get("/api/users/profile", headers=auth(owner_token))
    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. User account required."
