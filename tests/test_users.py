from conftest import auth


def connect(client, token, user_id):
    return client.post(f"/api/users/connections/{user_id}", headers=auth(token))


def connection_ids(client, token):
    return [u["id"] for u in client.get("/api/users/connections", headers=auth(token)).json()["data"]]


def test_profile_read_and_update(client, make_user):
    token, user = make_user()
    profile = client.get("/api/users/profile", headers=auth(token)).json()["data"]
    assert profile["id"] == user["id"]
    assert profile["connections_count"] == 0

    response = client.put(
        "/api/users/profile",
        json={"bio": "Builds things", "social_links": {"linkedin": "https://linkedin.com/in/x"}},
        headers=auth(token),
    )
    assert response.status_code == 200
    assert response.json()["data"]["bio"] == "Builds things"
    assert response.json()["data"]["social_links"]["linkedin"] == "https://linkedin.com/in/x"


def test_connections_are_symmetric(client, make_user):
    a_token, a = make_user("Alice Example")
    b_token, b = make_user("Bob Example")

    response = connect(client, a_token, b["id"])
    assert response.status_code == 200
    assert connection_ids(client, a_token) == [b["id"]]
    assert connection_ids(client, b_token) == [a["id"]]

    profile = client.get("/api/users/profile", headers=auth(b_token)).json()["data"]
    assert profile["connections_count"] == 1

    response = client.delete(f"/api/users/connections/{a['id']}", headers=auth(b_token))
    assert response.status_code == 200
    assert connection_ids(client, a_token) == []
    assert connection_ids(client, b_token) == []


def test_connection_errors(client, make_user):
    a_token, a = make_user()
    _, b = make_user()

    response = connect(client, a_token, a["id"])
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot send connection request to yourself"

    assert connect(client, a_token, 9999).status_code == 404

    connect(client, a_token, b["id"])
    response = connect(client, a_token, b["id"])
    assert response.status_code == 400
    assert response.json()["message"] == "Already connected with this user"

    client.delete(f"/api/users/connections/{b['id']}", headers=auth(a_token))
    response = client.delete(f"/api/users/connections/{b['id']}", headers=auth(a_token))
    assert response.status_code == 404


def test_public_profile_counts_mutual_connections(client, make_user):
    a_token, a = make_user("Alice Example")
    b_token, b = make_user("Bob Example")
    _, c = make_user("Carol Example")
    _, d = make_user("Dave Example")

    connect(client, a_token, c["id"])
    connect(client, b_token, c["id"])
    connect(client, a_token, d["id"])
    connect(client, b_token, d["id"])
    connect(client, a_token, b["id"])

    profile = client.get(f"/api/users/{b['id']}/public-profile", headers=auth(a_token)).json()["data"]
    assert profile["is_connected"] is True
    assert profile["mutual_connections"] == 2
    assert "email" not in profile

    newcomer, _ = make_user("New Comer")
    profile = client.get(f"/api/users/{c['id']}/public-profile", headers=auth(newcomer)).json()["data"]
    assert profile["is_connected"] is False
    assert profile["mutual_connections"] == 0


def test_public_profile_of_inactive_user(client, make_user, owner_token):
    token, _ = make_user()
    _, other = make_user()
    client.put(f"/api/admin/users/{other['id']}/deactivate", headers=auth(owner_token))
    response = client.get(f"/api/users/{other['id']}/public-profile", headers=auth(token))
    assert response.status_code == 404
    assert response.json()["message"] == "User profile not available"


def test_search_users(client, make_user):
    token, _ = make_user("Searcher Person", company="Acme")
    _, match = make_user("Grace Hopper", job_title="Rear Admiral")
    make_user("Other Person")

    body = client.get("/api/users/search", params={"q": "admiral"}, headers=auth(token)).json()
    assert [u["id"] for u in body["data"]] == [match["id"]]
    assert body["pagination"]["total"] == 1

    # The caller never appears in their own results.
    body = client.get("/api/users/search", params={"q": "acme"}, headers=auth(token)).json()
    assert body["data"] == []

    assert client.get("/api/users/search", headers=auth(token)).status_code == 400


def test_suggestions_match_company_and_skip_connections(client, make_user):
    token, _ = make_user("Me Myself", company="Acme")
    _, colleague = make_user("Colleague One", company="acme ")
    _, connected = make_user("Colleague Two", company="Acme")
    make_user("Stranger", company="Globex")
    connect(client, token, connected["id"])

    suggestions = client.get("/api/users/suggestions", headers=auth(token)).json()["data"]
    assert [u["id"] for u in suggestions] == [colleague["id"]]


def test_suggestions_fall_back_to_newest_users(client, make_user):
    token, _ = make_user("Blank Profile")
    _, first = make_user("First Other")
    _, second = make_user("Second Other")
    suggestions = client.get("/api/users/suggestions", headers=auth(token)).json()["data"]
    assert [u["id"] for u in suggestions] == [second["id"], first["id"]]
