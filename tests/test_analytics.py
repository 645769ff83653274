from conftest import auth

from eventhub_api.app.services.analytics_service import (
    engagement_score,
    profile_completeness,
    round_half_up,
)


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(2.4) == 2
    assert round_half_up(0.5) == 1


def test_engagement_score_caps_each_component():
    assert engagement_score(0, 0, 0, 0) == 0
    assert engagement_score(100, 100, 100, 100) == 100
    assert engagement_score(2, 1, 3, 40) == 10 + 10 + 6 + 10


def test_profile_completeness():
    user = {"name": "Ada", "email": "ada@example.com", "interests": '["math"]', "social_links": '{"linkedin": null}'}
    assert profile_completeness(user, attending_count=0) == 30
    assert profile_completeness(user, attending_count=2) == 40


def test_user_event_analytics(client, make_user, make_event):
    organizer, _ = make_user()
    token, _ = make_user()
    paid = make_event(organizer, price=20, category="workshop")
    free = make_event(organizer, title="Free Social", category="social")
    for event in (paid, free):
        client.post(f"/api/events/{event['id']}/register", headers=auth(token))

    data = client.get("/api/analytics/events/attended", headers=auth(token)).json()["data"]
    assert data["total_events_attended"] == 2
    assert data["events_by_category"] == {"workshop": 1, "social": 1}
    assert data["total_spent"] == 20
    assert data["upcoming_events"] == 2


def test_connection_growth_and_engagement(client, make_user):
    token, _ = make_user()
    for _ in range(2):
        _, other = make_user()
        client.post(f"/api/users/connections/{other['id']}", headers=auth(token))

    growth = client.get("/api/analytics/connections/growth", headers=auth(token)).json()["data"]
    assert growth["total_connections"] == 2
    assert sum(growth["connections_by_month"].values()) == 2
    assert growth["average_connections_per_month"] == 2

    engagement = client.get("/api/analytics/engagement", headers=auth(token)).json()["data"]
    assert engagement["total_connections"] == 2
    assert 0 <= engagement["engagement_score"] <= 100


def test_organizer_summary(client, make_user, make_event):
    organizer, _ = make_user()
    event = make_event(organizer, price=10)
    make_event(organizer, title="Still a draft", activate=False)
    for _ in range(3):
        token, _ = make_user()
        client.post(f"/api/events/{event['id']}/register", headers=auth(token))

    summary = client.get("/api/analytics/events/organized/summary", headers=auth(organizer)).json()["data"]
    assert summary["total_events"] == 2
    assert summary["events_by_status"]["draft"] == 1
    assert summary["total_attendees"] == 3
    assert summary["total_revenue"] == 30
    assert summary["top_performing_event"]["id"] == event["id"]
    assert summary["upcoming_events"] == 1


def test_event_analytics_is_organizer_only(client, make_user, make_event):
    organizer, _ = make_user()
    attendee, _ = make_user(company="Acme")
    event = make_event(organizer, capacity=4, price=5)
    client.post(f"/api/events/{event['id']}/register", headers=auth(attendee))

    response = client.get(f"/api/analytics/events/{event['id']}", headers=auth(attendee))
    assert response.status_code == 403

    data = client.get(f"/api/analytics/events/{event['id']}", headers=auth(organizer)).json()["data"]
    assert data["total_registrations"] == 1
    assert data["attendees_by_status"]["registered"] == 1
    assert data["attendees_by_company"] == {"Acme": 1}
    assert data["capacity"] == {"total": 4, "filled": 1, "utilization": 25}
    assert data["revenue"]["total"] == 5


def test_admin_revenue_and_user_analytics(client, owner_token, make_user, make_event):
    organizer, _ = make_user()
    event = make_event(organizer, price=15)
    token, _ = make_user()
    client.post(f"/api/events/{event['id']}/register", headers=auth(token))

    for path in ("/api/admin/analytics/events", "/api/admin/analytics/users", "/api/admin/analytics/revenue"):
        response = client.get(path, headers=auth(owner_token))
        assert response.status_code == 200, path
        assert response.json()["success"] is True

    events = client.get("/api/admin/analytics/events", headers=auth(owner_token)).json()["data"]
    assert events["total_events"] == 1
    assert events["events_by_status"]["active"] == 1
