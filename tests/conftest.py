import itertools

import pytest
from fastapi.testclient import TestClient

from eventhub_api.app.core.config import settings
from eventhub_api.app.main import app


OWNER = {
    "username": "admin",
    "email": "owner@example.com",
    "password": "ownerpass",
    "name": "Owner Admin",
}

_emails = itertools.count(1)


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def event_payload(**overrides):
    payload = {
        "title": "Python Meetup",
        "description": "Monthly meetup for Python developers",
        "category": "networking",
        "date_time": "2031-06-01T18:00:00Z",
        "end_date_time": "2031-06-01T21:00:00Z",
        "location": {
            "venue": "Tech Hub",
            "address": "1 Main Street",
            "city": "Berlin",
            "country": "Germany",
        },
        "capacity": 10,
        "price": 0,
        "tags": ["Python", " Community "],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "eventhub-test.db"))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(client):
    """Register a user and return ``(token, user)``."""

    def _make_user(name="Test User", **fields):
        body = {
            "email": f"user{next(_emails)}@example.com",
            "password": "secret123",
            "name": name,
        }
        body.update(fields)
        response = client.post("/api/auth/register", json=body)
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return data["token"], data["user"]

    return _make_user


@pytest.fixture
def owner_token(client):
    response = client.post("/api/auth/admin/create-owner", json=OWNER)
    assert response.status_code == 201, response.text
    return response.json()["data"]["token"]


@pytest.fixture
def make_event(client):
    """Create an event as ``token``'s user and activate it; returns the event."""

    def _make_event(token, activate=True, **overrides):
        response = client.post("/api/events/", json=event_payload(**overrides), headers=auth(token))
        assert response.status_code == 201, response.text
        event = response.json()["data"]
        if activate:
            response = client.put(
                f"/api/events/{event['id']}", json={"status": "active"}, headers=auth(token)
            )
            assert response.status_code == 200, response.text
            event = response.json()["data"]
        return event

    return _make_event
