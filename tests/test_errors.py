import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from eventhub_api.app.core import errors
from eventhub_api.app.main import _register_error_handlers


ERROR_CLASSES = [
    (errors.ValidationError, 400),
    (errors.AuthenticationError, 401),
    (errors.AuthorizationError, 403),
    (errors.NotFoundError, 404),
    (errors.AccountLocked, 423),
    (errors.InternalError, 500),
    (errors.StateConflictError, 400),
    (errors.DuplicateAccount, 400),
    (errors.RegistrationClosed, 400),
    (errors.AlreadyRegistered, 400),
    (errors.EventFull, 400),
    (errors.NotRegistered, 400),
    (errors.CancellationNotAllowed, 400),
    (errors.DeadlinePassed, 400),
    (errors.InvalidStateForCheckIn, 400),
    (errors.AlreadyCheckedIn, 400),
]


@pytest.fixture
def error_client():
    app = FastAPI()
    _register_error_handlers(app)

    @app.get("/raise/{name}")
    async def raise_error(name: str):
        raise getattr(errors, name)()

    @app.get("/details")
    async def raise_with_details():
        raise errors.ValidationError("Bad input", details=[{"field": "title"}])

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret internals")

    return TestClient(app, raise_server_exceptions=False)


@pytest.mark.parametrize("exc_class,status_code", ERROR_CLASSES)
def test_error_envelope_for_each_class(error_client, exc_class, status_code):
    response = error_client.get(f"/raise/{exc_class.__name__}")
    assert response.status_code == status_code
    assert response.json() == {
        "success": False,
        "message": exc_class.default_message,
        "error": exc_class.__name__,
    }


def test_error_details_are_listed(error_client):
    body = error_client.get("/details").json()
    assert body["message"] == "Bad input"
    assert body["errors"] == [{"field": "title"}]


def test_unexpected_error_hides_internals(error_client):
    response = error_client.get("/boom")
    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "message": "Internal server error",
        "error": "InternalError",
    }


def test_unknown_route(client):
    response = client.get("/api/nowhere")
    assert response.status_code == 404
    assert response.json()["success"] is False
    assert response.json()["error"] == "NotFoundError"


def test_index_and_health(client):
    index = client.get("/").json()
    assert index["success"] is True
    assert index["data"]["endpoints"]["events"] == "/api/events"

    health = client.get("/health").json()
    assert health["data"]["status"] == "OK"
