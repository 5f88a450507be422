"""
Tests for the FastAPI integration
"""

import copy

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from field_guard import GuardSession, GuardSettings, Principal, setup_guard
from field_guard.decorators import get_guard_session, require_action


@pytest.fixture
def users_app():
    from examples import users_api

    snapshot = copy.deepcopy(users_api.USERS)
    yield users_api.app
    users_api.USERS.clear()
    users_api.USERS.update(snapshot)


def _make_app(settings=None, predicate=None):
    app = FastAPI()

    @app.middleware("http")
    async def attach_user(request: Request, call_next):
        user_id = request.headers.get("X-User-Id")
        request.state.principal = Principal(id=user_id) if user_id else None
        return await call_next(request)

    setup_guard(
        app,
        {
            "roles": {"owner": predicate or (lambda user, item: user.id == "1")},
            "actions": {"owner": ["read:name", "archive"]},
        },
        settings,
    )

    @app.post("/archive")
    @require_action("archive")
    async def archive(request: Request):
        return {"archived": True}

    @app.post("/echo")
    async def echo(body: dict, guard: GuardSession = Depends(get_guard_session)):
        return await guard.filter("read", body)

    return app


class TestSetupGuard:
    def test_stores_factory_on_app_state(self):
        app = setup_guard(FastAPI(), {"actions": {}})
        assert app.state.guard_factory is not None
        assert isinstance(app.state.guard_settings, GuardSettings)

    def test_rejects_invalid_settings(self):
        with pytest.raises(ValueError):
            setup_guard(FastAPI(), {}, GuardSettings(deny_status_code=200))

    def test_require_action_rejects_field_scoped_name(self):
        with pytest.raises(ValueError):
            require_action("read:name")


class TestRequests:
    def test_allowed_action(self):
        client = TestClient(_make_app())
        response = client.post("/archive", headers={"X-User-Id": "1"})
        assert response.status_code == 200
        assert response.json() == {"archived": True}

    def test_denied_action(self):
        client = TestClient(_make_app())
        response = client.post("/archive", headers={"X-User-Id": "2"})
        assert response.status_code == 403
        assert response.json() == {"error": "Not permitted"}

    def test_guest_denied(self):
        client = TestClient(_make_app())
        assert client.post("/archive").status_code == 403

    def test_custom_deny_status(self):
        client = TestClient(_make_app(GuardSettings(deny_status_code=404)))
        assert client.post("/archive").status_code == 404

    def test_filter_dependency(self):
        client = TestClient(_make_app())
        response = client.post(
            "/echo", json={"name": "Max", "secret": "x"}, headers={"X-User-Id": "1"}
        )
        assert response.json() == {"name": "Max"}

    def test_predicate_failure_is_not_a_denial(self):
        def failing(user, item):
            raise RuntimeError("role store unavailable")

        client = TestClient(_make_app(predicate=failing), raise_server_exceptions=False)
        response = client.post("/archive", headers={"X-User-Id": "1"})
        assert response.status_code == 500

    def test_predicate_failure_propagates(self):
        def failing(user, item):
            raise RuntimeError("role store unavailable")

        client = TestClient(_make_app(predicate=failing))
        with pytest.raises(RuntimeError, match="role store unavailable"):
            client.post("/archive", headers={"X-User-Id": "1"})


class TestExampleApp:
    def test_owner_reads_own_fields(self, users_app):
        client = TestClient(users_app)
        response = client.get("/users/1", headers={"X-User-Id": "1"})
        assert response.status_code == 200
        assert response.json() == {
            "firstName": "Maximilian",
            "lastName": "Schmitt",
            "email": "maximilian.schmitt@example.com",
            "address": {"street": "Somewhere Street 61", "city": "Berlin"},
        }

    def test_other_user_reads_public_fields(self, users_app):
        client = TestClient(users_app)
        response = client.get("/users/1", headers={"X-User-Id": "2"})
        assert response.json() == {
            "firstName": "Maximilian",
            "address": {"city": "Berlin"},
        }

    def test_guest_cannot_read(self, users_app):
        assert TestClient(users_app).get("/users/1").status_code == 403

    def test_unknown_user(self, users_app):
        client = TestClient(users_app)
        assert client.get("/users/9", headers={"X-User-Id": "1"}).status_code == 404

    def test_roles(self, users_app):
        client = TestClient(users_app)
        response = client.get("/users/1/roles", headers={"X-User-Id": "1"})
        assert response.json() == {"roles": ["authenticated", "owner"]}

    def test_guest_creates_with_filtered_body(self, users_app):
        client = TestClient(users_app)
        response = client.post(
            "/users", json={"firstName": "Jan", "email": "j@x.com", "admin": True}
        )
        assert response.status_code == 200
        assert response.json() == {"id": "2", "firstName": "Jan", "email": "j@x.com"}

    def test_only_owner_deletes(self, users_app):
        client = TestClient(users_app)
        assert client.delete("/users/1", headers={"X-User-Id": "2"}).status_code == 403
        response = client.delete("/users/1", headers={"X-User-Id": "1"})
        assert response.json() == {"deleted": "1"}
