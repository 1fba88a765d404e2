import pytest

from fastcoach import create_app
from fastcoach.auth import make_token
from fastcoach.config import TestingConfig
from fastcoach.extensions import db


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    def _headers(user_id="user-1"):
        with app.app_context():
            token = make_token(user_id)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def start_session(client, auth_headers):
    def _start(user_id="user-1", **body):
        payload = {"fastingType": "16:8", "plannedDurationHours": 16}
        payload.update(body)
        resp = client.post("/api/v1/fasting/sessions", json=payload, headers=auth_headers(user_id))
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()["session"]

    return _start
