"""Shared fixtures for the API tests.

The application reads its settings from the environment at import time, so
the in-memory database and the test keys are set before ``app`` is imported.
"""

from __future__ import annotations

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["EXCHANGE_RATE_API_KEY"] = "test-key"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest

from app import app as flask_app
from models import db, User


@pytest.fixture()
def app():
    flask_app.config.update(TESTING=True)
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
    yield flask_app
    with flask_app.app_context():
        db.session.remove()


@pytest.fixture()
def anon(app):
    return app.test_client()


@pytest.fixture()
def make_user(app):
    """Register a user and return a test client logged in as them."""

    def _make(name="Test User", email="test@example.com", password="password123", role="user"):
        client = app.test_client()
        res = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert res.status_code == 201
        client.user_id = res.get_json()["id"]
        if role != "user":
            with app.app_context():
                user = db.session.get(User, client.user_id)
                user.role = role
                db.session.commit()
        return client

    return _make


@pytest.fixture()
def client(make_user):
    return make_user()
