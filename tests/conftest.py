# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from taskapi.core.config import Settings
from taskapi.main import create_app

PASSWORD = "Secret123"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    Settings for one test: a throwaway SQLite file and the in-process cache
    backend, so no Postgres or Redis is needed.
    """
    return Settings(
        _env_file=None,
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'tasks.sqlite3'}",
        cache_backend="memory",
        jwt_secret_key="test-secret-key-that-is-long-enough",
        log_level="WARNING",
    )


@pytest.fixture()
def app(settings: Settings):
    return create_app(settings)


@pytest.fixture()
def client(app):
    # 500 responses are asserted on, not re-raised
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest.fixture()
def api(settings: Settings) -> str:
    return settings.api_prefix


def register(client: TestClient, api: str, email: str, *, name: str = "Test User", role: str = "user"):
    res = client.post(
        f"{api}/auth/register",
        json={"name": name, "email": email, "password": PASSWORD, "role": role},
    )
    assert res.status_code == 201, res.text
    body = res.json()
    return body["user"], {"Authorization": f"Bearer {body['token']}"}


@pytest.fixture()
def alice(client, api):
    return register(client, api, "alice@example.com", name="Alice")


@pytest.fixture()
def bob(client, api):
    return register(client, api, "bob@example.com", name="Bob")


@pytest.fixture()
def admin(client, api):
    return register(client, api, "admin@example.com", name="Admin", role="admin")
