# tests/test_auth.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt
from starlette.requests import Request

from taskapi.core.security import create_access_token, hash_password, verify_password
from taskapi.dependencies import get_current_user
from taskapi.models import User
from taskapi.schemas import UserRead

from .conftest import PASSWORD, register


def test_register_returns_token_that_resolves_to_same_user(client, api):
    res = client.post(
        f"{api}/auth/register",
        json={"name": "Carol", "email": "Carol@Example.com", "password": PASSWORD},
    )

    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["user"]["email"] == "carol@example.com"
    assert body["user"]["role"] == "user"
    assert "password" not in body["user"] and "passwordHash" not in body["user"]

    me = client.get(f"{api}/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json()["user"]["id"] == body["user"]["id"]


@pytest.mark.parametrize(
    "password, expected",
    [
        ("Short1a", "Password must be at least 8 characters"),
        ("alllowercase1", "Password must contain at least one uppercase letter"),
        ("ALLUPPERCASE1", "Password must contain at least one lowercase letter"),
        ("NoDigitsHere", "Password must contain at least one number"),
    ],
)
def test_register_rejects_weak_passwords(client, api, password, expected):
    res = client.post(
        f"{api}/auth/register",
        json={"name": "Weak", "email": "weak@example.com", "password": password},
    )

    assert res.status_code == 400
    error = res.json()["error"]
    assert error["message"] == expected
    assert error["fields"] == [{"field": "password", "message": expected}]


def test_register_rejects_invalid_email(client, api):
    res = client.post(
        f"{api}/auth/register",
        json={"name": "Bad", "email": "not-an-email", "password": PASSWORD},
    )
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_register_rejects_missing_body(client, api):
    res = client.post(f"{api}/auth/register")
    assert res.status_code == 400


def test_register_duplicate_email_is_case_insensitive(client, api, alice):
    res = client.post(
        f"{api}/auth/register",
        json={"name": "Alice Again", "email": "ALICE@example.com", "password": PASSWORD},
    )
    assert res.status_code == 409
    assert res.json()["error"] == {"status": 409, "message": "Email already exists"}


def test_login_with_valid_credentials(client, api, alice):
    res = client.post(
        f"{api}/auth/login", json={"email": "alice@example.com", "password": PASSWORD}
    )
    assert res.status_code == 200
    assert res.json()["token"]
    assert res.json()["user"]["name"] == "Alice"


@pytest.mark.parametrize(
    "email, password",
    [("alice@example.com", "Wrong1234"), ("nobody@example.com", PASSWORD)],
)
def test_login_with_bad_credentials_is_401(client, api, alice, email, password):
    res = client.post(f"{api}/auth/login", json={"email": email, "password": password})
    assert res.status_code == 401
    assert res.json()["error"]["message"] == "Invalid credentials"


def test_login_with_empty_password_is_400(client, api, alice):
    res = client.post(f"{api}/auth/login", json={"email": "alice@example.com", "password": ""})
    assert res.status_code == 400
    assert res.json()["error"]["message"] == "Password is required"


def test_me_requires_bearer_token(client, api):
    res = client.get(f"{api}/auth/me")
    assert res.status_code == 401
    assert res.json()["error"]["message"] == "Not authorized to access this route"

    res = client.get(f"{api}/auth/me", headers={"Authorization": "Basic abc"})
    assert res.status_code == 401


def test_malformed_token_is_rejected(client, api):
    res = client.get(f"{api}/auth/me", headers={"Authorization": "Bearer not.a.token"})
    assert res.status_code == 401
    assert res.json()["error"]["message"] == "Invalid token"


def test_token_signed_with_other_secret_is_rejected(client, api, alice):
    user, _ = alice
    forged = jwt.encode({"sub": str(user["id"])}, "some-other-secret", algorithm="HS256")
    res = client.get(f"{api}/auth/me", headers={"Authorization": f"Bearer {forged}"})
    assert res.status_code == 401


def test_expired_token_is_rejected(client, api, settings, alice):
    user, _ = alice
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    token = jwt.encode(
        {"sub": str(user["id"]), "iat": past - timedelta(hours=1), "exp": past},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    res = client.get(f"{api}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.json()["error"]["message"] == "Token expired"


def test_token_for_missing_user_is_rejected(client, api, settings):
    token = create_access_token(4242, settings)
    res = client.get(f"{api}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_error_envelope_has_no_stack_outside_development(client, api):
    error = client.get(f"{api}/auth/me").json()["error"]
    assert "stack" not in error


def test_passwords_are_stored_salted():
    first, second = hash_password(PASSWORD), hash_password(PASSWORD)
    assert first != second
    assert verify_password(PASSWORD, first)
    assert not verify_password("Wrong1234", first)


def test_register_as_admin(client, api):
    user, _ = register(client, api, "root@example.com", role="admin")
    assert user["role"] == "admin"


class StubAuthService:
    def __init__(self, user: User) -> None:
        self.user = user

    async def authenticate(self, token: str) -> User:
        assert token == "abc"
        return self.user


async def test_request_carries_public_user_without_password_hash():
    stored = User(
        id=1,
        name="Alice",
        email="alice@example.com",
        password_hash=hash_password(PASSWORD),
        created_at=datetime.now(timezone.utc),
    )
    request = Request({"type": "http", "headers": [(b"authorization", b"Bearer abc")]})

    user = await get_current_user(request, StubAuthService(stored))

    assert isinstance(user, UserRead)
    assert "password_hash" not in user.model_dump()
    assert request.state.user is user
    assert (user.id, user.role) == (1, "user")
