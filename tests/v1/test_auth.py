# tests/v1/test_auth.py
"""Tests for registration and token handling."""

from fastapi import status

from noisegarden.core.security import create_access_token, decode_access_token


def test_register_returns_usable_token(client) -> None:
    response = client.post("/api/v1/auth/register", json={"username": "newbie"})

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "user"

    me = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.json()["username"] == "newbie"


def test_register_duplicate_username(client, test_user) -> None:
    response = client.post("/api/v1/auth/register", json={"username": "alice"})

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "conflict"


def test_register_validates_username(client) -> None:
    assert client.post("/api/v1/auth/register", json={"username": "no"}).status_code == 422
    assert client.post("/api/v1/auth/register", json={"username": "bad name"}).status_code == 422


def test_token_roundtrip() -> None:
    identity = decode_access_token(create_access_token(7, "gus", "moderator"))

    assert (identity.user_id, identity.username, identity.role) == (7, "gus", "moderator")
    assert identity.is_elevated
    assert not identity.is_admin


def test_token_for_deleted_user_is_unauthorized(client) -> None:
    token = create_access_token(4242, "ghost", "user")

    response = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
