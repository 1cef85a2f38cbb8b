# tests/v1/test_content.py
"""Tests for content endpoints."""

from datetime import timedelta

import pytest
from fastapi import status

from noisegarden.api.v1.dependencies import get_rate_limiter_dep
from noisegarden.db.time import utcnow
from noisegarden.services.moderation import ModerationService
from noisegarden.services.rate_limit import RateLimiter
from noisegarden.services.restrictions import RestrictionService
from tests.helpers import identity_of


def _post(client, headers, **payload):
    return client.post("/api/v1/content", json=payload, headers=headers)


def test_create_requires_token(client) -> None:
    response = _post(client, {}, body="anonymous")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"] == "unauthorized"


def test_invalid_token_is_unauthorized(client) -> None:
    response = _post(client, {"Authorization": "Bearer not-a-token"}, body="x")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_create_content(client, auth_token) -> None:
    response = _post(client, auth_token, body="  first bloom  ", ttl_seconds=3600)

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["body"] == "first bloom"
    assert data["author_username"] == "alice"
    assert data["expires_at"] is not None
    assert data["reply_count"] == 0
    assert data["popup"] is None
    assert data["poll_id"] is None


@pytest.mark.parametrize(
    "payload",
    [
        {"body": ""},
        {"body": "x" * 281},
        {"body": "too long lived", "ttl_seconds": 10**9},
    ],
    ids=["empty", "too-long", "ttl-over-max"],
)
def test_create_rejects_malformed_input(client, auth_token, payload) -> None:
    response = _post(client, auth_token, **payload)

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "invalid_state"


def test_reply_and_repost_counts(client, auth_token, other_auth_token) -> None:
    root = _post(client, auth_token, body="root").json()["id"]
    _post(client, other_auth_token, body="a reply", parent_id=root)
    repost = _post(client, other_auth_token, repost_of=root)
    assert repost.status_code == status.HTTP_201_CREATED
    assert repost.json()["repost_of"] == root

    data = client.get(f"/api/v1/content/{root}").json()
    assert data["reply_count"] == 1
    assert data["repost_count"] == 1

    replies = client.get(f"/api/v1/content/{root}/replies").json()
    assert [reply["body"] for reply in replies] == ["a reply"]


def test_reply_to_missing_parent_is_not_found(client, auth_token) -> None:
    response = _post(client, auth_token, body="orphan", parent_id=9999)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"] == "not_found"


def test_expired_content_is_not_found(client, author, create_content) -> None:
    content_id = create_content(author, "gone soon", ttl_seconds=60, now=utcnow() - timedelta(minutes=5))

    assert client.get(f"/api/v1/content/{content_id}").status_code == status.HTTP_404_NOT_FOUND
    assert all(item["id"] != content_id for item in client.get("/api/v1/content").json())


def test_listing_puts_pinned_first(client, auth_token, admin_token) -> None:
    first = _post(client, auth_token, body="older").json()["id"]
    _post(client, auth_token, body="newer")

    response = client.put(f"/api/v1/content/{first}/pin", json={"pinned": True}, headers=admin_token)
    assert response.status_code == status.HTTP_200_OK

    bodies = [item["body"] for item in client.get("/api/v1/content").json()]
    assert bodies == ["older", "newer"]


def test_pin_requires_admin(client, auth_token, moderator_token) -> None:
    content_id = _post(client, auth_token, body="pin me").json()["id"]

    response = client.put(f"/api/v1/content/{content_id}/pin", json={"pinned": True}, headers=moderator_token)

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_quarantined_body_is_withheld_from_others(
    client, db_session, author, moderator, auth_token, other_auth_token, create_content
) -> None:
    content_id = create_content(author, "questionable")
    ModerationService.quarantine(db_session, identity_of(moderator), content_id)

    anonymous = client.get(f"/api/v1/content/{content_id}").json()
    assert anonymous["quarantined"] is True
    assert anonymous["body"] is None
    assert anonymous["body_withheld"] is True

    assert client.get(f"/api/v1/content/{content_id}", headers=other_auth_token).json()["body"] is None
    assert client.get(f"/api/v1/content/{content_id}", headers=auth_token).json()["body"] == "questionable"


def test_delete_removes_subtree(client, auth_token, other_auth_token) -> None:
    root = _post(client, auth_token, body="root").json()["id"]
    reply = _post(client, other_auth_token, body="reply", parent_id=root).json()["id"]

    assert client.delete(f"/api/v1/content/{root}", headers=other_auth_token).status_code == 403
    assert client.delete(f"/api/v1/content/{root}", headers=auth_token).status_code == 204

    assert client.get(f"/api/v1/content/{root}").status_code == status.HTTP_404_NOT_FOUND
    assert client.get(f"/api/v1/content/{reply}").status_code == status.HTTP_404_NOT_FOUND


def test_moderator_may_delete(client, auth_token, moderator_token) -> None:
    content_id = _post(client, auth_token, body="remove me").json()["id"]

    assert client.delete(f"/api/v1/content/{content_id}", headers=moderator_token).status_code == 204


def test_disabled_replies_refuse_new_replies(client, auth_token, other_auth_token) -> None:
    root = _post(client, auth_token, body="no comments").json()["id"]

    blocked = client.put(
        f"/api/v1/content/{root}/replies-disabled",
        json={"disabled": True},
        headers=other_auth_token,
    )
    assert blocked.status_code == status.HTTP_403_FORBIDDEN

    response = client.put(
        f"/api/v1/content/{root}/replies-disabled",
        json={"disabled": True},
        headers=auth_token,
    )
    assert response.json()["replies_disabled"] is True

    reply = _post(client, other_auth_token, body="but wait", parent_id=root)
    assert reply.status_code == status.HTTP_409_CONFLICT
    assert reply.json()["error"] == "parent_closed"


def test_muted_author_gets_mute_details(client, db_session, test_user, moderator, auth_token) -> None:
    RestrictionService.mute(db_session, identity_of(moderator), test_user.id, "spamming", 15)

    response = _post(client, auth_token, body="let me speak")

    assert response.status_code == status.HTTP_403_FORBIDDEN
    data = response.json()
    assert data["error"] == "muted"
    assert data["reason"] == "spamming"
    assert data["muted_by"] == "mod_mia"
    assert data["expires_at"]


def test_banned_identity_is_rejected(client, db_session, test_user, moderator, auth_token) -> None:
    RestrictionService.ban(db_session, identity_of(moderator), test_user.id, "abuse")

    response = client.get("/api/v1/content", headers=auth_token)

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"] == "banned"
    assert response.json()["reason"] == "abuse"


def test_content_creation_is_rate_limited(app, client, auth_token) -> None:
    limiter = RateLimiter(per_minute=1, per_hour=10, redis_url="", enabled=True)
    app.dependency_overrides[get_rate_limiter_dep] = lambda: limiter
    try:
        assert _post(client, auth_token, body="one").status_code == status.HTTP_201_CREATED
        response = _post(client, auth_token, body="two")
    finally:
        app.dependency_overrides.pop(get_rate_limiter_dep, None)

    assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert response.json()["error"] == "rate_limited"
