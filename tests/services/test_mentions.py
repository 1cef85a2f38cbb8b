"""Tests for the mention consent workflow."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from noisegarden.core.errors import Forbidden, InvalidState, NotFound
from noisegarden.models import Mention, Notification
from noisegarden.services.content import ContentService
from noisegarden.services.mentions import MentionService, extract_usernames, render_mentions
from tests.helpers import identity_of, later


def _mention_for(db_session, content_id: int) -> Mention:
    return db_session.scalars(select(Mention).where(Mention.content_id == content_id)).one()


def test_extract_usernames_keeps_first_appearance_order() -> None:
    body = "@bob meet @carol_1, then @bob again; mail x@bob.org is @no and @toolongusername_abcdefg"

    assert extract_usernames(body) == ["bob", "carol_1"]


def test_render_mentions_links_only_accepted_names() -> None:
    body = "thanks @bob and @carol"

    assert render_mentions(body, {"bob"}) == "thanks [@bob](/users/bob) and @carol"
    assert render_mentions(body, set()) == body


def test_body_mentions_create_pending_requests(db_session, author, other_user, create_content, now) -> None:
    content_id = create_content(author, "hi @bob, @ghost and @alice", now=now)

    mention = _mention_for(db_session, content_id)
    assert mention.mentioned_id == other_user.id
    assert mention.status == "pending"

    notice = db_session.scalars(
        select(Notification).where(Notification.user_id == other_user.id)
    ).one()
    assert (notice.kind, notice.from_username, notice.content_id) == ("mention", "alice", content_id)


def test_accepting_renders_link_and_declining_does_not(db_session, author, other_user, create_content, now) -> None:
    bob = identity_of(other_user)
    accepted_id = create_content(author, "with @bob", now=now)
    declined_id = create_content(author, "also @bob", now=now)

    MentionService.respond(db_session, bob, _mention_for(db_session, accepted_id).id, "accepted", now)
    MentionService.respond(db_session, bob, _mention_for(db_session, declined_id).id, "declined", now)

    assert ContentService.get(db_session, accepted_id, now=now).body == "with [@bob](/users/bob)"
    assert ContentService.get(db_session, declined_id, now=now).body == "also @bob"


def test_answered_mentions_cannot_change(db_session, author, other_user, create_content, now) -> None:
    bob = identity_of(other_user)
    mention_id = _mention_for(db_session, create_content(author, "ping @bob", now=now)).id

    responded = MentionService.respond(db_session, bob, mention_id, "accepted", later(now, seconds=3))
    assert responded.responded_at is not None

    for status in ("pending", "declined", "accepted"):
        with pytest.raises(InvalidState):
            MentionService.respond(db_session, bob, mention_id, status, now)


def test_only_the_mentioned_user_may_respond(db_session, author, other_user, create_content, now) -> None:
    mention_id = _mention_for(db_session, create_content(author, "ping @bob", now=now)).id

    with pytest.raises(Forbidden):
        MentionService.respond(db_session, author, mention_id, "accepted", now)


def test_unknown_status_is_invalid(db_session, author, other_user, create_content, now) -> None:
    mention_id = _mention_for(db_session, create_content(author, "ping @bob", now=now)).id

    with pytest.raises(InvalidState):
        MentionService.respond(db_session, identity_of(other_user), mention_id, "maybe", now)


def test_explicit_request_is_idempotent(db_session, author, other_user, create_content, now) -> None:
    content_id = create_content(author, "no names here", now=now)

    first = MentionService.request(db_session, author, content_id, "bob", now)
    second = MentionService.request(db_session, author, content_id, "bob", now)

    assert first.id == second.id
    assert first.requester_id == author.user_id


def test_explicit_request_checks_owner_and_target(db_session, author, other_user, create_content, now) -> None:
    content_id = create_content(author, "mine", now=now)

    with pytest.raises(Forbidden):
        MentionService.request(db_session, identity_of(other_user), content_id, "alice", now)
    with pytest.raises(NotFound):
        MentionService.request(db_session, author, content_id, "nobody_here", now)


def test_mentions_of_expired_content_vanish(db_session, author, other_user, create_content, now) -> None:
    content_id = create_content(author, "short @bob", ttl_seconds=30, now=now)
    mention_id = _mention_for(db_session, content_id).id
    gone = later(now, seconds=30)

    assert MentionService.list_pending(db_session, other_user.id, now) != []
    assert MentionService.list_pending(db_session, other_user.id, gone) == []
    with pytest.raises(NotFound):
        MentionService.respond(db_session, identity_of(other_user), mention_id, "accepted", gone)


def test_duplicate_mention_rows_are_rejected(db_session, author, other_user, create_content, now) -> None:
    content_id = create_content(author, "hello @bob", now=now)

    with pytest.raises(IntegrityError):
        with db_session.begin_nested():
            db_session.add(
                Mention(content_id=content_id, mentioned_id=other_user.id, requester_id=author.user_id)
            )


def test_create_returns_the_row_a_concurrent_request_stored(
    db_session, author, other_user, create_content, now, mocker
) -> None:
    content_id = create_content(author, "hello @bob", now=now)
    stored = _mention_for(db_session, content_id)
    real_find = MentionService._find
    calls = []

    def find_after_a_miss(*args):
        # The first lookup misses, as if the other request had not committed yet.
        calls.append(args)
        return None if len(calls) == 1 else real_find(*args)

    mocker.patch.object(MentionService, "_find", side_effect=find_after_a_miss)

    mention = MentionService.create(db_session, content_id, "bob", author)

    assert mention.id == stored.id
    assert len(db_session.scalars(select(Mention).where(Mention.content_id == content_id)).all()) == 1
