"""Tests for mute and ban enforcement."""

import pytest

from noisegarden.core.errors import Banned, Forbidden, Muted, NotFound
from noisegarden.services.restrictions import RestrictionService
from tests.helpers import identity_of, later


def test_muted_user_is_blocked_until_expiry(db_session, test_user, author, moderator, create_content, now) -> None:
    mod = identity_of(moderator)
    RestrictionService.mute(db_session, mod, test_user.id, "cool off", duration_minutes=30, now=now)

    with pytest.raises(Muted) as excinfo:
        create_content(author, "still here", now=later(now, minutes=10))
    assert excinfo.value.reason == "cool off"
    assert excinfo.value.expires_at == later(now, minutes=30)
    assert excinfo.value.muted_by == moderator.username

    # No unmute needed once the window has passed.
    assert create_content(author, "back again", now=later(now, minutes=30, seconds=1))


def test_expired_mute_reads_as_absent(db_session, test_user, moderator, now) -> None:
    RestrictionService.mute(db_session, identity_of(moderator), test_user.id, "brief", 1, now)

    assert RestrictionService.get_mute_status(db_session, test_user.id, later(now, seconds=30)).muted
    assert not RestrictionService.get_mute_status(db_session, test_user.id, later(now, minutes=2)).muted


def test_remute_overwrites_reason_and_expiry(db_session, test_user, moderator, now) -> None:
    mod = identity_of(moderator)
    RestrictionService.mute(db_session, mod, test_user.id, "first", 10, now)
    status = RestrictionService.mute(db_session, mod, test_user.id, "second", 60, now)

    assert status.reason == "second"
    assert status.expires_at == later(now, minutes=60)


def test_default_mute_duration(db_session, test_user, moderator, now) -> None:
    status = RestrictionService.mute(db_session, identity_of(moderator), test_user.id, "default", now=now)

    assert status.expires_at == later(now, minutes=24 * 60)


def test_unmute_lifts_immediately(db_session, test_user, author, moderator, create_content, now) -> None:
    mod = identity_of(moderator)
    RestrictionService.mute(db_session, mod, test_user.id, "oops", 60, now)
    RestrictionService.unmute(db_session, mod, test_user.id)

    assert create_content(author, "free", now=later(now, minutes=1))


def test_banned_user_cannot_post_or_get_a_token(db_session, test_user, author, moderator, create_content, now) -> None:
    status = RestrictionService.ban(db_session, identity_of(moderator), test_user.id, "abuse", now)
    assert status.banned
    assert status.banned_by == moderator.username

    with pytest.raises(Banned):
        create_content(author, "nope", now=now)
    with pytest.raises(Banned) as excinfo:
        RestrictionService.issue_access_token(db_session, test_user)
    assert excinfo.value.reason == "abuse"

    RestrictionService.unban(db_session, identity_of(moderator), test_user.id)
    assert RestrictionService.issue_access_token(db_session, test_user)


def test_restrictions_require_elevated_role(db_session, test_user, other_user) -> None:
    plain = identity_of(other_user)

    for action in (
        lambda: RestrictionService.mute(db_session, plain, test_user.id, "x"),
        lambda: RestrictionService.unmute(db_session, plain, test_user.id),
        lambda: RestrictionService.ban(db_session, plain, test_user.id, "x"),
        lambda: RestrictionService.unban(db_session, plain, test_user.id),
        lambda: RestrictionService.list_muted(db_session, plain),
        lambda: RestrictionService.list_banned(db_session, plain),
    ):
        with pytest.raises(Forbidden):
            action()


def test_restricting_unknown_user_is_not_found(db_session, moderator) -> None:
    with pytest.raises(NotFound):
        RestrictionService.mute(db_session, identity_of(moderator), 4242, "ghost")


def test_listings_show_active_restrictions(db_session, test_user, other_user, moderator, now) -> None:
    mod = identity_of(moderator)
    RestrictionService.mute(db_session, mod, test_user.id, "loud", 5, now)
    RestrictionService.mute(db_session, mod, other_user.id, "long gone", 1, later(now, hours=-1))
    RestrictionService.ban(db_session, mod, other_user.id, "abuse", now)

    muted = RestrictionService.list_muted(db_session, mod, now)
    banned = RestrictionService.list_banned(db_session, mod)

    assert [(row.username, row.reason, row.actor) for row in muted] == [("alice", "loud", "mod_mia")]
    assert [(row.username, row.reason) for row in banned] == [("bob", "abuse")]
