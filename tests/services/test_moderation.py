"""Tests for the flag ledger and quarantine gate."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from noisegarden.core.errors import Forbidden, InvalidState, NotFound
from noisegarden.models import ContentItem, Flag, Notification
from noisegarden.models.notification import NOTIFICATION_QUARANTINE
from noisegarden.models.user import ROLE_MODERATOR
from noisegarden.services.moderation import ModerationService
from tests.helpers import identity_of, later


def _quarantine_notifications(db_session, user_id: int) -> list[Notification]:
    return list(
        db_session.scalars(
            select(Notification).where(
                Notification.user_id == user_id,
                Notification.kind == NOTIFICATION_QUARANTINE,
            )
        )
    )


@pytest.fixture()
def reporters(make_user):
    return [identity_of(make_user(name)) for name in ("bea", "dan", "eve", "fay")]


def test_third_flag_quarantines_and_notifies_once(
    db_session, test_user, author, reporters, create_content, now
) -> None:
    content_id = create_content(author, now=now)
    b, d, e, f = reporters

    first = ModerationService.file_flag(db_session, b, content_id, "spam", now)
    second = ModerationService.file_flag(db_session, d, content_id, "rude", now)
    assert (first.flag_count, first.quarantined) == (1, False)
    assert (second.flag_count, second.quarantined) == (2, False)

    third = ModerationService.file_flag(db_session, e, content_id, "off topic", now)
    assert third.flag_count == 3
    assert third.quarantined
    assert third.quarantine_triggered
    assert len(_quarantine_notifications(db_session, test_user.id)) == 1

    fourth = ModerationService.file_flag(db_session, f, content_id, "spam", now)
    assert fourth.flag_count == 4
    assert fourth.quarantined
    assert not fourth.quarantine_triggered
    assert len(_quarantine_notifications(db_session, test_user.id)) == 1


def test_failed_notification_insert_keeps_the_quarantine(
    db_session, test_user, author, reporters, create_content, now, mocker
) -> None:
    content_id = create_content(author, now=now)
    for reporter in reporters[:2]:
        ModerationService.file_flag(db_session, reporter, content_id, "spam", now)
    mocker.patch.object(db_session, "add", side_effect=SQLAlchemyError("insert failed"))

    result = ModerationService.file_flag(db_session, reporters[2], content_id, "spam", now)

    assert result.quarantined
    assert result.quarantine_triggered
    item = db_session.scalars(
        select(ContentItem).where(ContentItem.id == content_id).execution_options(populate_existing=True)
    ).one()
    assert item.quarantined
    assert _quarantine_notifications(db_session, test_user.id) == []


def test_refiling_updates_reason_without_counting_twice(db_session, author, reporters, create_content, now) -> None:
    content_id = create_content(author, now=now)
    reporter = reporters[0]

    ModerationService.file_flag(db_session, reporter, content_id, "spam", now)
    result = ModerationService.file_flag(db_session, reporter, content_id, "harassment", now)

    assert result.flag_count == 1
    flag = db_session.scalars(
        select(Flag).where(Flag.content_id == content_id).execution_options(populate_existing=True)
    ).one()
    assert flag.reason == "harassment"


def test_authors_may_flag_their_own_content(db_session, author, create_content, now) -> None:
    content_id = create_content(author, now=now)

    assert ModerationService.file_flag(db_session, author, content_id, "regret", now).flag_count == 1


def test_flagging_requires_a_reason(db_session, author, reporters, create_content, now) -> None:
    content_id = create_content(author, now=now)

    with pytest.raises(InvalidState):
        ModerationService.file_flag(db_session, reporters[0], content_id, "   ", now)


def test_flagging_expired_content_is_not_found(db_session, author, reporters, create_content, now) -> None:
    content_id = create_content(author, ttl_seconds=10, now=now)

    with pytest.raises(NotFound):
        ModerationService.file_flag(db_session, reporters[0], content_id, "spam", later(now, seconds=10))


def test_unquarantine_keeps_flags(db_session, author, reporters, moderator, create_content, now) -> None:
    content_id = create_content(author, now=now)
    for reporter in reporters[:3]:
        ModerationService.file_flag(db_session, reporter, content_id, "spam", now)

    item = ModerationService.unquarantine(db_session, identity_of(moderator), content_id, now)

    assert not item.quarantined
    assert ModerationService.flag_summary(db_session, content_id, now).total == 3
    # The ledger still holds three flags, so the next report re-quarantines.
    again = ModerationService.file_flag(db_session, reporters[3], content_id, "spam", now)
    assert again.quarantine_triggered


def test_moderation_actions_require_elevated_role(db_session, author, reporters, create_content, now) -> None:
    content_id = create_content(author, now=now)
    plain = reporters[0]

    with pytest.raises(Forbidden):
        ModerationService.unquarantine(db_session, plain, content_id, now)
    with pytest.raises(Forbidden):
        ModerationService.quarantine(db_session, plain, content_id, now)
    with pytest.raises(Forbidden):
        ModerationService.list_flagged_content(db_session, plain, now=now)
    with pytest.raises(Forbidden):
        ModerationService.list_flags(db_session, plain, content_id, now)


def test_manual_quarantine_notifies_only_on_transition(
    db_session, test_user, author, moderator, create_content, now
) -> None:
    content_id = create_content(author, now=now)
    mod = identity_of(moderator)

    assert ModerationService.quarantine(db_session, mod, content_id, now).quarantined
    ModerationService.quarantine(db_session, mod, content_id, now)

    assert len(_quarantine_notifications(db_session, test_user.id)) == 1
    assert db_session.get(ContentItem, content_id).quarantined


def test_flag_summary_groups_reasons(db_session, author, reporters, create_content, now) -> None:
    content_id = create_content(author, now=now)
    for reporter, reason in zip(reporters[:3], ("spam", "spam", "rude"), strict=True):
        ModerationService.file_flag(db_session, reporter, content_id, reason, now)

    summary = ModerationService.flag_summary(db_session, content_id, now)

    assert summary.total == 3
    assert summary.reasons == [("spam", 2), ("rude", 1)]


def test_list_flagged_content_for_moderators(
    db_session, author, reporters, make_user, create_content, now
) -> None:
    mod = identity_of(make_user("mod_max", ROLE_MODERATOR))
    clean = create_content(author, "clean", now=now)
    flagged = create_content(author, "flagged", now=later(now, seconds=1))
    ModerationService.file_flag(db_session, reporters[0], flagged, "spam", now)
    ModerationService.file_flag(db_session, reporters[1], flagged, "spam", now)

    rows = ModerationService.list_flagged_content(db_session, mod, now=later(now, seconds=2))

    assert [(item.id, count) for item, count in rows] == [(flagged, 2)]
    assert clean not in [item.id for item, _ in rows]
    entries = ModerationService.list_flags(db_session, mod, flagged, now)
    assert [entry.reporter_username for entry in entries] == ["bea", "dan"]
