"""Content creation, reading and owner actions."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from noisegarden.core.errors import Forbidden, InvalidState, NotFound
from noisegarden.core.security import Identity, ensure_admin
from noisegarden.core.settings import settings
from noisegarden.db.time import utcnow
from noisegarden.models import ContentItem, User
from noisegarden.models.notification import NOTIFICATION_REPLY, NOTIFICATION_REPOST
from noisegarden.services.expiry import ExpirySweeper, get_live_content, live_clause
from noisegarden.services.mentions import MentionService, render_mentions
from noisegarden.services.notifications import NotificationService
from noisegarden.services.polls import PollService
from noisegarden.services.popup import PopupService, PopupStatus, evaluate
from noisegarden.services.restrictions import RestrictionService

logger = logging.getLogger(__name__)

SortOrder = Literal["newest", "oldest"]


@dataclass
class PopupConfig:
    reply_limit: int | None = None
    time_limit_minutes: int | None = None


@dataclass
class PollDraft:
    question: str
    options: Sequence[str]


@dataclass
class ContentView:
    """A live item together with everything derived from it at read time."""

    item: ContentItem
    author_username: str
    body: str | None
    body_withheld: bool
    reply_count: int
    repost_count: int
    popup: PopupStatus | None
    poll_id: int | None


def _count_by(db: Session, column, ids: Sequence[int], now: datetime) -> dict[int, int]:
    if not ids:
        return {}
    rows = db.execute(
        select(column, func.count())
        .select_from(ContentItem)
        .where(column.in_(ids), live_clause(now))
        .group_by(column)
    ).all()
    return {key: count for key, count in rows}


class ContentService:
    """Service for creating and reading ephemeral content."""

    @staticmethod
    def _validate_body(body: str, *, allow_empty: bool) -> str:
        body = body.strip()
        if not body and not allow_empty:
            raise InvalidState("Content body must not be empty")
        if len(body) > settings.content_max_length:
            raise InvalidState(
                f"Content exceeds {settings.content_max_length} characters"
            )
        return body

    @staticmethod
    def _validate_ttl(ttl_seconds: int | None) -> int:
        if ttl_seconds is None:
            return settings.default_content_ttl_seconds
        if not 1 <= ttl_seconds <= settings.max_content_ttl_seconds:
            raise InvalidState(
                f"ttl_seconds must be between 1 and {settings.max_content_ttl_seconds}"
            )
        return ttl_seconds

    @classmethod
    def create(
        cls,
        db: Session,
        author: Identity,
        body: str,
        *,
        parent_id: int | None = None,
        repost_of: int | None = None,
        ttl_seconds: int | None = None,
        popup: PopupConfig | None = None,
        poll: PollDraft | None = None,
        now: datetime | None = None,
    ) -> ContentItem:
        """Create a content item after every enforcement check has passed.

        Args:
            db: Database session
            author: Verified identity of the author
            body: Text of the item; may be empty only for a repost
            parent_id: Item being replied to
            repost_of: Item being reposted
            ttl_seconds: Lifetime; defaults to the configured TTL
            popup: Popup limits for a root item
            poll: Poll to attach to a root item

        Raises:
            Banned: If the author is banned.
            Muted: If the author holds an active mute.
            NotFound: If the parent or repost target is absent or expired.
            ParentClosed: If the parent no longer accepts replies.
            InvalidState: If the input is malformed.
        """
        now = now or utcnow()
        body = cls._validate_body(body, allow_empty=repost_of is not None)
        ttl = cls._validate_ttl(ttl_seconds)
        if parent_id is not None and (popup is not None or poll is not None):
            raise InvalidState("Replies cannot carry a popup thread or a poll")
        if popup is not None:
            for limit in (popup.reply_limit, popup.time_limit_minutes):
                if limit is not None and limit < 1:
                    raise InvalidState("Popup limits must be at least 1")
        if poll is not None:
            PollService.validate_draft(poll.question, poll.options)

        RestrictionService.assert_can_post(db, author.user_id, now)

        parent = None
        if parent_id is not None:
            parent = PopupService.lock_parent_for_reply(db, parent_id, now)
        original = get_live_content(db, repost_of, now) if repost_of is not None else None

        values = {
            "author_id": author.user_id,
            "body": body,
            "created_at": now,
            "expires_at": now + timedelta(seconds=ttl),
            "parent_id": parent_id,
            "repost_of": repost_of,
            "quarantined": False,
            "replies_disabled": False,
            "pinned": False,
        }
        if parent is not None and parent.is_popup:
            item = db.get(ContentItem, PopupService.insert_reply(db, parent, values, now))
        else:
            item = ContentItem(**values)
            if popup is not None:
                item.popup_reply_limit = popup.reply_limit or settings.popup_default_reply_limit
                item.popup_time_limit_minutes = (
                    popup.time_limit_minutes or settings.popup_default_time_limit_minutes
                )
                item.popup_started_at = now
            db.add(item)
            db.flush()

        if poll is not None:
            PollService.create(db, item.id, poll.question, poll.options)
        MentionService.create_for_body(db, item, author)

        if parent is not None and parent.author_id != author.user_id:
            NotificationService.notify(
                db,
                parent.author_id,
                NOTIFICATION_REPLY,
                author.username,
                content_id=item.id,
                from_user_id=author.user_id,
            )
        if original is not None and original.author_id != author.user_id:
            NotificationService.notify(
                db,
                original.author_id,
                NOTIFICATION_REPOST,
                author.username,
                content_id=item.id,
                from_user_id=author.user_id,
            )

        db.commit()
        db.refresh(item)
        logger.debug("User %s created content %s", author.user_id, item.id)
        return item

    @staticmethod
    def build_views(
        db: Session,
        items: Sequence[ContentItem],
        viewer: Identity | None,
        now: datetime | None = None,
    ) -> list[ContentView]:
        """Attach counts, popup state, poll ids and rendered bodies to ``items``."""
        now = now or utcnow()
        ids = [item.id for item in items]
        reply_counts = _count_by(db, ContentItem.parent_id, ids, now)
        repost_counts = _count_by(db, ContentItem.repost_of, ids, now)
        poll_ids = PollService.poll_ids_for(db, ids)
        accepted = MentionService.accepted_usernames(db, ids)
        author_ids = {item.author_id for item in items}
        authors = dict(
            db.execute(select(User.id, User.username).where(User.id.in_(author_ids))).all()
        ) if author_ids else {}

        views = []
        for item in items:
            replies = reply_counts.get(item.id, 0)
            withheld = item.quarantined and not (
                viewer is not None
                and (viewer.user_id == item.author_id or viewer.is_elevated)
            )
            views.append(
                ContentView(
                    item=item,
                    author_username=authors.get(item.author_id, ""),
                    body=None if withheld else render_mentions(item.body, accepted.get(item.id, ())),
                    body_withheld=withheld,
                    reply_count=replies,
                    repost_count=repost_counts.get(item.id, 0),
                    popup=evaluate(item, replies, now) if item.is_popup else None,
                    poll_id=poll_ids.get(item.id),
                )
            )
        return views

    @classmethod
    def get(
        cls,
        db: Session,
        content_id: int,
        viewer: Identity | None = None,
        now: datetime | None = None,
    ) -> ContentView:
        """Fetch one live item; expired items are reported as not found."""
        now = now or utcnow()
        item = get_live_content(db, content_id, now)
        return cls.build_views(db, [item], viewer, now)[0]

    @classmethod
    def list_content(
        cls,
        db: Session,
        viewer: Identity | None = None,
        sort: SortOrder = "newest",
        limit: int = 50,
        offset: int = 0,
        now: datetime | None = None,
    ) -> list[ContentView]:
        """List live root items, pinned ones first."""
        now = now or utcnow()
        ExpirySweeper.sweep_on_read(db, now)
        created = ContentItem.created_at.desc() if sort == "newest" else ContentItem.created_at.asc()
        tiebreak = ContentItem.id.desc() if sort == "newest" else ContentItem.id.asc()
        items = db.scalars(
            select(ContentItem)
            .where(ContentItem.parent_id.is_(None), live_clause(now))
            .order_by(ContentItem.pinned.desc(), created, tiebreak)
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        ).all()
        return cls.build_views(db, items, viewer, now)

    @classmethod
    def list_replies(
        cls,
        db: Session,
        content_id: int,
        viewer: Identity | None = None,
        now: datetime | None = None,
    ) -> list[ContentView]:
        """List live replies to an item, oldest first."""
        now = now or utcnow()
        ExpirySweeper.sweep_on_read(db, now)
        get_live_content(db, content_id, now)
        items = db.scalars(
            select(ContentItem)
            .where(ContentItem.parent_id == content_id, live_clause(now))
            .order_by(ContentItem.created_at.asc(), ContentItem.id.asc())
            .execution_options(populate_existing=True)
        ).all()
        return cls.build_views(db, items, viewer, now)

    @classmethod
    def list_user_content(
        cls,
        db: Session,
        username: str,
        viewer: Identity | None = None,
        limit: int = 50,
        now: datetime | None = None,
    ) -> list[ContentView]:
        now = now or utcnow()
        user = db.scalars(select(User).where(User.username == username)).first()
        if user is None:
            raise NotFound("User not found")
        ExpirySweeper.sweep_on_read(db, now)
        items = db.scalars(
            select(ContentItem)
            .where(ContentItem.author_id == user.id, live_clause(now))
            .order_by(ContentItem.created_at.desc(), ContentItem.id.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        ).all()
        return cls.build_views(db, items, viewer, now)

    @staticmethod
    def delete(
        db: Session,
        actor: Identity,
        content_id: int,
        now: datetime | None = None,
    ) -> None:
        """Delete an item and, through the store's cascades, its whole subtree."""
        item = get_live_content(db, content_id, now)
        if item.author_id != actor.user_id and not actor.is_elevated:
            raise Forbidden()
        db.delete(item)
        db.commit()
        logger.info("User %s deleted content %s", actor.user_id, content_id)

    @staticmethod
    def set_pinned(
        db: Session,
        actor: Identity,
        content_id: int,
        pinned: bool,
        now: datetime | None = None,
    ) -> ContentItem:
        ensure_admin(actor)
        item = get_live_content(db, content_id, now)
        item.pinned = pinned
        db.commit()
        return item

    @staticmethod
    def set_replies_disabled(
        db: Session,
        actor: Identity,
        content_id: int,
        disabled: bool,
        now: datetime | None = None,
    ) -> ContentItem:
        item = get_live_content(db, content_id, now)
        if item.author_id != actor.user_id:
            raise Forbidden()
        item.replies_disabled = disabled
        db.commit()
        return item
