"""Popup thread controller.

A popup thread is a root item with a reply limit and a time limit. Its state
is never stored as an enum; it is recomputed from the live reply count, the
elapsed time and the optional manual closure timestamp.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, insert, literal, select
from sqlalchemy.orm import Session

from noisegarden.core.errors import Forbidden, InvalidState, ParentClosed
from noisegarden.core.security import Identity
from noisegarden.core.settings import settings
from noisegarden.db.time import as_utc, utcnow
from noisegarden.models import ContentItem
from noisegarden.services.expiry import get_live_content, live_clause

logger = logging.getLogger(__name__)

REASON_REPLIES = "replies"
REASON_TIME = "time"
REASON_MANUAL = "manual"


@dataclass
class PopupStatus:
    """Computed popup state; ``remaining_*`` are zero once closed."""

    content_id: int
    closed: bool
    reason: str | None
    reply_count: int
    reply_limit: int
    time_limit_minutes: int
    remaining_replies: int
    remaining_ms: int
    closed_at: datetime | None = None


def live_reply_count(db: Session, content_id: int, now: datetime | None = None) -> int:
    return db.scalar(
        select(func.count())
        .select_from(ContentItem)
        .where(ContentItem.parent_id == content_id, live_clause(now or utcnow()))
    ) or 0


def evaluate(item: ContentItem, reply_count: int, now: datetime) -> PopupStatus:
    """Compute the popup state of ``item`` at ``now``.

    Closing conditions are checked replies first, then time, then manual
    closure; the first that holds names the reason.
    """
    if not item.is_popup:
        raise InvalidState("Content is not a popup thread")
    reply_limit = int(item.popup_reply_limit or 0)
    minutes = int(item.popup_time_limit_minutes or 0)

    started = as_utc(item.popup_started_at or item.created_at)
    elapsed_ms = (as_utc(now) - started).total_seconds() * 1000
    limit_ms = minutes * 60_000

    reason: str | None = None
    if reply_count >= reply_limit:
        reason = REASON_REPLIES
    elif elapsed_ms >= limit_ms:
        reason = REASON_TIME
    elif item.popup_closed_at is not None:
        reason = REASON_MANUAL

    closed = reason is not None
    return PopupStatus(
        content_id=item.id,
        closed=closed,
        reason=reason,
        reply_count=reply_count,
        reply_limit=reply_limit,
        time_limit_minutes=minutes,
        remaining_replies=0 if closed else max(0, reply_limit - reply_count),
        remaining_ms=0 if closed else max(0, int(limit_ms - elapsed_ms)),
        closed_at=as_utc(item.popup_closed_at) if item.popup_closed_at else None,
    )


class PopupService:
    """Reads and enforces popup thread state."""

    @staticmethod
    def status_for(db: Session, item: ContentItem, now: datetime | None = None) -> PopupStatus:
        now = now or utcnow()
        return evaluate(item, live_reply_count(db, item.id, now), now)

    @classmethod
    def get_status(cls, db: Session, content_id: int, now: datetime | None = None) -> PopupStatus:
        """Return the popup status of a live item.

        Raises:
            NotFound: If the item is absent or expired.
            InvalidState: If the item is not a popup thread.
        """
        now = now or utcnow()
        item = get_live_content(db, content_id, now)
        return cls.status_for(db, item, now)

    @classmethod
    def enable(
        cls,
        db: Session,
        actor: Identity,
        content_id: int,
        reply_limit: int | None = None,
        time_limit_minutes: int | None = None,
        now: datetime | None = None,
    ) -> PopupStatus:
        """Turn an existing root item into a popup thread starting at ``now``."""
        now = now or utcnow()
        item = get_live_content(db, content_id, now)
        if item.author_id != actor.user_id:
            raise Forbidden()
        if item.parent_id is not None:
            raise InvalidState("Only root content can become a popup thread")
        if item.is_popup:
            raise InvalidState("Content is already a popup thread")

        reply_limit = reply_limit or settings.popup_default_reply_limit
        time_limit_minutes = time_limit_minutes or settings.popup_default_time_limit_minutes
        if reply_limit < 1 or time_limit_minutes < 1:
            raise InvalidState("Popup limits must be at least 1")

        item.popup_reply_limit = reply_limit
        item.popup_time_limit_minutes = time_limit_minutes
        item.popup_started_at = now
        db.commit()
        logger.info("Content %s became a popup thread", content_id)
        return cls.status_for(db, item, now)

    @classmethod
    def close(
        cls,
        db: Session,
        actor: Identity,
        content_id: int,
        now: datetime | None = None,
    ) -> PopupStatus:
        """Close a popup thread by hand; closing twice keeps the first timestamp."""
        now = now or utcnow()
        item = get_live_content(db, content_id, now)
        if item.author_id != actor.user_id:
            raise Forbidden()
        if not item.is_popup:
            raise InvalidState("Content is not a popup thread")
        if item.popup_closed_at is None:
            item.popup_closed_at = now
            db.commit()
        return cls.status_for(db, item, now)

    @staticmethod
    def lock_parent_for_reply(
        db: Session,
        parent_id: int,
        now: datetime | None = None,
    ) -> ContentItem:
        """Lock the parent row and check that it still accepts a reply.

        On stores with row locks the lock is held until the caller commits.
        The reply limit itself is enforced again by ``insert_reply``, which
        does not depend on that lock.

        Raises:
            NotFound: If the parent is absent or expired.
            ParentClosed: If replies are disabled or the popup has closed.
        """
        now = now or utcnow()
        parent = get_live_content(db, parent_id, now, for_update=True)
        if parent.replies_disabled:
            raise ParentClosed("Replies are disabled for this content")
        if parent.is_popup:
            status = evaluate(parent, live_reply_count(db, parent.id, now), now)
            if status.closed:
                raise ParentClosed(f"Popup thread is closed ({status.reason})")
        return parent

    @staticmethod
    def insert_reply(
        db: Session,
        parent: ContentItem,
        values: dict[str, Any],
        now: datetime,
    ) -> int:
        """Insert a reply row into a popup thread while it is under its limit.

        The live reply count is checked inside the INSERT statement, so a
        reply committed by another session after ``lock_parent_for_reply``
        is still counted.

        Returns:
            The id of the new reply.

        Raises:
            ParentClosed: If the thread already holds its limit of live replies.
        """
        table = ContentItem.__table__
        replies = (
            select(func.count())
            .select_from(ContentItem)
            .where(ContentItem.parent_id == parent.id, live_clause(now))
            .correlate(None)
            .scalar_subquery()
        )
        columns = list(values)
        source = select(
            *(literal(values[name], table.c[name].type) for name in columns)
        ).where(replies < int(parent.popup_reply_limit or 0))
        reply_id = db.execute(
            insert(table).from_select(columns, source).returning(table.c.id)
        ).scalar_one_or_none()
        if reply_id is None:
            logger.info("Popup thread %s refused a reply at its limit", parent.id)
            raise ParentClosed(f"Popup thread is closed ({REASON_REPLIES})")
        return reply_id
