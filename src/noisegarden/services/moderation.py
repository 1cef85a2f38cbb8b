"""Flag ledger and quarantine gate."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from noisegarden.core.errors import InvalidState
from noisegarden.core.security import Identity, ensure_elevated
from noisegarden.core.settings import settings
from noisegarden.db.time import utcnow
from noisegarden.db.upsert import upsert
from noisegarden.models import ContentItem, Flag, User
from noisegarden.models.notification import NOTIFICATION_QUARANTINE
from noisegarden.services.expiry import ExpirySweeper, get_live_content, live_clause
from noisegarden.services.notifications import NotificationService

logger = logging.getLogger(__name__)

# Sender name shown on notifications raised by the moderation system itself.
SYSTEM_SENDER = "moderation"


@dataclass
class FlagResult:
    content_id: int
    flag_count: int
    quarantined: bool
    quarantine_triggered: bool


@dataclass
class FlagSummary:
    content_id: int
    total: int
    reasons: list[tuple[str, int]] = field(default_factory=list)


@dataclass
class FlagEntry:
    id: int
    content_id: int
    reporter_id: int
    reporter_username: str
    reason: str
    created_at: datetime


def count_flags(db: Session, content_id: int) -> int:
    return db.scalar(
        select(func.count()).select_from(Flag).where(Flag.content_id == content_id)
    ) or 0


class ModerationService:
    """Service handling community flags and quarantine transitions."""

    @staticmethod
    def _set_quarantine(db: Session, content_id: int, *, min_flags: int | None) -> bool:
        """Flip ``quarantined`` to true in one conditional statement.

        Returns True only for the request whose update actually changed the
        row, which is what makes the author notification fire once.
        """
        conditions = [ContentItem.id == content_id, ContentItem.quarantined.is_(False)]
        if min_flags is not None:
            flag_count = (
                select(func.count())
                .select_from(Flag)
                .where(Flag.content_id == content_id)
                .scalar_subquery()
            )
            conditions.append(flag_count >= min_flags)
        result = db.execute(
            update(ContentItem)
            .where(*conditions)
            .values(quarantined=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def _notify_quarantined(db: Session, item: ContentItem) -> None:
        NotificationService.notify(
            db,
            item.author_id,
            NOTIFICATION_QUARANTINE,
            SYSTEM_SENDER,
            content_id=item.id,
        )

    @classmethod
    def file_flag(
        cls,
        db: Session,
        reporter: Identity,
        content_id: int,
        reason: str,
        now: datetime | None = None,
    ) -> FlagResult:
        """File or refile a flag and quarantine the item at the threshold.

        Args:
            db: Database session
            reporter: Identity filing the report
            content_id: ID of the flagged item
            reason: Free-text reason; a refile overwrites the earlier one

        Raises:
            NotFound: If the item is absent or expired.
            InvalidState: If ``reason`` is blank.
        """
        now = now or utcnow()
        reason = reason.strip()
        if not reason:
            raise InvalidState("A reason is required")
        item = get_live_content(db, content_id, now)

        upsert(
            db,
            Flag,
            {
                "content_id": item.id,
                "reporter_id": reporter.user_id,
                "reason": reason,
                "created_at": now,
            },
            conflict_columns=["content_id", "reporter_id"],
            update_columns=["reason"],
        )
        flag_count = count_flags(db, item.id)

        triggered = cls._set_quarantine(db, item.id, min_flags=settings.flag_quarantine_threshold)
        if triggered:
            logger.info("Content %s quarantined after %d flags", item.id, flag_count)
            cls._notify_quarantined(db, item)
        db.commit()

        db.refresh(item)
        return FlagResult(
            content_id=item.id,
            flag_count=flag_count,
            quarantined=item.quarantined,
            quarantine_triggered=triggered,
        )

    @staticmethod
    def flag_summary(db: Session, content_id: int, now: datetime | None = None) -> FlagSummary:
        """Return the flag total for an item and how often each reason was given."""
        get_live_content(db, content_id, now)
        rows = db.execute(
            select(Flag.reason, func.count())
            .where(Flag.content_id == content_id)
            .group_by(Flag.reason)
            .order_by(func.count().desc(), Flag.reason)
        ).all()
        reasons = [(reason, count) for reason, count in rows]
        return FlagSummary(
            content_id=content_id,
            total=sum(count for _, count in reasons),
            reasons=reasons,
        )

    @staticmethod
    def list_flags(
        db: Session,
        actor: Identity,
        content_id: int,
        now: datetime | None = None,
    ) -> list[FlagEntry]:
        ensure_elevated(actor)
        get_live_content(db, content_id, now)
        rows = db.execute(
            select(Flag, User.username)
            .join(User, User.id == Flag.reporter_id)
            .where(Flag.content_id == content_id)
            .order_by(Flag.created_at, Flag.id)
        ).all()
        return [
            FlagEntry(
                id=flag.id,
                content_id=flag.content_id,
                reporter_id=flag.reporter_id,
                reporter_username=username,
                reason=flag.reason,
                created_at=flag.created_at,
            )
            for flag, username in rows
        ]

    @staticmethod
    def list_flagged_content(
        db: Session,
        actor: Identity,
        limit: int = 50,
        now: datetime | None = None,
    ) -> list[tuple[ContentItem, int]]:
        """Return live flagged items, newest first, with their flag counts."""
        ensure_elevated(actor)
        now = now or utcnow()
        ExpirySweeper.sweep_on_read(db, now)
        flag_count = func.count(Flag.id).label("flag_count")
        rows = db.execute(
            select(ContentItem, flag_count)
            .join(Flag, Flag.content_id == ContentItem.id)
            .where(live_clause(now))
            .group_by(ContentItem.id)
            .order_by(ContentItem.created_at.desc(), ContentItem.id.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        ).all()
        return [(item, count) for item, count in rows]

    @classmethod
    def quarantine(
        cls,
        db: Session,
        actor: Identity,
        content_id: int,
        now: datetime | None = None,
    ) -> ContentItem:
        """Quarantine an item by hand; the author is told only on the transition."""
        ensure_elevated(actor)
        item = get_live_content(db, content_id, now)
        if cls._set_quarantine(db, item.id, min_flags=None):
            logger.info("Content %s quarantined by user %s", item.id, actor.user_id)
            cls._notify_quarantined(db, item)
        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def unquarantine(
        db: Session,
        actor: Identity,
        content_id: int,
        now: datetime | None = None,
    ) -> ContentItem:
        """Lift quarantine; existing flags stay in the ledger."""
        ensure_elevated(actor)
        item = get_live_content(db, content_id, now)
        if item.quarantined:
            item.quarantined = False
            db.commit()
            logger.info("Content %s released from quarantine by user %s", item.id, actor.user_id)
        return item
