"""Mention consent workflow.

Content text is never rewritten. Whether ``@name`` renders as a link is
decided at read time from the mention's status.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from noisegarden.core.errors import Forbidden, InvalidState, NotFound
from noisegarden.core.security import Identity
from noisegarden.db.time import utcnow
from noisegarden.models import ContentItem, Mention, User
from noisegarden.models.mention import MENTION_ACCEPTED, MENTION_DECLINED, MENTION_PENDING
from noisegarden.models.notification import NOTIFICATION_MENTION
from noisegarden.services.expiry import get_live_content, live_clause
from noisegarden.services.notifications import NotificationService

logger = logging.getLogger(__name__)

MENTION_PATTERN = re.compile(r"(?<![A-Za-z0-9_-])@([A-Za-z0-9_-]{3,20})(?![A-Za-z0-9_-])")
RESPONSE_STATUSES = (MENTION_ACCEPTED, MENTION_DECLINED)


def extract_usernames(body: str) -> list[str]:
    """Return distinct mentioned usernames in order of first appearance."""
    seen: dict[str, None] = {}
    for match in MENTION_PATTERN.finditer(body):
        seen.setdefault(match.group(1), None)
    return list(seen)


def render_mentions(body: str, accepted_usernames: Iterable[str]) -> str:
    """Turn accepted mentions into markdown links; leave the rest as text."""
    accepted = set(accepted_usernames)
    if not accepted:
        return body

    def _link(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in accepted:
            return match.group(0)
        return f"[@{name}](/users/{name})"

    return MENTION_PATTERN.sub(_link, body)


class MentionService:
    """Creates mentions and records the mentioned user's answer."""

    @staticmethod
    def _find(db: Session, content_id: int, mentioned_id: int) -> Mention | None:
        return db.scalars(
            select(Mention).where(
                Mention.content_id == content_id,
                Mention.mentioned_id == mentioned_id,
            )
        ).first()

    @staticmethod
    def create(
        db: Session,
        content_id: int,
        mentioned_username: str,
        requester: Identity,
    ) -> Mention:
        """Create a pending mention in the caller's transaction.

        Raises:
            NotFound: If no user carries ``mentioned_username``.
        """
        mentioned = db.scalars(select(User).where(User.username == mentioned_username)).first()
        if mentioned is None:
            raise NotFound("Mentioned user not found")

        existing = MentionService._find(db, content_id, mentioned.id)
        if existing is not None:
            return existing

        mention = Mention(
            content_id=content_id,
            mentioned_id=mentioned.id,
            requester_id=requester.user_id,
            status=MENTION_PENDING,
        )
        try:
            with db.begin_nested():
                db.add(mention)
        except IntegrityError:
            # A concurrent request stored the same mention first.
            return MentionService._find(db, content_id, mentioned.id)
        NotificationService.notify(
            db,
            mentioned.id,
            NOTIFICATION_MENTION,
            requester.username,
            content_id=content_id,
            from_user_id=requester.user_id,
        )
        return mention

    @classmethod
    def request(
        cls,
        db: Session,
        requester: Identity,
        content_id: int,
        mentioned_username: str,
        now: datetime | None = None,
    ) -> Mention:
        """Ask ``mentioned_username`` to consent to a mention in the caller's own item."""
        item = get_live_content(db, content_id, now)
        if item.author_id != requester.user_id:
            raise Forbidden()
        mention = cls.create(db, content_id, mentioned_username, requester)
        db.commit()
        return mention

    @classmethod
    def create_for_body(
        cls,
        db: Session,
        item: ContentItem,
        author: Identity,
    ) -> list[Mention]:
        """Create mentions for every known user named in ``item.body``.

        Unknown names and self-mentions stay plain text.
        """
        mentions = []
        for username in extract_usernames(item.body):
            if username == author.username:
                continue
            try:
                mentions.append(cls.create(db, item.id, username, author))
            except NotFound:
                continue
        return mentions

    @staticmethod
    def respond(
        db: Session,
        actor: Identity,
        mention_id: int,
        status: str,
        now: datetime | None = None,
    ) -> Mention:
        """Accept or decline a pending mention.

        Raises:
            NotFound: If the mention is absent or its content has expired.
            Forbidden: If ``actor`` is not the mentioned user.
            InvalidState: If ``status`` is not a response or the mention was already answered.
        """
        if status not in RESPONSE_STATUSES:
            raise InvalidState("Status must be 'accepted' or 'declined'")
        now = now or utcnow()
        mention = db.scalars(
            select(Mention)
            .join(ContentItem, ContentItem.id == Mention.content_id)
            .where(Mention.id == mention_id, live_clause(now))
        ).first()
        if mention is None:
            raise NotFound("Mention not found")
        if mention.mentioned_id != actor.user_id:
            raise Forbidden()
        if mention.status != MENTION_PENDING:
            raise InvalidState(f"Mention already {mention.status}")

        mention.status = status
        mention.responded_at = now
        db.commit()
        logger.info("Mention %s %s by user %s", mention_id, status, actor.user_id)
        return mention

    @staticmethod
    def list_pending(db: Session, user_id: int, now: datetime | None = None) -> list[Mention]:
        return list(
            db.scalars(
                select(Mention)
                .join(ContentItem, ContentItem.id == Mention.content_id)
                .where(
                    Mention.mentioned_id == user_id,
                    Mention.status == MENTION_PENDING,
                    live_clause(now or utcnow()),
                )
                .order_by(Mention.created_at.desc(), Mention.id.desc())
            )
        )

    @staticmethod
    def accepted_usernames(db: Session, content_ids: Iterable[int]) -> dict[int, set[str]]:
        """Map each content id to the usernames whose mention there was accepted."""
        ids = list(content_ids)
        result: dict[int, set[str]] = {content_id: set() for content_id in ids}
        if not ids:
            return result
        rows = db.execute(
            select(Mention.content_id, User.username)
            .join(User, User.id == Mention.mentioned_id)
            .where(Mention.content_id.in_(ids), Mention.status == MENTION_ACCEPTED)
        ).all()
        for content_id, username in rows:
            result[content_id].add(username)
        return result
