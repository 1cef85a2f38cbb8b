"""Poll vote ledger."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from noisegarden.core.errors import InvalidState, NotFound
from noisegarden.core.security import Identity
from noisegarden.core.settings import settings
from noisegarden.db.time import utcnow
from noisegarden.db.upsert import upsert
from noisegarden.models import ContentItem, Poll, PollOption, PollVote
from noisegarden.services.expiry import live_clause


@dataclass
class PollOptionView:
    index: int
    text: str
    votes: int


@dataclass
class PollView:
    """Poll with vote totals aggregated from the ledger at read time."""

    id: int
    content_id: int
    question: str
    options: list[PollOptionView] = field(default_factory=list)
    total_votes: int = 0
    viewer_vote_index: int | None = None


class PollService:
    """Creates polls, records votes and aggregates them."""

    @staticmethod
    def validate_draft(question: str, options: Sequence[str]) -> tuple[str, list[str]]:
        """Return the trimmed question and options.

        Raises:
            InvalidState: If the question is blank or the option count is out of bounds.
        """
        question = question.strip()
        texts = [text.strip() for text in options]
        if not question:
            raise InvalidState("Poll question must not be empty")
        if not settings.poll_min_options <= len(texts) <= settings.poll_max_options:
            raise InvalidState(
                f"Polls need between {settings.poll_min_options} "
                f"and {settings.poll_max_options} options"
            )
        if any(not text for text in texts):
            raise InvalidState("Poll options must not be empty")
        return question, texts

    @classmethod
    def create(cls, db: Session, content_id: int, question: str, options: Sequence[str]) -> Poll:
        """Attach a poll to ``content_id`` inside the caller's transaction."""
        question, texts = cls.validate_draft(question, options)
        poll = Poll(content_id=content_id, question=question)
        poll.options = [
            PollOption(option_index=index, text=text) for index, text in enumerate(texts)
        ]
        db.add(poll)
        db.flush()
        return poll

    @staticmethod
    def _live_poll(db: Session, poll_id: int, now: datetime) -> Poll:
        poll = db.scalars(
            select(Poll)
            .join(ContentItem, ContentItem.id == Poll.content_id)
            .where(Poll.id == poll_id, live_clause(now))
        ).first()
        if poll is None:
            raise NotFound("Poll not found")
        return poll

    @staticmethod
    def poll_ids_for(db: Session, content_ids: Sequence[int]) -> dict[int, int]:
        """Map content ids to the id of the poll attached to them."""
        if not content_ids:
            return {}
        rows = db.execute(
            select(Poll.content_id, Poll.id).where(Poll.content_id.in_(content_ids))
        ).all()
        return {content_id: poll_id for content_id, poll_id in rows}

    @staticmethod
    def build_view(db: Session, poll: Poll, viewer_id: int | None = None) -> PollView:
        counts = dict(
            db.execute(
                select(PollVote.option_index, func.count())
                .where(PollVote.poll_id == poll.id)
                .group_by(PollVote.option_index)
            ).all()
        )
        viewer_vote = None
        if viewer_id is not None:
            viewer_vote = db.scalar(
                select(PollVote.option_index)
                .where(PollVote.poll_id == poll.id, PollVote.voter_id == viewer_id)
            )
        options = [
            PollOptionView(
                index=option.option_index,
                text=option.text,
                votes=counts.get(option.option_index, 0),
            )
            for option in poll.options
        ]
        return PollView(
            id=poll.id,
            content_id=poll.content_id,
            question=poll.question,
            options=options,
            total_votes=sum(option.votes for option in options),
            viewer_vote_index=viewer_vote,
        )

    @classmethod
    def get_view(
        cls,
        db: Session,
        poll_id: int,
        viewer_id: int | None = None,
        now: datetime | None = None,
    ) -> PollView:
        poll = cls._live_poll(db, poll_id, now or utcnow())
        return cls.build_view(db, poll, viewer_id)

    @classmethod
    def vote(
        cls,
        db: Session,
        voter: Identity,
        poll_id: int,
        option_index: int,
        now: datetime | None = None,
    ) -> PollView:
        """Record ``voter``'s choice, replacing any earlier one.

        Raises:
            NotFound: If the poll is absent or its content has expired.
            InvalidState: If ``option_index`` is not an option of the poll.
        """
        now = now or utcnow()
        poll = cls._live_poll(db, poll_id, now)
        if option_index not in {option.option_index for option in poll.options}:
            raise InvalidState("Option index out of range")

        upsert(
            db,
            PollVote,
            {
                "poll_id": poll.id,
                "voter_id": voter.user_id,
                "option_index": option_index,
                "voted_at": now,
            },
            conflict_columns=["poll_id", "voter_id"],
            update_columns=["option_index", "voted_at"],
        )
        db.commit()
        return cls.build_view(db, poll, voter.user_id)
