"""Models capturing polls attached to root content items."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from noisegarden.db.session import Base
from noisegarden.db.time import utcnow


class Poll(Base):
    """A question with 2-5 options, one per root content item."""

    __tablename__ = "poll"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("content_item.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    options: Mapped[list[PollOption]] = relationship(
        "PollOption",
        order_by="PollOption.option_index",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )


class PollOption(Base):
    """Option text addressed by a stable zero-based index."""

    __tablename__ = "poll_option"
    __table_args__ = (
        CheckConstraint("option_index >= 0", name="ck_poll_option_index"),
    )

    poll_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("poll.id", ondelete="CASCADE"),
        primary_key=True,
    )
    option_index: Mapped[int] = mapped_column(SmallInteger, primary_key=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)


class PollVote(Base):
    """Current choice of one voter; revoting overwrites the row."""

    __tablename__ = "poll_vote"
    __table_args__ = (
        UniqueConstraint("poll_id", "voter_id", name="uq_poll_vote_poll_voter"),
        Index("ix_poll_vote_poll_id", "poll_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    poll_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("poll.id", ondelete="CASCADE"),
        nullable=False,
    )
    voter_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("app_user.id", ondelete="CASCADE"),
        nullable=False,
    )
    option_index: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    voted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
