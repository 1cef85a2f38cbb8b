"""Model for the mention consent workflow."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from noisegarden.db.session import Base
from noisegarden.db.time import utcnow

MENTION_PENDING = "pending"
MENTION_ACCEPTED = "accepted"
MENTION_DECLINED = "declined"


class Mention(Base):
    """Request to render an ``@username`` in a content item as a link.

    Status only moves pending -> accepted or pending -> declined.
    """

    __tablename__ = "mention"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'accepted', 'declined')",
            name="ck_mention_status",
        ),
        UniqueConstraint("content_id", "mentioned_id", name="uq_mention_content_mentioned"),
        Index("ix_mention_mentioned_status", "mentioned_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("content_item.id", ondelete="CASCADE"),
        nullable=False,
    )
    mentioned_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("app_user.id", ondelete="CASCADE"),
        nullable=False,
    )
    requester_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("app_user.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(Text, nullable=False, default=MENTION_PENDING)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
