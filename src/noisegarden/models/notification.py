"""Model for the per-user notification ledger."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from noisegarden.db.session import Base
from noisegarden.db.time import utcnow

NOTIFICATION_QUARANTINE = "quarantine"
NOTIFICATION_REPLY = "reply"
NOTIFICATION_REPOST = "repost"
NOTIFICATION_MENTION = "mention"


class Notification(Base):
    """Something that happened to a user's content or identity."""

    __tablename__ = "notification"
    __table_args__ = (Index("ix_notification_user_read", "user_id", "read"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("app_user.id", ondelete="CASCADE"),
        nullable=False,
    )
    kind: Mapped[str] = mapped_column(Text, nullable=False)
    content_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("content_item.id", ondelete="CASCADE"),
        nullable=True,
    )
    from_user_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("app_user.id", ondelete="SET NULL"),
        nullable=True,
    )
    from_username: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
