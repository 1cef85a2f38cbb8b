"""SQLAlchemy model for ephemeral content items."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from noisegarden.db.session import Base
from noisegarden.db.time import utcnow


class ContentItem(Base):
    """A unit of user content with a bounded lifetime.

    Replies form a tree through ``parent_id`` and are owned by their parent:
    deleting the parent, by hand or by expiry, removes the whole subtree.
    ``repost_of`` is only a weak back-reference.
    """

    __tablename__ = "content_item"
    __table_args__ = (
        CheckConstraint(
            "expires_at IS NULL OR expires_at > created_at",
            name="ck_content_item_expiry_after_creation",
        ),
        # Popup threads are root-only.
        CheckConstraint(
            "parent_id IS NULL OR popup_reply_limit IS NULL",
            name="ck_content_item_popup_root_only",
        ),
        CheckConstraint(
            "popup_reply_limit IS NULL OR popup_reply_limit >= 1",
            name="ck_content_item_popup_reply_limit",
        ),
        CheckConstraint(
            "popup_time_limit_minutes IS NULL OR popup_time_limit_minutes >= 1",
            name="ck_content_item_popup_time_limit",
        ),
        Index("ix_content_item_parent_id", "parent_id"),
        Index("ix_content_item_expires_at", "expires_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("app_user.id", ondelete="CASCADE"),
        nullable=False,
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    # Null means the item never expires; the service always sets a default.
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    parent_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("content_item.id", ondelete="CASCADE"),
        nullable=True,
    )
    repost_of: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("content_item.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Popup thread configuration; both limits are set together or not at all.
    popup_reply_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    popup_time_limit_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    popup_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    popup_closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    quarantined: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    replies_disabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    pinned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    @property
    def is_popup(self) -> bool:
        """Return True when the item carries a popup-thread configuration."""
        return self.popup_reply_limit is not None and self.popup_time_limit_minutes is not None
