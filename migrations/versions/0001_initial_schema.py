"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Create users, content, moderation, mention, poll and notification tables."""
    op.create_table(
        "app_user",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.Text(), nullable=False),
        sa.Column("role", sa.Text(), nullable=False),
        _timestamp("created_at"),
        sa.CheckConstraint(
            "role IN ('user', 'moderator', 'admin', 'community_manager')",
            name="ck_app_user_role",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )

    op.create_table(
        "content_item",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("author_id", sa.BigInteger(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        _timestamp("created_at"),
        _timestamp("expires_at", nullable=True),
        sa.Column("parent_id", sa.BigInteger(), nullable=True),
        sa.Column("repost_of", sa.BigInteger(), nullable=True),
        sa.Column("popup_reply_limit", sa.Integer(), nullable=True),
        sa.Column("popup_time_limit_minutes", sa.Integer(), nullable=True),
        _timestamp("popup_started_at", nullable=True),
        _timestamp("popup_closed_at", nullable=True),
        sa.Column("quarantined", sa.Boolean(), nullable=False),
        sa.Column("replies_disabled", sa.Boolean(), nullable=False),
        sa.Column("pinned", sa.Boolean(), nullable=False),
        sa.CheckConstraint(
            "expires_at IS NULL OR expires_at > created_at",
            name="ck_content_item_expiry_after_creation",
        ),
        sa.CheckConstraint(
            "parent_id IS NULL OR popup_reply_limit IS NULL",
            name="ck_content_item_popup_root_only",
        ),
        sa.CheckConstraint(
            "popup_reply_limit IS NULL OR popup_reply_limit >= 1",
            name="ck_content_item_popup_reply_limit",
        ),
        sa.CheckConstraint(
            "popup_time_limit_minutes IS NULL OR popup_time_limit_minutes >= 1",
            name="ck_content_item_popup_time_limit",
        ),
        sa.ForeignKeyConstraint(["author_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_id"], ["content_item.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["repost_of"], ["content_item.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_content_item_parent_id", "content_item", ["parent_id"])
    op.create_index("ix_content_item_expires_at", "content_item", ["expires_at"])

    op.create_table(
        "flag",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("content_id", sa.BigInteger(), nullable=False),
        sa.Column("reporter_id", sa.BigInteger(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["content_id"], ["content_item.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["reporter_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("content_id", "reporter_id", name="uq_flag_content_reporter"),
    )

    for table, actor_column, stamp in (
        ("mute_record", "muted_by", "muted_at"),
        ("ban_record", "banned_by", "banned_at"),
    ):
        columns = [
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("user_id", sa.BigInteger(), nullable=False),
            sa.Column(actor_column, sa.BigInteger(), nullable=True),
            sa.Column("reason", sa.Text(), nullable=False),
            _timestamp(stamp),
        ]
        if table == "mute_record":
            columns.append(_timestamp("expires_at"))
        op.create_table(
            table,
            *columns,
            sa.ForeignKeyConstraint(["user_id"], ["app_user.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint([actor_column], ["app_user.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("user_id"),
        )

    op.create_table(
        "mention",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("content_id", sa.BigInteger(), nullable=False),
        sa.Column("mentioned_id", sa.BigInteger(), nullable=False),
        sa.Column("requester_id", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        _timestamp("created_at"),
        _timestamp("responded_at", nullable=True),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'declined')",
            name="ck_mention_status",
        ),
        sa.UniqueConstraint("content_id", "mentioned_id", name="uq_mention_content_mentioned"),
        sa.ForeignKeyConstraint(["content_id"], ["content_item.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["mentioned_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["requester_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_mention_mentioned_status", "mention", ["mentioned_id", "status"])

    op.create_table(
        "poll",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("content_id", sa.BigInteger(), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["content_id"], ["content_item.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("content_id"),
    )
    op.create_table(
        "poll_option",
        sa.Column("poll_id", sa.BigInteger(), nullable=False),
        sa.Column("option_index", sa.SmallInteger(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.CheckConstraint("option_index >= 0", name="ck_poll_option_index"),
        sa.ForeignKeyConstraint(["poll_id"], ["poll.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("poll_id", "option_index"),
    )
    op.create_table(
        "poll_vote",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("poll_id", sa.BigInteger(), nullable=False),
        sa.Column("voter_id", sa.BigInteger(), nullable=False),
        sa.Column("option_index", sa.SmallInteger(), nullable=False),
        _timestamp("voted_at"),
        sa.ForeignKeyConstraint(["poll_id"], ["poll.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["voter_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("poll_id", "voter_id", name="uq_poll_vote_poll_voter"),
    )
    op.create_index("ix_poll_vote_poll_id", "poll_vote", ["poll_id"])

    op.create_table(
        "notification",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("kind", sa.Text(), nullable=False),
        sa.Column("content_id", sa.BigInteger(), nullable=True),
        sa.Column("from_user_id", sa.BigInteger(), nullable=True),
        sa.Column("from_username", sa.Text(), nullable=False),
        _timestamp("created_at"),
        sa.Column("read", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["content_id"], ["content_item.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["from_user_id"], ["app_user.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notification_user_read", "notification", ["user_id", "read"])


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_index("ix_notification_user_read", table_name="notification")
    op.drop_table("notification")
    op.drop_index("ix_poll_vote_poll_id", table_name="poll_vote")
    op.drop_table("poll_vote")
    op.drop_table("poll_option")
    op.drop_table("poll")
    op.drop_index("ix_mention_mentioned_status", table_name="mention")
    op.drop_table("mention")
    op.drop_table("ban_record")
    op.drop_table("mute_record")
    op.drop_table("flag")
    op.drop_index("ix_content_item_expires_at", table_name="content_item")
    op.drop_index("ix_content_item_parent_id", table_name="content_item")
    op.drop_table("content_item")
    op.drop_table("app_user")
