"""SQLAlchemy model for identities known to the engine."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from noisegarden.db.session import Base
from noisegarden.db.time import utcnow

ROLE_USER = "user"
ROLE_MODERATOR = "moderator"
ROLE_ADMIN = "admin"
ROLE_COMMUNITY_MANAGER = "community_manager"

ROLES = (ROLE_USER, ROLE_MODERATOR, ROLE_ADMIN, ROLE_COMMUNITY_MANAGER)
ELEVATED_ROLES = frozenset({ROLE_MODERATOR, ROLE_ADMIN})


class User(Base):
    """Identity issued by the authentication collaborator.

    Credentials live with that collaborator; the engine keeps only the
    username (for mention resolution) and the role (for authorization).
    """

    __tablename__ = "app_user"
    __table_args__ = (
        CheckConstraint(
            "role IN ('user', 'moderator', 'admin', 'community_manager')",
            name="ck_app_user_role",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    role: Mapped[str] = mapped_column(Text, nullable=False, default=ROLE_USER)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    @property
    def is_elevated(self) -> bool:
        """Return True for roles allowed to moderate."""
        return self.role in ELEVATED_ROLES
