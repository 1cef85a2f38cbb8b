"""Mute and ban enforcement."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, aliased

from noisegarden.core.errors import Banned, Muted, NotFound
from noisegarden.core.security import Identity, create_access_token, ensure_elevated
from noisegarden.core.settings import settings
from noisegarden.db.time import as_utc, utcnow
from noisegarden.db.upsert import upsert
from noisegarden.models import BanRecord, MuteRecord, User

logger = logging.getLogger(__name__)


@dataclass
class MuteStatus:
    muted: bool
    reason: str | None = None
    expires_at: datetime | None = None
    muted_by: str | None = None


@dataclass
class BanStatus:
    banned: bool
    reason: str | None = None
    banned_at: datetime | None = None
    banned_by: str | None = None


@dataclass
class RestrictedUser:
    """A restricted user as shown in moderator listings."""

    user_id: int
    username: str
    reason: str
    actor: str | None
    since: datetime
    expires_at: datetime | None = None


def _require_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


class RestrictionService:
    """Reads and writes MuteRecord/BanRecord rows."""

    @staticmethod
    def get_mute_status(db: Session, user_id: int, now: datetime | None = None) -> MuteStatus:
        """Return the active mute for ``user_id``.

        A record whose expiry has passed reads as no mute at all; it stays in
        the table until the next mute overwrites it or an unmute deletes it.
        """
        now = now or utcnow()
        actor = aliased(User)
        row = db.execute(
            select(MuteRecord, actor.username)
            .outerjoin(actor, actor.id == MuteRecord.muted_by)
            .where(MuteRecord.user_id == user_id)
            .execution_options(populate_existing=True)
        ).first()
        if row is None:
            return MuteStatus(muted=False)
        record, muted_by = row
        if as_utc(record.expires_at) <= as_utc(now):
            return MuteStatus(muted=False)
        return MuteStatus(
            muted=True,
            reason=record.reason,
            expires_at=as_utc(record.expires_at),
            muted_by=muted_by,
        )

    @staticmethod
    def get_ban_status(db: Session, user_id: int) -> BanStatus:
        actor = aliased(User)
        row = db.execute(
            select(BanRecord, actor.username)
            .outerjoin(actor, actor.id == BanRecord.banned_by)
            .where(BanRecord.user_id == user_id)
            .execution_options(populate_existing=True)
        ).first()
        if row is None:
            return BanStatus(banned=False)
        record, banned_by = row
        return BanStatus(
            banned=True,
            reason=record.reason,
            banned_at=as_utc(record.banned_at),
            banned_by=banned_by,
        )

    @classmethod
    def assert_not_banned(cls, db: Session, user_id: int) -> None:
        status = cls.get_ban_status(db, user_id)
        if status.banned:
            raise Banned(status.reason or "", status.banned_at, status.banned_by)

    @classmethod
    def assert_can_post(cls, db: Session, user_id: int, now: datetime | None = None) -> None:
        """Reject content creation for banned or currently muted users.

        Raises:
            Banned: If the user holds a ban.
            Muted: If the user holds an unexpired mute.
        """
        cls.assert_not_banned(db, user_id)
        status = cls.get_mute_status(db, user_id, now)
        if status.muted and status.expires_at is not None:
            raise Muted(status.reason or "", status.expires_at, status.muted_by)

    @classmethod
    def mute(
        cls,
        db: Session,
        actor: Identity,
        user_id: int,
        reason: str,
        duration_minutes: int | None = None,
        now: datetime | None = None,
    ) -> MuteStatus:
        """Mute ``user_id``, overwriting any earlier mute."""
        ensure_elevated(actor)
        _require_user(db, user_id)
        now = now or utcnow()
        minutes = duration_minutes or settings.default_mute_minutes
        upsert(
            db,
            MuteRecord,
            {
                "user_id": user_id,
                "muted_by": actor.user_id,
                "reason": reason,
                "muted_at": now,
                "expires_at": now + timedelta(minutes=minutes),
            },
            conflict_columns=["user_id"],
            update_columns=["muted_by", "reason", "muted_at", "expires_at"],
        )
        db.commit()
        logger.info("User %s muted user %s for %d minutes", actor.user_id, user_id, minutes)
        return cls.get_mute_status(db, user_id, now)

    @staticmethod
    def unmute(db: Session, actor: Identity, user_id: int) -> None:
        ensure_elevated(actor)
        _require_user(db, user_id)
        db.execute(delete(MuteRecord).where(MuteRecord.user_id == user_id))
        db.commit()
        logger.info("User %s unmuted user %s", actor.user_id, user_id)

    @classmethod
    def ban(
        cls,
        db: Session,
        actor: Identity,
        user_id: int,
        reason: str,
        now: datetime | None = None,
    ) -> BanStatus:
        """Ban ``user_id`` until explicitly unbanned."""
        ensure_elevated(actor)
        _require_user(db, user_id)
        upsert(
            db,
            BanRecord,
            {
                "user_id": user_id,
                "banned_by": actor.user_id,
                "reason": reason,
                "banned_at": now or utcnow(),
            },
            conflict_columns=["user_id"],
            update_columns=["banned_by", "reason", "banned_at"],
        )
        db.commit()
        logger.info("User %s banned user %s", actor.user_id, user_id)
        return cls.get_ban_status(db, user_id)

    @staticmethod
    def unban(db: Session, actor: Identity, user_id: int) -> None:
        ensure_elevated(actor)
        _require_user(db, user_id)
        db.execute(delete(BanRecord).where(BanRecord.user_id == user_id))
        db.commit()
        logger.info("User %s unbanned user %s", actor.user_id, user_id)

    @staticmethod
    def list_muted(
        db: Session,
        actor: Identity,
        now: datetime | None = None,
    ) -> list[RestrictedUser]:
        """List users with an unexpired mute, soonest expiry first."""
        ensure_elevated(actor)
        now = now or utcnow()
        target = aliased(User)
        imposer = aliased(User)
        rows = db.execute(
            select(MuteRecord, target.username, imposer.username)
            .join(target, target.id == MuteRecord.user_id)
            .outerjoin(imposer, imposer.id == MuteRecord.muted_by)
            .where(MuteRecord.expires_at > now)
            .order_by(MuteRecord.expires_at)
        ).all()
        return [
            RestrictedUser(
                user_id=record.user_id,
                username=username,
                reason=record.reason,
                actor=actor_name,
                since=as_utc(record.muted_at),
                expires_at=as_utc(record.expires_at),
            )
            for record, username, actor_name in rows
        ]

    @staticmethod
    def list_banned(db: Session, actor: Identity) -> list[RestrictedUser]:
        ensure_elevated(actor)
        target = aliased(User)
        imposer = aliased(User)
        rows = db.execute(
            select(BanRecord, target.username, imposer.username)
            .join(target, target.id == BanRecord.user_id)
            .outerjoin(imposer, imposer.id == BanRecord.banned_by)
            .order_by(BanRecord.banned_at.desc())
        ).all()
        return [
            RestrictedUser(
                user_id=record.user_id,
                username=username,
                reason=record.reason,
                actor=actor_name,
                since=as_utc(record.banned_at),
            )
            for record, username, actor_name in rows
        ]

    @classmethod
    def issue_access_token(cls, db: Session, user: User) -> str:
        """Mint a bearer token for ``user`` unless they are banned.

        Raises:
            Banned: If a ban record exists for the user.
        """
        cls.assert_not_banned(db, user.id)
        return create_access_token(user.id, user.username, user.role)
