"""Liveness rules and garbage collection for expiring content.

An item is live while ``expires_at`` is unset or still in the future. Every
read path filters with :func:`live_clause`; physical deletion is either done
eagerly before listings (``on_read``) or by :class:`ExpirySweepWorker`
(``background``). Deleting a row cascades to its replies, poll, flags,
mentions and notifications through the database foreign keys.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from sqlalchemy import ColumnElement, delete, or_, select
from sqlalchemy.orm import Session, sessionmaker

from noisegarden.core.errors import NotFound
from noisegarden.core.settings import settings
from noisegarden.db.time import as_utc, utcnow
from noisegarden.models import ContentItem

logger = logging.getLogger(__name__)


def live_clause(now: datetime) -> ColumnElement[bool]:
    """Return the SQL predicate selecting items still alive at ``now``."""
    return or_(ContentItem.expires_at.is_(None), ContentItem.expires_at > now)


class ExpirySweeper:
    """Decides liveness and removes dead items."""

    @staticmethod
    def is_live(item: ContentItem, now: datetime | None = None) -> bool:
        """Return True if ``item`` has not reached its expiry timestamp."""
        if item.expires_at is None:
            return True
        now = now or utcnow()
        return as_utc(item.expires_at) > as_utc(now)

    @staticmethod
    def sweep(db: Session, now: datetime | None = None) -> int:
        """Delete every item whose expiry has passed and return how many matched.

        Rows removed by cascade are not counted. The caller owns the
        transaction; nothing is committed here.
        """
        now = now or utcnow()
        result = db.execute(
            delete(ContentItem)
            .where(ContentItem.expires_at.is_not(None), ContentItem.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        deleted = result.rowcount or 0
        if deleted:
            logger.info("Expiry sweep removed %d content items", deleted)
        return deleted

    @classmethod
    def sweep_on_read(cls, db: Session, now: datetime | None = None) -> None:
        """Run the eager sweep when the engine is configured for lazy GC on read."""
        if settings.expiry_sweep_mode != "on_read":
            return
        cls.sweep(db, now)
        db.commit()


class ExpirySweepWorker:
    """Periodically deletes expired content in the background."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        interval_seconds: float | None = None,
    ) -> None:
        if session_factory is None:
            from noisegarden.db.session import SessionLocal

            session_factory = SessionLocal
        self._session_factory = session_factory
        self._interval = max(
            0.1,
            float(interval_seconds or settings.expiry_sweep_interval_seconds),
        )
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    def sweep_once(self) -> int:
        """Run a single sweep in a fresh session and commit it."""
        db = self._session_factory()
        try:
            deleted = ExpirySweeper.sweep(db)
            db.commit()
            return deleted
        finally:
            db.close()

    async def _run(self) -> None:
        # Sweeps once on start, then every interval until stopped.
        while True:
            try:
                await asyncio.to_thread(self.sweep_once)
            except Exception:  # noqa: BLE001 - keep the loop alive
                logger.exception("Expiry sweep failed")
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._interval)
                return
            except TimeoutError:
                continue


def get_live_content(
    db: Session,
    content_id: int,
    now: datetime | None = None,
    *,
    for_update: bool = False,
) -> ContentItem:
    """Fetch a live item or raise ``NotFound``; expired and absent look the same."""
    stmt = (
        select(ContentItem)
        .where(ContentItem.id == content_id, live_clause(now or utcnow()))
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()
    item = db.scalars(stmt).first()
    if item is None:
        raise NotFound("Content not found")
    return item
