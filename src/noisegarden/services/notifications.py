"""Notification ledger and best-effort push delivery."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from sqlalchemy import event, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction

from noisegarden.core.errors import NotFound
from noisegarden.core.settings import settings
from noisegarden.models import Notification

logger = logging.getLogger(__name__)

PENDING_PUSH_KEY = "noisegarden.pending_push"


class PushClient:
    """Forwards committed notifications to an external push gateway.

    Delivery never raises: a down gateway must not undo the state change
    that produced the notification.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url if base_url is not None else settings.push_gateway_url
        self._timeout = timeout_seconds or settings.push_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[bool]] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=str(self.base_url).rstrip("/"),
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        )

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = self._build_client()
        return self._client

    @staticmethod
    async def _post(client: httpx.AsyncClient, payload: dict[str, Any]) -> bool:
        try:
            response = await client.post("/notifications", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Push delivery for notification %s failed: %s", payload["id"], exc)
            return False
        return True

    async def deliver(self, payload: dict[str, Any]) -> bool:
        """POST ``payload`` to the gateway and report whether it was accepted."""
        if not self.enabled:
            return False
        return await self._post(await self._ensure_client(), payload)

    async def _deliver_detached(self, payload: dict[str, Any]) -> bool:
        async with self._build_client() as client:
            return await self._post(client, payload)

    def submit(self, payload: dict[str, Any]) -> bool:
        """Hand ``payload`` over for delivery without blocking an event loop.

        Inside a running loop delivery becomes a task on the shared client.
        Outside one (scripts, sync callers) it runs to completion on a
        short-lived client. Returns False when no gateway is configured.
        """
        if not self.enabled:
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self._deliver_detached(payload))
        task = loop.create_task(self.deliver(payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def drain(self) -> None:
        """Wait for every delivery task scheduled so far."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def close(self) -> None:
        """Finish pending deliveries and release the shared HTTP client."""
        await self.drain()
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


_push_client: PushClient | None = None


def get_push_client() -> PushClient:
    """Return the process-wide push client."""
    global _push_client
    if _push_client is None:
        _push_client = PushClient()
    return _push_client


def set_push_client(client: PushClient | None) -> None:
    """Replace the process-wide push client (``None`` resets it)."""
    global _push_client
    _push_client = client


def _push_payload(notification: Notification) -> dict[str, Any]:
    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "kind": notification.kind,
        "content_id": notification.content_id,
        "from_username": notification.from_username,
    }


@event.listens_for(Session, "after_commit")
def _push_after_commit(session: Session) -> None:
    pending = session.info.pop(PENDING_PUSH_KEY, None)
    if not pending:
        return
    client = get_push_client()
    for payload in pending:
        client.submit(payload)


@event.listens_for(Session, "after_soft_rollback")
def _drop_pushes_on_rollback(session: Session, previous_transaction: SessionTransaction) -> None:
    # Savepoint rollbacks keep whatever earlier notifications were queued.
    if not previous_transaction.nested:
        session.info.pop(PENDING_PUSH_KEY, None)


class NotificationService:
    """Stores notifications for later listing."""

    @staticmethod
    def notify(
        db: Session,
        user_id: int,
        kind: str,
        from_username: str,
        *,
        content_id: int | None = None,
        from_user_id: int | None = None,
    ) -> Notification | None:
        """Record a notification inside the caller's transaction.

        The insert runs in a savepoint so a failure here rolls back only the
        notification, never the state change that triggered it. The push is
        queued on the session and only sent once the caller commits.
        """
        notification = Notification(
            user_id=user_id,
            kind=kind,
            content_id=content_id,
            from_user_id=from_user_id,
            from_username=from_username,
        )
        try:
            with db.begin_nested():
                db.add(notification)
        except SQLAlchemyError:
            logger.exception("Failed to record %s notification for user %s", kind, user_id)
            return None

        logger.debug("Recorded %s notification %s for user %s", kind, notification.id, user_id)
        db.info.setdefault(PENDING_PUSH_KEY, []).append(_push_payload(notification))
        return notification

    @staticmethod
    def list_for_user(
        db: Session,
        user_id: int,
        *,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[Notification]:
        """Return the newest notifications addressed to ``user_id``."""
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.read.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        return list(db.scalars(stmt))

    @staticmethod
    def mark_read(db: Session, user_id: int, notification_id: int) -> Notification:
        notification = db.get(Notification, notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotFound("Notification not found")
        notification.read = True
        db.commit()
        return notification

    @staticmethod
    def mark_all_read(db: Session, user_id: int) -> int:
        result = db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount or 0

    @staticmethod
    def unread_count(db: Session, user_id: int) -> int:
        """Count unread notifications; the figure is always derived, never stored."""
        return db.scalar(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
        ) or 0
