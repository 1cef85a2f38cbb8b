"""Notification endpoints for the Noisegarden API."""

from fastapi import APIRouter, Query

from noisegarden.api.v1.dependencies import CurrentIdentityDep, SessionDep
from noisegarden.schemas.notification import (
    MarkAllReadResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from noisegarden.services.notifications import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    identity: CurrentIdentityDep,
    db: SessionDep,
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=100),
) -> list[NotificationResponse]:
    notifications = NotificationService.list_for_user(
        db,
        identity.user_id,
        unread_only=unread_only,
        limit=limit,
    )
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(identity: CurrentIdentityDep, db: SessionDep) -> UnreadCountResponse:
    return UnreadCountResponse(unread=NotificationService.unread_count(db, identity.user_id))


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(identity: CurrentIdentityDep, db: SessionDep) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=NotificationService.mark_all_read(db, identity.user_id))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    identity: CurrentIdentityDep,
    db: SessionDep,
) -> NotificationResponse:
    notification = NotificationService.mark_read(db, identity.user_id, notification_id)
    return NotificationResponse.model_validate(notification)
