"""Notification-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict

from noisegarden.schemas.common import UTCDateTime


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    content_id: int | None
    from_user_id: int | None
    from_username: str
    created_at: UTCDateTime
    read: bool


class UnreadCountResponse(BaseModel):
    unread: int


class MarkAllReadResponse(BaseModel):
    updated: int
