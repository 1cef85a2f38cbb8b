# src/noisegarden/schemas/content.py
"""Content-related Pydantic schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from noisegarden.schemas.common import UTCDateTime
from noisegarden.services.content import ContentView


class PopupConfigIn(BaseModel):
    """Popup limits; missing values fall back to the configured defaults."""

    reply_limit: int | None = Field(None, ge=1)
    time_limit_minutes: int | None = Field(None, ge=1)


class PollCreate(BaseModel):
    question: str = Field(..., min_length=1, max_length=280)
    options: list[str] = Field(..., min_length=1)


class ContentCreate(BaseModel):
    """Schema for creating a content item, a reply or a repost."""

    body: str = Field("", description="Plain text; may be empty only for reposts")
    parent_id: int | None = Field(None, description="Item this one replies to")
    repost_of: int | None = Field(None, description="Item this one reposts")
    ttl_seconds: int | None = Field(None, ge=1, description="Lifetime in seconds")
    popup: PopupConfigIn | None = None
    poll: PollCreate | None = None


class PopupStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    content_id: int
    closed: bool
    reason: str | None
    reply_count: int
    reply_limit: int
    time_limit_minutes: int
    remaining_replies: int
    remaining_ms: int
    closed_at: UTCDateTime | None = None


class ContentResponse(BaseModel):
    """Schema for content returned by the API.

    ``body`` is null when the item is quarantined and the viewer is neither
    its author nor a moderator.
    """

    id: int
    author_id: int
    author_username: str
    body: str | None
    body_withheld: bool
    created_at: UTCDateTime
    expires_at: UTCDateTime | None
    parent_id: int | None
    repost_of: int | None
    quarantined: bool
    pinned: bool
    replies_disabled: bool
    reply_count: int
    repost_count: int
    popup: PopupStatusResponse | None = None
    poll_id: int | None = None

    @classmethod
    def from_view(cls, view: ContentView) -> ContentResponse:
        item = view.item
        return cls(
            id=item.id,
            author_id=item.author_id,
            author_username=view.author_username,
            body=view.body,
            body_withheld=view.body_withheld,
            created_at=item.created_at,
            expires_at=item.expires_at,
            parent_id=item.parent_id,
            repost_of=item.repost_of,
            quarantined=item.quarantined,
            pinned=item.pinned,
            replies_disabled=item.replies_disabled,
            reply_count=view.reply_count,
            repost_count=view.repost_count,
            popup=PopupStatusResponse.model_validate(view.popup) if view.popup else None,
            poll_id=view.poll_id,
        )


class PinUpdate(BaseModel):
    pinned: bool


class RepliesDisabledUpdate(BaseModel):
    disabled: bool
