"""Mention-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field

from noisegarden.schemas.common import UTCDateTime


class MentionCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=20, pattern=r"^[A-Za-z0-9_-]+$")


class MentionRespond(BaseModel):
    status: str = Field(..., description="'accepted' or 'declined'")


class MentionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    content_id: int
    mentioned_id: int
    requester_id: int
    status: str
    created_at: UTCDateTime
    responded_at: UTCDateTime | None = None
