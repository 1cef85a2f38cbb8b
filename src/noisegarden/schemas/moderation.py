# src/noisegarden/schemas/moderation.py
"""Moderation-related Pydantic schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from noisegarden.schemas.common import UTCDateTime
from noisegarden.services.moderation import FlagSummary


class FlagCreate(BaseModel):
    """Schema for filing a flag against a content item."""

    reason: str = Field(..., min_length=1, max_length=500)


class FlagResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    content_id: int
    flag_count: int
    quarantined: bool
    quarantine_triggered: bool


class FlagReasonCount(BaseModel):
    reason: str
    count: int


class FlagSummaryResponse(BaseModel):
    content_id: int
    total: int
    reasons: list[FlagReasonCount]

    @classmethod
    def from_summary(cls, summary: FlagSummary) -> FlagSummaryResponse:
        return cls(
            content_id=summary.content_id,
            total=summary.total,
            reasons=[FlagReasonCount(reason=r, count=c) for r, c in summary.reasons],
        )


class FlagEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    content_id: int
    reporter_id: int
    reporter_username: str
    reason: str
    created_at: UTCDateTime


class FlaggedContentResponse(BaseModel):
    """A live item awaiting moderator attention."""

    id: int
    author_id: int
    body: str
    quarantined: bool
    created_at: UTCDateTime
    expires_at: UTCDateTime | None
    flag_count: int


class QuarantineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quarantined: bool


class MuteCreate(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)
    duration_minutes: int | None = Field(None, ge=1, description="Defaults to the configured mute length")


class BanCreate(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class MuteStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    muted: bool
    reason: str | None = None
    expires_at: UTCDateTime | None = None
    muted_by: str | None = None


class BanStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    banned: bool
    reason: str | None = None
    banned_at: UTCDateTime | None = None
    banned_by: str | None = None


class RestrictedUserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    username: str
    reason: str
    actor: str | None
    since: UTCDateTime
    expires_at: UTCDateTime | None = None
