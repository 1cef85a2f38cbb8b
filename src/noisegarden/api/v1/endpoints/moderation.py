# src/noisegarden/api/v1/endpoints/moderation.py
"""Moderation-related endpoints for the Noisegarden API."""

from fastapi import APIRouter, Query, Response, status

from noisegarden.api.v1.dependencies import (
    CurrentIdentityDep,
    ElevatedIdentityDep,
    RateLimiterDep,
    SessionDep,
)
from noisegarden.core.errors import Forbidden
from noisegarden.core.security import Identity
from noisegarden.schemas.moderation import (
    BanCreate,
    BanStatusResponse,
    FlagCreate,
    FlagEntryResponse,
    FlaggedContentResponse,
    FlagResultResponse,
    FlagSummaryResponse,
    MuteCreate,
    MuteStatusResponse,
    QuarantineResponse,
    RestrictedUserResponse,
)
from noisegarden.services.moderation import ModerationService
from noisegarden.services.restrictions import RestrictionService

router = APIRouter(prefix="/moderation", tags=["moderation"])


def _ensure_self_or_elevated(identity: Identity, user_id: int) -> None:
    if identity.user_id != user_id and not identity.is_elevated:
        raise Forbidden()


@router.post("/flags/{content_id}", response_model=FlagResultResponse)
async def file_flag(
    content_id: int,
    payload: FlagCreate,
    identity: CurrentIdentityDep,
    db: SessionDep,
    rate_limiter: RateLimiterDep,
) -> FlagResultResponse:
    """Report a content item; the third distinct report quarantines it."""
    rate_limiter.hit(identity.user_id, "flag")
    result = ModerationService.file_flag(db, identity, content_id, payload.reason)
    return FlagResultResponse.model_validate(result)


@router.get("/flags/{content_id}/summary", response_model=FlagSummaryResponse)
async def get_flag_summary(
    content_id: int,
    identity: ElevatedIdentityDep,
    db: SessionDep,
) -> FlagSummaryResponse:
    """Flag totals grouped by reason; reasons are visible to staff only."""
    return FlagSummaryResponse.from_summary(ModerationService.flag_summary(db, content_id))


@router.get("/flags/{content_id}", response_model=list[FlagEntryResponse])
async def list_flags(
    content_id: int,
    identity: ElevatedIdentityDep,
    db: SessionDep,
) -> list[FlagEntryResponse]:
    entries = ModerationService.list_flags(db, identity, content_id)
    return [FlagEntryResponse.model_validate(entry) for entry in entries]


@router.get("/flagged", response_model=list[FlaggedContentResponse])
async def list_flagged_content(
    identity: ElevatedIdentityDep,
    db: SessionDep,
    limit: int = Query(50, ge=1, le=100),
) -> list[FlaggedContentResponse]:
    """Get live content that has at least one flag."""
    rows = ModerationService.list_flagged_content(db, identity, limit=limit)
    return [
        FlaggedContentResponse(
            id=item.id,
            author_id=item.author_id,
            body=item.body,
            quarantined=item.quarantined,
            created_at=item.created_at,
            expires_at=item.expires_at,
            flag_count=flag_count,
        )
        for item, flag_count in rows
    ]


@router.post("/content/{content_id}/quarantine", response_model=QuarantineResponse)
async def quarantine_content(
    content_id: int,
    identity: ElevatedIdentityDep,
    db: SessionDep,
) -> QuarantineResponse:
    return QuarantineResponse.model_validate(ModerationService.quarantine(db, identity, content_id))


@router.delete("/content/{content_id}/quarantine", response_model=QuarantineResponse)
async def unquarantine_content(
    content_id: int,
    identity: ElevatedIdentityDep,
    db: SessionDep,
) -> QuarantineResponse:
    return QuarantineResponse.model_validate(ModerationService.unquarantine(db, identity, content_id))


@router.get("/muted", response_model=list[RestrictedUserResponse])
async def list_muted(identity: ElevatedIdentityDep, db: SessionDep) -> list[RestrictedUserResponse]:
    return [RestrictedUserResponse.model_validate(row) for row in RestrictionService.list_muted(db, identity)]


@router.get("/banned", response_model=list[RestrictedUserResponse])
async def list_banned(identity: ElevatedIdentityDep, db: SessionDep) -> list[RestrictedUserResponse]:
    return [RestrictedUserResponse.model_validate(row) for row in RestrictionService.list_banned(db, identity)]


@router.get("/users/{user_id}/mute", response_model=MuteStatusResponse)
async def get_mute_status(user_id: int, identity: CurrentIdentityDep, db: SessionDep) -> MuteStatusResponse:
    _ensure_self_or_elevated(identity, user_id)
    return MuteStatusResponse.model_validate(RestrictionService.get_mute_status(db, user_id))


@router.post("/users/{user_id}/mute", response_model=MuteStatusResponse)
async def mute_user(
    user_id: int,
    payload: MuteCreate,
    identity: ElevatedIdentityDep,
    db: SessionDep,
) -> MuteStatusResponse:
    mute_status = RestrictionService.mute(
        db,
        identity,
        user_id,
        payload.reason,
        duration_minutes=payload.duration_minutes,
    )
    return MuteStatusResponse.model_validate(mute_status)


@router.delete("/users/{user_id}/mute", status_code=status.HTTP_204_NO_CONTENT)
async def unmute_user(user_id: int, identity: ElevatedIdentityDep, db: SessionDep) -> Response:
    RestrictionService.unmute(db, identity, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/users/{user_id}/ban", response_model=BanStatusResponse)
async def get_ban_status(user_id: int, identity: CurrentIdentityDep, db: SessionDep) -> BanStatusResponse:
    _ensure_self_or_elevated(identity, user_id)
    return BanStatusResponse.model_validate(RestrictionService.get_ban_status(db, user_id))


@router.post("/users/{user_id}/ban", response_model=BanStatusResponse)
async def ban_user(
    user_id: int,
    payload: BanCreate,
    identity: ElevatedIdentityDep,
    db: SessionDep,
) -> BanStatusResponse:
    return BanStatusResponse.model_validate(RestrictionService.ban(db, identity, user_id, payload.reason))


@router.delete("/users/{user_id}/ban", status_code=status.HTTP_204_NO_CONTENT)
async def unban_user(user_id: int, identity: ElevatedIdentityDep, db: SessionDep) -> Response:
    RestrictionService.unban(db, identity, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
