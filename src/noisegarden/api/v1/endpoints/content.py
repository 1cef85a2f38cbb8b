# src/noisegarden/api/v1/endpoints/content.py
"""Content-related endpoints for the Noisegarden API."""

from typing import Literal

from fastapi import APIRouter, Query, Response, status

from noisegarden.api.v1.dependencies import (
    AdminIdentityDep,
    CurrentIdentityDep,
    OptionalIdentityDep,
    RateLimiterDep,
    SessionDep,
)
from noisegarden.schemas.content import (
    ContentCreate,
    ContentResponse,
    PinUpdate,
    PopupConfigIn,
    PopupStatusResponse,
    RepliesDisabledUpdate,
)
from noisegarden.services.content import ContentService, PollDraft, PopupConfig
from noisegarden.services.popup import PopupService

router = APIRouter(prefix="/content", tags=["content"])


@router.post("", response_model=ContentResponse, status_code=status.HTTP_201_CREATED)
async def create_content(
    payload: ContentCreate,
    identity: CurrentIdentityDep,
    db: SessionDep,
    rate_limiter: RateLimiterDep,
) -> ContentResponse:
    """Create a root item, a reply or a repost."""
    rate_limiter.hit(identity.user_id, "content")
    popup = None
    if payload.popup is not None:
        popup = PopupConfig(
            reply_limit=payload.popup.reply_limit,
            time_limit_minutes=payload.popup.time_limit_minutes,
        )
    poll = None
    if payload.poll is not None:
        poll = PollDraft(question=payload.poll.question, options=payload.poll.options)

    item = ContentService.create(
        db,
        identity,
        payload.body,
        parent_id=payload.parent_id,
        repost_of=payload.repost_of,
        ttl_seconds=payload.ttl_seconds,
        popup=popup,
        poll=poll,
    )
    return ContentResponse.from_view(ContentService.get(db, item.id, identity))


@router.get("", response_model=list[ContentResponse])
async def list_content(
    db: SessionDep,
    viewer: OptionalIdentityDep,
    sort: Literal["newest", "oldest"] = Query("newest"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> list[ContentResponse]:
    views = ContentService.list_content(db, viewer, sort=sort, limit=limit, offset=offset)
    return [ContentResponse.from_view(view) for view in views]


@router.get("/{content_id}", response_model=ContentResponse)
async def get_content(content_id: int, db: SessionDep, viewer: OptionalIdentityDep) -> ContentResponse:
    return ContentResponse.from_view(ContentService.get(db, content_id, viewer))


@router.get("/{content_id}/replies", response_model=list[ContentResponse])
async def list_replies(
    content_id: int,
    db: SessionDep,
    viewer: OptionalIdentityDep,
) -> list[ContentResponse]:
    """List live replies, oldest first."""
    views = ContentService.list_replies(db, content_id, viewer)
    return [ContentResponse.from_view(view) for view in views]


@router.delete("/{content_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_content(content_id: int, identity: CurrentIdentityDep, db: SessionDep) -> Response:
    ContentService.delete(db, identity, content_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{content_id}/pin", response_model=ContentResponse)
async def set_pinned(
    content_id: int,
    payload: PinUpdate,
    identity: AdminIdentityDep,
    db: SessionDep,
) -> ContentResponse:
    ContentService.set_pinned(db, identity, content_id, payload.pinned)
    return ContentResponse.from_view(ContentService.get(db, content_id, identity))


@router.put("/{content_id}/replies-disabled", response_model=ContentResponse)
async def set_replies_disabled(
    content_id: int,
    payload: RepliesDisabledUpdate,
    identity: CurrentIdentityDep,
    db: SessionDep,
) -> ContentResponse:
    ContentService.set_replies_disabled(db, identity, content_id, payload.disabled)
    return ContentResponse.from_view(ContentService.get(db, content_id, identity))


@router.get("/{content_id}/popup", response_model=PopupStatusResponse)
async def get_popup_status(content_id: int, db: SessionDep) -> PopupStatusResponse:
    return PopupStatusResponse.model_validate(PopupService.get_status(db, content_id))


@router.post("/{content_id}/popup", response_model=PopupStatusResponse)
async def enable_popup(
    content_id: int,
    payload: PopupConfigIn,
    identity: CurrentIdentityDep,
    db: SessionDep,
) -> PopupStatusResponse:
    """Turn an existing root item into a popup thread."""
    popup_status = PopupService.enable(
        db,
        identity,
        content_id,
        reply_limit=payload.reply_limit,
        time_limit_minutes=payload.time_limit_minutes,
    )
    return PopupStatusResponse.model_validate(popup_status)


@router.post("/{content_id}/popup/close", response_model=PopupStatusResponse)
async def close_popup(content_id: int, identity: CurrentIdentityDep, db: SessionDep) -> PopupStatusResponse:
    return PopupStatusResponse.model_validate(PopupService.close(db, identity, content_id))
