"""Mention consent endpoints for the Noisegarden API."""

from fastapi import APIRouter, status

from noisegarden.api.v1.dependencies import CurrentIdentityDep, SessionDep
from noisegarden.schemas.mention import MentionCreate, MentionRespond, MentionResponse
from noisegarden.services.mentions import MentionService

router = APIRouter(prefix="/mentions", tags=["mentions"])


@router.post(
    "/content/{content_id}",
    response_model=MentionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_mention(
    content_id: int,
    payload: MentionCreate,
    identity: CurrentIdentityDep,
    db: SessionDep,
) -> MentionResponse:
    """Ask a user to consent to being linked from the caller's item."""
    mention = MentionService.request(db, identity, content_id, payload.username)
    return MentionResponse.model_validate(mention)


@router.get("/pending", response_model=list[MentionResponse])
async def list_pending_mentions(identity: CurrentIdentityDep, db: SessionDep) -> list[MentionResponse]:
    return [
        MentionResponse.model_validate(mention)
        for mention in MentionService.list_pending(db, identity.user_id)
    ]


@router.post("/{mention_id}/respond", response_model=MentionResponse)
async def respond_to_mention(
    mention_id: int,
    payload: MentionRespond,
    identity: CurrentIdentityDep,
    db: SessionDep,
) -> MentionResponse:
    mention = MentionService.respond(db, identity, mention_id, payload.status)
    return MentionResponse.model_validate(mention)
