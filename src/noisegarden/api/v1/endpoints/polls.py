"""Poll endpoints for the Noisegarden API."""

from fastapi import APIRouter

from noisegarden.api.v1.dependencies import (
    CurrentIdentityDep,
    OptionalIdentityDep,
    RateLimiterDep,
    SessionDep,
)
from noisegarden.schemas.poll import PollResponse, VoteCreate
from noisegarden.services.polls import PollService

router = APIRouter(prefix="/polls", tags=["polls"])


@router.get("/{poll_id}", response_model=PollResponse)
async def get_poll(poll_id: int, db: SessionDep, viewer: OptionalIdentityDep) -> PollResponse:
    view = PollService.get_view(db, poll_id, viewer.user_id if viewer else None)
    return PollResponse.model_validate(view)


@router.post("/{poll_id}/votes", response_model=PollResponse)
async def cast_vote(
    poll_id: int,
    payload: VoteCreate,
    identity: CurrentIdentityDep,
    db: SessionDep,
    rate_limiter: RateLimiterDep,
) -> PollResponse:
    """Cast or change the caller's vote."""
    rate_limiter.hit(identity.user_id, "vote")
    view = PollService.vote(db, identity, poll_id, payload.option_index)
    return PollResponse.model_validate(view)
