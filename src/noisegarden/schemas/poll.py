"""Poll-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field


class VoteCreate(BaseModel):
    option_index: int = Field(..., ge=0, description="Zero-based option index")


class PollOptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    index: int
    text: str
    votes: int


class PollResponse(BaseModel):
    """Poll with totals aggregated from the vote ledger."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    content_id: int
    question: str
    options: list[PollOptionResponse]
    total_votes: int
    viewer_vote_index: int | None = None
