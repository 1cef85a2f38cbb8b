# src/noisegarden/api/v1/endpoints/auth.py
"""Authentication endpoints for the Noisegarden API."""

from fastapi import APIRouter, status
from sqlalchemy import select

from noisegarden.api.v1.dependencies import SessionDep
from noisegarden.core.errors import Conflict
from noisegarden.models import User
from noisegarden.schemas.user import TokenResponse, UserCreate, UserResponse
from noisegarden.services.restrictions import RestrictionService

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: UserCreate, db: SessionDep) -> TokenResponse:
    """Register a new identity with the default role and return its token."""
    existing = db.scalars(select(User).where(User.username == payload.username)).first()
    if existing is not None:
        raise Conflict("Username already taken")

    user = User(username=payload.username)
    db.add(user)
    db.commit()
    db.refresh(user)

    token = RestrictionService.issue_access_token(db, user)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))
