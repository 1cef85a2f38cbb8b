# src/noisegarden/api/v1/endpoints/users.py
"""User endpoints for the Noisegarden API."""

import logging

from fastapi import APIRouter, Query
from sqlalchemy import select

from noisegarden.api.v1.dependencies import (
    AdminIdentityDep,
    CurrentIdentityDep,
    OptionalIdentityDep,
    SessionDep,
)
from noisegarden.core.errors import InvalidState, NotFound
from noisegarden.models import User
from noisegarden.models.user import ROLES
from noisegarden.schemas.content import ContentResponse
from noisegarden.schemas.user import RoleUpdate, UserResponse
from noisegarden.services.content import ContentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(identity: CurrentIdentityDep, db: SessionDep) -> User:
    user = db.get(User, identity.user_id)
    if user is None:
        raise NotFound("User not found")
    return user


@router.get("/{username}", response_model=UserResponse)
async def get_user(username: str, db: SessionDep) -> User:
    user = db.scalars(select(User).where(User.username == username)).first()
    if user is None:
        raise NotFound("User not found")
    return user


@router.get("/{username}/content", response_model=list[ContentResponse])
async def list_user_content(
    username: str,
    db: SessionDep,
    viewer: OptionalIdentityDep,
    limit: int = Query(50, ge=1, le=100),
) -> list[ContentResponse]:
    views = ContentService.list_user_content(db, username, viewer, limit=limit)
    return [ContentResponse.from_view(view) for view in views]


@router.put("/{user_id}/role", response_model=UserResponse)
async def set_role(
    user_id: int,
    payload: RoleUpdate,
    identity: AdminIdentityDep,
    db: SessionDep,
) -> User:
    """Change a user's role (admin only)."""
    if payload.role not in ROLES:
        raise InvalidState(f"Unknown role {payload.role!r}")
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    user.role = payload.role
    db.commit()
    db.refresh(user)
    logger.info("User %s set role of user %s to %s", identity.user_id, user_id, payload.role)
    return user
