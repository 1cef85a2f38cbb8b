"""User-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field

from noisegarden.models.user import ROLES
from noisegarden.schemas.common import UTCDateTime

USERNAME_PATTERN = r"^[A-Za-z0-9_-]{3,20}$"


class UserCreate(BaseModel):
    """Schema for registering a new identity."""

    username: str = Field(..., pattern=USERNAME_PATTERN)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    role: str
    created_at: UTCDateTime


class RoleUpdate(BaseModel):
    role: str = Field(..., description=f"One of {', '.join(ROLES)}")


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
