"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from noisegarden.core.errors import Unauthorized
from noisegarden.core.security import Identity, decode_access_token, ensure_admin, ensure_elevated
from noisegarden.db.session import get_db
from noisegarden.models import User
from noisegarden.services.rate_limit import RateLimiter, get_rate_limiter
from noisegarden.services.restrictions import RestrictionService

# Missing credentials are reported through the engine's own Unauthorized error
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]
CredentialsDep = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


def _resolve_identity(credentials: HTTPAuthorizationCredentials, db: Session) -> Identity:
    claims = decode_access_token(credentials.credentials)
    user = db.get(User, claims.user_id)
    if user is None:
        raise Unauthorized("User not found")
    RestrictionService.assert_not_banned(db, user.id)
    # The stored role wins over the role baked into an older token.
    return Identity(user_id=user.id, username=user.username, role=user.role)


def get_current_identity(credentials: CredentialsDep, db: SessionDep) -> Identity:
    """Return the verified caller.

    Raises:
        Unauthorized: If no valid bearer token was presented.
        Banned: If the caller's account is banned.
    """
    if credentials is None:
        raise Unauthorized()
    return _resolve_identity(credentials, db)


def get_optional_identity(credentials: CredentialsDep, db: SessionDep) -> Identity | None:
    """Return the caller when a token is presented, else ``None``."""
    if credentials is None:
        return None
    return _resolve_identity(credentials, db)


def require_elevated(identity: Annotated[Identity, Depends(get_current_identity)]) -> Identity:
    ensure_elevated(identity)
    return identity


def require_admin(identity: Annotated[Identity, Depends(get_current_identity)]) -> Identity:
    ensure_admin(identity)
    return identity


def get_rate_limiter_dep() -> RateLimiter:
    """Return the shared write limiter."""
    return get_rate_limiter()


# Type aliases for identity dependencies
CurrentIdentityDep = Annotated[Identity, Depends(get_current_identity)]
OptionalIdentityDep = Annotated[Identity | None, Depends(get_optional_identity)]
ElevatedIdentityDep = Annotated[Identity, Depends(require_elevated)]
AdminIdentityDep = Annotated[Identity, Depends(require_admin)]
RateLimiterDep = Annotated[RateLimiter, Depends(get_rate_limiter_dep)]
