"""Bearer credential helpers built on signed JWTs."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from jose import JWTError, jwt

from noisegarden.core.errors import Forbidden, Unauthorized
from noisegarden.core.settings import settings
from noisegarden.db.time import utcnow
from noisegarden.models.user import ELEVATED_ROLES, ROLE_ADMIN, ROLES


@dataclass(frozen=True)
class Identity:
    """Verified caller identity derived from a bearer credential."""

    user_id: int
    username: str
    role: str

    @property
    def is_elevated(self) -> bool:
        return self.role in ELEVATED_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def ensure_elevated(identity: Identity) -> None:
    """Raise ``Forbidden`` unless ``identity`` may moderate."""
    if not identity.is_elevated:
        raise Forbidden()


def ensure_admin(identity: Identity) -> None:
    if not identity.is_admin:
        raise Forbidden()


def create_access_token(
    user_id: int,
    username: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Return a signed token carrying the identity tuple.

    Args:
        user_id: Identifier stored in the ``sub`` claim.
        username: Display handle of the identity.
        role: One of the engine roles.
        expires_delta: Optional lifetime override.
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "username": username,
        "role": role,
        "exp": utcnow() + lifetime,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Identity:
    """Verify ``token`` and return the identity it carries.

    Raises:
        Unauthorized: If the signature, expiry or claims are invalid.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise Unauthorized() from err

    subject = payload.get("sub")
    username = payload.get("username")
    role = payload.get("role")
    if subject is None or not username or role not in ROLES:
        raise Unauthorized()
    try:
        user_id = int(subject)
    except (TypeError, ValueError) as err:
        raise Unauthorized() from err
    return Identity(user_id=user_id, username=str(username), role=str(role))
