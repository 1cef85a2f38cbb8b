"""Shared helpers for the test suite."""

from __future__ import annotations

from datetime import datetime, timedelta

from noisegarden.core.security import Identity, create_access_token
from noisegarden.models import User


def identity_of(user: User) -> Identity:
    return Identity(user_id=user.id, username=user.username, role=user.role)


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.username, user.role)
    return {"Authorization": f"Bearer {token}"}


def later(moment: datetime, **delta: float) -> datetime:
    """Return ``moment`` shifted forward by ``timedelta(**delta)``."""
    return moment + timedelta(**delta)
