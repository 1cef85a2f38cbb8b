# src/noisegarden/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .content import router as content_router
from .mentions import router as mentions_router
from .moderation import router as moderation_router
from .notifications import router as notifications_router
from .polls import router as polls_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "content_router",
    "mentions_router",
    "moderation_router",
    "notifications_router",
    "polls_router",
    "users_router",
]
