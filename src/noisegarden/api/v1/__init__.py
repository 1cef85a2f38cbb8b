# src/noisegarden/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    content_router,
    mentions_router,
    moderation_router,
    notifications_router,
    polls_router,
    users_router,
)

__all__ = [
    "auth_router",
    "content_router",
    "mentions_router",
    "moderation_router",
    "notifications_router",
    "polls_router",
    "users_router",
]
