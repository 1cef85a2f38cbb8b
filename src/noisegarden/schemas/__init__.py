# src/noisegarden/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .content import ContentCreate, ContentResponse, PopupStatusResponse
from .mention import MentionCreate, MentionRespond, MentionResponse
from .moderation import FlagCreate, FlagResultResponse, FlagSummaryResponse, MuteCreate
from .notification import NotificationResponse, UnreadCountResponse
from .poll import PollResponse, VoteCreate
from .user import TokenResponse, UserCreate, UserResponse

__all__ = [
    "ContentCreate", "ContentResponse", "PopupStatusResponse",
    "MentionCreate", "MentionRespond", "MentionResponse",
    "FlagCreate", "FlagResultResponse", "FlagSummaryResponse", "MuteCreate",
    "NotificationResponse", "UnreadCountResponse",
    "PollResponse", "VoteCreate",
    "TokenResponse", "UserCreate", "UserResponse",
]
