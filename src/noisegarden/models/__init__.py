"""SQLAlchemy models for the Noisegarden engine."""

from .content import ContentItem
from .mention import Mention
from .moderation import BanRecord, Flag, MuteRecord
from .notification import Notification
from .poll import Poll, PollOption, PollVote
from .user import User

__all__ = [
    "BanRecord", "Flag", "MuteRecord",
    "ContentItem",
    "Mention",
    "Notification",
    "Poll", "PollOption", "PollVote",
    "User",
]
