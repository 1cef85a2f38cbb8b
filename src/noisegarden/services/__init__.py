# src/noisegarden/services/__init__.py
"""Business logic services for the Noisegarden engine."""

from .content import ContentService
from .expiry import ExpirySweeper, ExpirySweepWorker
from .mentions import MentionService
from .moderation import ModerationService
from .notifications import NotificationService
from .polls import PollService
from .popup import PopupService
from .rate_limit import RateLimiter
from .restrictions import RestrictionService

__all__ = [
    "ContentService",
    "ExpirySweeper",
    "ExpirySweepWorker",
    "MentionService",
    "ModerationService",
    "NotificationService",
    "PollService",
    "PopupService",
    "RateLimiter",
    "RestrictionService",
]
