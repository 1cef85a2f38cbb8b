"""Error taxonomy shared by the engine services.

Services raise these exceptions; the HTTP layer maps each one to a status
code in a single exception handler (see ``noisegarden.main``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any


class EngineError(RuntimeError):
    """Base class for every expected failure raised by the engine."""

    code = "error"
    status_code = 400

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.code)
        self.detail = detail or self.code

    def payload(self) -> dict[str, Any]:
        """Return the JSON body describing this error."""
        return {"error": self.code, "detail": self.detail}


class Unauthorized(EngineError):
    """No credential, or one that cannot be verified."""

    code = "unauthorized"
    status_code = 401

    def __init__(self, detail: str = "Could not validate credentials") -> None:
        super().__init__(detail)


class Forbidden(EngineError):
    """Valid credential, insufficient role or ownership."""

    code = "forbidden"
    status_code = 403

    def __init__(self, detail: str = "Insufficient permissions") -> None:
        super().__init__(detail)


class NotFound(EngineError):
    """Target is absent or already expired; the two are indistinguishable."""

    code = "not_found"
    status_code = 404


class InvalidState(EngineError):
    """The target exists but its state does not admit the operation."""

    code = "invalid_state"
    status_code = 409


class Conflict(EngineError):
    code = "conflict"
    status_code = 409


class RateLimited(EngineError):
    code = "rate_limited"
    status_code = 429


class Muted(EngineError):
    """Content creation blocked by an active mute."""

    code = "muted"
    status_code = 403

    def __init__(
        self,
        reason: str,
        expires_at: datetime,
        muted_by: str | None,
    ) -> None:
        super().__init__("You are muted")
        self.reason = reason
        self.expires_at = expires_at
        self.muted_by = muted_by

    def payload(self) -> dict[str, Any]:
        body = super().payload()
        body.update(
            reason=self.reason,
            expires_at=self.expires_at.isoformat(),
            muted_by=self.muted_by,
        )
        return body


class Banned(EngineError):
    """Authentication refused for a banned identity."""

    code = "banned"
    status_code = 403

    def __init__(
        self,
        reason: str,
        banned_at: datetime | None,
        banned_by: str | None,
    ) -> None:
        super().__init__("Account is banned")
        self.reason = reason
        self.banned_at = banned_at
        self.banned_by = banned_by

    def payload(self) -> dict[str, Any]:
        body = super().payload()
        body.update(
            reason=self.reason,
            banned_at=self.banned_at.isoformat() if self.banned_at else None,
            banned_by=self.banned_by,
        )
        return body


class ParentClosed(InvalidState):
    """Reply refused because the parent no longer accepts replies."""

    code = "parent_closed"
