"""Exception hierarchy for the import pipeline.

Storage failures are not wrapped: ``OSError`` and its subclasses reach the
caller unchanged.
"""

from __future__ import annotations


class PostbridgeError(Exception):
    """Base class for all postbridge errors."""


class SessionNotFoundError(PostbridgeError, KeyError):
    """No persisted state exists for a session id."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session not found: {self.session_id}"


class SessionValidationError(PostbridgeError, ValueError):
    """A request to a session is missing fields or references nothing."""


class CommitPreconditionError(PostbridgeError):
    """Commit was requested before the session was ready."""

    def __init__(self, reasons: list[str]) -> None:
        self.reasons = list(reasons)
        super().__init__("Cannot commit: " + "; ".join(self.reasons))
