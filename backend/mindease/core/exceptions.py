"""
Domain errors raised by the session core.

Each error carries the HTTP status the API layer maps it to. Provider
failures are not listed here: the completion client absorbs them into a
fallback reply (see ``mindease.llm.base`` for the provider error types).
"""

from typing import Optional


class MindEaseError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    public_message: str = "Internal error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class ValidationError(MindEaseError):
    """A required field is missing or malformed. Raised before any work."""

    status_code = 400
    public_message = "Invalid request"


class NotFoundError(MindEaseError):
    """The session id does not resolve to a stored record."""

    status_code = 404
    public_message = "Session not found"


class SessionEndedError(MindEaseError):
    """A message was sent to a session that has already ended."""

    status_code = 409
    public_message = "Session has already ended"


class PersistenceError(MindEaseError):
    """Session store read/write failure, timeout or malformed record."""

    status_code = 500
    public_message = "Failed to access session store"
