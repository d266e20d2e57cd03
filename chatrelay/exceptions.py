"""
Exception hierarchy for the ChatRelay server.

Errors carry structured context so the seams that catch them can log them
as key/value events.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ErrorContext:
    """Contextual information attached to relay errors."""

    session_id: int | None = None
    kind: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "session_id": self.session_id,
            "kind": self.kind,
            "metadata": self.metadata,
        }


class ChatRelayError(Exception):
    """Base exception for all ChatRelay errors."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context.to_dict(),
            "details": self.details,
        }


class MessageValidationError(ChatRelayError):
    """Raised when an inbound frame cannot be decoded into a wire message."""

    def __init__(self, message: str, error_type: str = "validation_error", **kwargs):
        super().__init__(message, **kwargs)
        self.error_type = error_type
        self.details["error_type"] = error_type


class SessionIdCollisionError(ChatRelayError):
    """Raised when a session is added under an identifier that is already registered."""

    def __init__(self, session_id: int, **kwargs):
        super().__init__(f"Session id {session_id} is already registered", **kwargs)
        self.session_id = session_id
