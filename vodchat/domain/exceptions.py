"""Replay-specific exceptions.

These exceptions represent the failure classes of the replay subsystem:

- input errors (a missing or malformed chat log, an unavailable media element)
  are reported to the caller of ``start_session`` and leave no state behind;
- resource errors (the media element disappears mid-session) demote the
  session to idle;
- collaborator errors (fetching logs, managing links) are reported to the
  controller, which logs them and stays inactive.

Errors raised by a sink while revealing a single event are never wrapped in
these types: they are logged and the batch continues.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any


@dataclass(frozen=True)
class ErrorContext:
    """Structured error context using dataclass."""

    entity_type: Optional[str] = None
    entity_id: Optional[Any] = None
    field_name: Optional[str] = None
    invalid_value: Optional[Any] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        result = {}
        if self.entity_type:
            result["entity_type"] = self.entity_type
        if self.entity_id is not None:
            result["entity_id"] = self.entity_id
        if self.field_name:
            result["field_name"] = self.field_name
        if self.invalid_value is not None:
            result["invalid_value"] = self.invalid_value
        if self.extra:
            result.update(self.extra)
        return result


class ReplayError(Exception):
    """Base exception for all replay errors.

    Provides structured context about what went wrong and where.
    """

    def __init__(self, message: str, *, context: Optional[ErrorContext] = None):
        """Initialize replay exception with context.

        Args:
            message: Human-readable error message
            context: Structured error context
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()

    def __str__(self) -> str:
        """Provide detailed string representation."""
        parts = [self.message]

        if self.context.entity_type:
            if self.context.entity_id is not None:
                parts.append(f"[{self.context.entity_type}:{self.context.entity_id}]")
            else:
                parts.append(f"[{self.context.entity_type}]")

        if self.context.field_name:
            parts.append(f"Field: {self.context.field_name}")

        if self.context.invalid_value is not None:
            parts.append(f"Invalid value: {self.context.invalid_value!r}")

        return " - ".join(parts)

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"context={self.context!r})"
        )


class InvalidEventLogError(ReplayError):
    """Raised when a chat log is missing, empty or not ordered by timestamp."""

    def __init__(
        self,
        message: str,
        *,
        event_id: Optional[str] = None,
        invalid_value: Optional[Any] = None,
    ):
        context = ErrorContext(
            entity_type="ChatEvent" if event_id is not None else "EventLog",
            entity_id=event_id,
            invalid_value=invalid_value,
        )
        super().__init__(message, context=context)


class InvalidOffsetError(ReplayError):
    """Raised when a session is started with an offset that is not a finite number."""

    def __init__(self, offset: Any):
        super().__init__(
            "Offset must be a finite number of seconds",
            context=ErrorContext(
                entity_type="ReplaySession", field_name="offset", invalid_value=repr(offset)
            ),
        )


class MediaUnavailableError(ReplayError):
    """Raised when the media element is missing or has gone away."""

    def __init__(self, message: str = "Media element is not available"):
        super().__init__(message, context=ErrorContext(entity_type="Media"))


class LogSourceError(ReplayError):
    """Raised when a chat log or its metadata cannot be retrieved."""

    def __init__(self, message: str, *, url: Optional[str] = None, status: Optional[int] = None):
        extra: Dict[str, Any] = {}
        if url:
            extra["url"] = url
        if status is not None:
            extra["status"] = status
        super().__init__(message, context=ErrorContext(entity_type="ChatLog", extra=extra))
        self.url = url
        self.status = status


class LinkError(ReplayError):
    """Raised when a manual video to chat log link command is invalid."""

    def __init__(self, message: str, *, video_id: Optional[str] = None):
        super().__init__(
            message, context=ErrorContext(entity_type="VideoLink", entity_id=video_id)
        )


class SessionStateError(ReplayError):
    """Raised when an operation is not valid in the session's current state."""

    def __init__(self, operation: str, state: str):
        message = f"Cannot {operation} while session is {state}"
        super().__init__(
            message,
            context=ErrorContext(
                entity_type="ReplaySession", extra={"operation": operation, "state": state}
            ),
        )
        self.operation = operation
        self.state = state
