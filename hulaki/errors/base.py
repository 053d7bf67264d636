"""Custom exception hierarchy for hulaki.

Errors carry a stable ErrorCode, an ErrorContext naming the operation and
target involved, and a short list of suggestions the CLI prints with
--verbose.

Example:
    try:
        connection = await DuplexConnection.open("ws://localhost:9000")
    except ConnectError as e:
        print(f"Error: {e}")
        print(f"Suggestions: {e.suggestions}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Standardized error codes for hulaki.

    Error codes are organized by category:
    - E0xx: Connection errors
    - E1xx: Request errors
    - E2xx: Validation errors
    - E3xx: Session (duplex stream) errors
    - E9xx: Unknown/internal errors
    """

    # Connection errors (E0xx)
    CONNECTION_FAILED = "E001"
    CONNECTION_TIMEOUT = "E002"

    # Request errors (E1xx)
    REQUEST_TIMEOUT = "E101"
    REQUEST_FAILED = "E102"

    # Validation errors (E2xx)
    VALIDATION_FAILED = "E201"
    INVALID_ARGUMENT = "E202"

    # Session errors (E3xx)
    SEND_FAILED = "E301"
    RECEIVE_FAILED = "E302"
    CONNECTION_CLOSED = "E303"

    # Unknown/internal errors (E9xx)
    UNKNOWN = "E999"

    @property
    def category(self) -> str:
        code_num = int(self.value[1:])
        if code_num < 100:
            return "connection"
        elif code_num < 200:
            return "request"
        elif code_num < 300:
            return "validation"
        elif code_num < 400:
            return "session"
        else:
            return "unknown"


@dataclass
class ErrorContext:
    """Structured context describing where an error happened.

    Attributes:
        target: URL or address the operation was aimed at
        operation: Name of the operation (e.g. "open", "send", "GET")
        extra: Additional context-specific information
        timestamp: When the error occurred
    """

    target: str | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        result = {
            "target": self.target,
            "operation": self.operation,
            "extra": self.extra or None,
            "timestamp": self.timestamp.isoformat(),
        }
        return {k: v for k, v in result.items() if v is not None}

    def format_location(self) -> str:
        """``operation=send > target=ws://...``, or "unknown location"."""
        parts = []
        if self.operation:
            parts.append(f"operation={self.operation}")
        if self.target:
            parts.append(f"target={self.target}")
        return " > ".join(parts) if parts else "unknown location"


class HulakiError(Exception):
    """Root of the hulaki error hierarchy.

    Subclasses set ``error_code``, ``default_message`` and
    ``default_suggestions``; callers usually pass only ``message``,
    ``context`` and ``cause``.
    """

    error_code: ErrorCode = ErrorCode.UNKNOWN
    default_message: str = "An unexpected error occurred"
    default_suggestions: list[str] = []

    def __init__(
        self,
        message: str | None = None,
        error_code: ErrorCode | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
        suggestions: list[str] | None = None,
        **extra_context: Any,
    ) -> None:
        self.message = message or self.default_message
        self.error_code = error_code or self.error_code
        self.context = context or ErrorContext()
        self.cause = cause
        self._suggestions = suggestions

        if extra_context:
            self.context.extra.update(extra_context)

        super().__init__(self.message)

    @property
    def suggestions(self) -> list[str]:
        """Get actionable suggestions for resolving this error."""
        if self._suggestions is not None:
            return self._suggestions
        return self.default_suggestions.copy()

    def __str__(self) -> str:
        parts = [f"[{self.error_code.value}] {self.message}"]

        location = self.context.format_location()
        if location != "unknown location":
            parts.append(f"at {location}")

        return " | ".join(parts)

    def format_verbose(self) -> str:
        """Format error with full details including suggestions."""
        lines = [
            f"Error [{self.error_code.value}]: {self.message}",
            "",
        ]

        location = self.context.format_location()
        if location != "unknown location":
            lines.append(f"Location: {location}")

        if self.cause is not None:
            lines.append(f"Cause: {type(self.cause).__name__}: {self.cause}")

        if self.suggestions:
            lines.append("")
            lines.append("Suggestions:")
            for suggestion in self.suggestions:
                lines.append(f"  - {suggestion}")

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error_code": self.error_code.value,
            "error_type": self.__class__.__name__,
            "message": self.message,
            "suggestions": self.suggestions,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


class ConnectError(HulakiError):
    """Error establishing a connection.

    Raised for DNS/TCP failures, TLS failures and rejected handshakes.
    Fatal to the command invocation; never retried.
    """

    error_code = ErrorCode.CONNECTION_FAILED
    default_message = "Failed to establish connection"
    default_suggestions = [
        "Verify the server is running and the address is correct",
        "Check the URL scheme (ws://, wss://, http://, https://)",
        "Check that a proxy or firewall is not dropping the upgrade request",
    ]


class ConnectTimeoutError(ConnectError):
    """Connection attempt took longer than the configured open timeout."""

    error_code = ErrorCode.CONNECTION_TIMEOUT
    default_message = "Connection timed out"
    default_suggestions = [
        "Increase open_timeout (HULAKI_OPEN_TIMEOUT)",
        "Make sure the host resolves and the port is reachable",
    ]


class RequestTimeoutError(HulakiError):
    """Request timed out waiting for a response."""

    error_code = ErrorCode.REQUEST_TIMEOUT
    default_message = "Request timed out"
    default_suggestions = [
        "Increase timeout (HULAKI_TIMEOUT)",
        "Or set timeout in the file passed to --config",
    ]


class RequestFailedError(HulakiError):
    """Request could not be completed.

    Raised when the transport fails (refused, reset, invalid URL) for a
    one-shot HTTP or GraphQL request.
    """

    error_code = ErrorCode.REQUEST_FAILED
    default_message = "Request failed"

    def __init__(
        self,
        message: str | None = None,
        status_code: int | None = None,
        **kwargs: Any,
    ) -> None:
        self.status_code = status_code
        super().__init__(message=message, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["status_code"] = self.status_code
        return result


class ValidationError(HulakiError):
    """Validation failed for a value supplied by the caller."""

    error_code = ErrorCode.VALIDATION_FAILED
    default_message = "Validation failed"
    default_suggestions = [
        "Check the field name and value mentioned in the error",
    ]

    def __init__(
        self,
        message: str | None = None,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value
        super().__init__(message=message, **kwargs)

    def __str__(self) -> str:
        base = super().__str__()
        if self.field:
            base = f"{base} (field: {self.field})"
        return base

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["field"] = self.field
        result["value"] = repr(self.value)
        return result


class ArgumentError(ValidationError):
    """Malformed command-line input such as a bad key=value pair."""

    error_code = ErrorCode.INVALID_ARGUMENT
    default_message = "Invalid argument"
    default_suggestions = [
        "Use key=value pairs separated by commas, e.g. --headers=Accept=text/plain,X-Id=1",
    ]


class SendError(HulakiError):
    """Writing a frame to an established connection failed."""

    error_code = ErrorCode.SEND_FAILED
    default_message = "Failed to send frame"


class ReceiveError(HulakiError):
    """Reading a frame from an established connection failed."""

    error_code = ErrorCode.RECEIVE_FAILED
    default_message = "Failed to receive frame"


class ClosedError(ReceiveError):
    """The connection was closed, locally or by the peer."""

    error_code = ErrorCode.CONNECTION_CLOSED
    default_message = "Connection closed"
