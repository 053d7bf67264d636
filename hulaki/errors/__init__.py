"""Error hierarchy for hulaki."""

from hulaki.errors.base import (
    ArgumentError,
    ClosedError,
    ConnectError,
    ConnectTimeoutError,
    ErrorCode,
    ErrorContext,
    HulakiError,
    ReceiveError,
    RequestFailedError,
    RequestTimeoutError,
    SendError,
    ValidationError,
)

__all__ = [
    "ArgumentError",
    "ClosedError",
    "ConnectError",
    "ConnectTimeoutError",
    "ErrorCode",
    "ErrorContext",
    "HulakiError",
    "ReceiveError",
    "RequestFailedError",
    "RequestTimeoutError",
    "SendError",
    "ValidationError",
]
