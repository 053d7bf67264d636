"""Shared building blocks for hulaki protocol clients.

This module provides the request option helpers every command uses to
assemble a request, query-string construction, and the base client
classes that keep a per-client request history.

Classes:
    RequestOptions: Collected body, params, headers and protocol extras.
    ClientRecord: Data class for recording request/response history.
    BaseClient: Abstract base for synchronous clients.
    BaseAsyncClient: Abstract base for asynchronous clients.

Example:
    >>> options = collect_options(
    ...     with_headers({"Accept": "application/json"}),
    ...     with_params({"page": "2"}),
    ... )
    >>> set_params("http://api.example.com/users", options.params)
    'http://api.example.com/users?page=2'
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, MutableSequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar
from urllib.parse import urlencode, urlsplit, urlunsplit

from hulaki.errors import ArgumentError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RequestOptions:
    """Everything a command may attach to a request besides its target.

    Attributes:
        body: Raw request body (already serialized).
        params: Query parameters appended to the URL.
        headers: Request headers (or gRPC metadata).
        variables: GraphQL variables.
        namespace: Socket.IO namespace.
    """

    body: str | None = None
    params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    variables: dict[str, Any] = field(default_factory=dict)
    namespace: str | None = None


Option = Callable[[RequestOptions], None]


def with_body(body: str | None) -> Option:
    def apply(options: RequestOptions) -> None:
        options.body = body

    return apply


def with_params(params: dict[str, str] | None) -> Option:
    def apply(options: RequestOptions) -> None:
        options.params.update(params or {})

    return apply


def with_headers(headers: dict[str, str] | None) -> Option:
    def apply(options: RequestOptions) -> None:
        options.headers.update(headers or {})

    return apply


def with_variables(variables: dict[str, Any] | None) -> Option:
    def apply(options: RequestOptions) -> None:
        options.variables.update(variables or {})

    return apply


def with_namespace(namespace: str | None) -> Option:
    def apply(options: RequestOptions) -> None:
        options.namespace = namespace or None

    return apply


def collect_options(*options: Option) -> RequestOptions:
    """Apply option helpers in order and return the merged result.

    Later options win when they set the same scalar field; dict fields
    are merged.
    """
    result = RequestOptions()
    for option in options:
        option(result)
    return result


def set_params(url: str, params: dict[str, Any] | None) -> str:
    """Append percent-encoded query parameters to a URL.

    Args:
        url: Target URL, which may already carry a query string.
        params: Parameters to append. Empty or None leaves the URL untouched.

    Returns:
        The URL with the encoded parameters appended, ahead of any fragment.
    """
    if not params:
        return url

    parts = urlsplit(url)
    query = parts.query
    if query and not query.endswith("&"):
        query += "&"
    return urlunsplit(parts._replace(query=query + urlencode(params)))


def parse_key_value_pairs(text: str | None, field_name: str = "argument") -> dict[str, str]:
    """Parse ``key=value[,key=value]`` into a dict.

    Each pair is split on the first ``=`` only, so values may contain ``=``.

    Raises:
        ArgumentError: If a pair has no ``=`` or an empty key.
    """
    result: dict[str, str] = {}
    if not text:
        return result

    for pair in text.split(","):
        pair = pair.strip()
        if not pair:
            continue
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ArgumentError(
                f"Malformed {field_name} pair {pair!r}, expected key=value",
                field=field_name,
                value=pair,
            )
        result[key] = value.strip()
    return result


def _validate_endpoint(endpoint: str, protocols: list[str] | None = None) -> str:
    """Validate and normalize an endpoint URL.

    Args:
        endpoint: The endpoint URL to validate.
        protocols: List of allowed protocols (e.g., ['http', 'https']).

    Returns:
        Normalized endpoint URL without surrounding whitespace.

    Raises:
        ValidationError: If endpoint is empty or uses a disallowed protocol.
    """
    endpoint = (endpoint or "").strip()
    if not endpoint:
        raise ValidationError(
            "Endpoint URL cannot be empty",
            field="endpoint",
            value=endpoint,
        )

    if protocols and not any(endpoint.startswith(f"{p}://") for p in protocols):
        raise ValidationError(
            f"Endpoint must use one of: {', '.join(protocols)}",
            field="endpoint",
            value=endpoint,
        )

    return endpoint


def _validate_positive_number(value: float, field_name: str) -> None:
    if value <= 0:
        raise ValidationError(
            f"{field_name} must be positive",
            field=field_name,
            value=value,
        )


@dataclass
class ClientRecord:
    """Record of a client request/response for history tracking.

    Attributes:
        operation: The operation name (e.g., 'GET', 'send', 'execute').
        request_data: The request payload or parameters.
        response_data: The response data received.
        duration_ms: Request duration in milliseconds.
        timestamp: When the request was made.
        error: Error message if the request failed.
    """

    operation: str
    request_data: Any | None
    response_data: Any | None
    duration_ms: float
    timestamp: datetime = field(default_factory=datetime.now)
    error: str | None = None


class _HistoryMixin:
    history: MutableSequence[ClientRecord]

    def _record_request(
        self,
        operation: str,
        request_data: Any | None,
        response_data: Any | None,
        duration_ms: float,
        error: str | None = None,
    ) -> ClientRecord:
        record = ClientRecord(
            operation=operation or "<unknown>",
            request_data=request_data,
            response_data=response_data,
            duration_ms=max(0.0, duration_ms),
            error=error,
        )
        self.history.append(record)
        return record

    def get_history(self) -> list[ClientRecord]:
        """Get a copy of the request history."""
        return list(self.history)

    def clear_history(self) -> None:
        self.history.clear()

    def last_request(self) -> ClientRecord | None:
        """Get the most recent request record, or None if history is empty."""
        return self.history[-1] if self.history else None


class BaseClient(_HistoryMixin, ABC, Generic[T]):
    """Abstract base class for synchronous protocol clients.

    Provides connection management with context manager support and
    request history tracking.

    Type Parameters:
        T: The response type for this client.

    Attributes:
        endpoint: The service endpoint URL.
        timeout: Default request timeout in seconds.
        default_headers: Headers to include in all requests.
        history: List of recorded requests.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 30.0,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        self.endpoint = _validate_endpoint(endpoint)
        _validate_positive_number(timeout, "timeout")

        self.timeout = timeout
        self.default_headers = default_headers or {}
        self.history: list[ClientRecord] = []
        self._connected = False

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the service."""

    @abstractmethod
    def disconnect(self) -> None:
        """Close connection to the service and release resources."""

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if client is currently connected."""

    def _ensure_connected(self) -> None:
        if not self._connected:
            self.connect()

    def __enter__(self) -> BaseClient[T]:
        self.connect()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.disconnect()


class BaseAsyncClient(_HistoryMixin, ABC, Generic[T]):
    """Abstract base class for asynchronous protocol clients.

    Same contract as BaseClient with async connect/disconnect.

    Type Parameters:
        T: The response type for this client.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 30.0,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        self.endpoint = _validate_endpoint(endpoint)
        _validate_positive_number(timeout, "timeout")

        self.timeout = timeout
        self.default_headers = default_headers or {}
        self.history: list[ClientRecord] = []
        self._connected = False

    @abstractmethod
    async def connect(self) -> None:
        """Establish connection to the service."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the service and release resources."""

    @abstractmethod
    async def is_connected(self) -> bool:
        """Check if client is currently connected."""

    async def _ensure_connected(self) -> None:
        if not self._connected:
            await self.connect()

    async def __aenter__(self) -> BaseAsyncClient[T]:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()
