"""GraphQL client for hulaki.

Queries and mutations are both sent as a JSON POST of
``{"query": ..., "variables": ...}``; the server decides what the operation
is. ``is_mutation`` only labels the request.

Classes:
    GraphQLError: One entry of the response ``errors`` array.
    GraphQLResponse: Parsed response with data, errors and the raw body.
    GraphQLClient: httpx-backed client for one endpoint.

Example:
    >>> response = graphql_query(
    ...     "http://localhost:4000/graphql",
    ...     "query Me { me { login } }",
    ... )
    >>> response.get_data("me.login")
    'hulaki'
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from hulaki.errors import ErrorContext, RequestFailedError, RequestTimeoutError, ValidationError
from hulaki.http.base import (
    BaseClient,
    Option,
    _validate_endpoint,
    collect_options,
    set_params,
)

logger = logging.getLogger(__name__)


def is_mutation(query: str) -> bool:
    """Return True when the operation text starts with ``mutation``."""
    return query.strip().lower().startswith("mutation")


def _validate_graphql_query(query: str) -> str:
    query = (query or "").strip()
    if not query:
        raise ValidationError(
            "GraphQL query cannot be empty",
            field="query",
            value=query,
        )
    return query


@dataclass
class GraphQLError:
    """One entry of the ``errors`` array.

    ``locations`` holds the 1-based line/column pairs the server reported;
    ``path`` the response path of the failing field, if any.
    """

    message: str
    locations: list[dict[str, int]] | None = None
    path: list[str | int] | None = None
    extensions: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GraphQLError:
        return cls(
            message=data.get("message", "Unknown error"),
            locations=data.get("locations"),
            path=data.get("path"),
            extensions=data.get("extensions"),
        )

    def __str__(self) -> str:
        parts = [self.message]
        if self.locations:
            locs = ", ".join(
                f"line {loc.get('line')} col {loc.get('column')}" for loc in self.locations
            )
            parts.append(f"at {locs}")
        if self.path:
            parts.append(f"path: {'.'.join(str(p) for p in self.path)}")
        return " | ".join(parts)


@dataclass
class GraphQLResponse:
    """What came back from one GraphQL POST.

    ``data`` is None when the server returned only errors or the body was
    not JSON; ``raw_body`` always has the text as received, for --raw.
    """

    data: Any = None
    errors: list[GraphQLError] = field(default_factory=list)
    extensions: dict[str, Any] | None = None
    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    raw_body: str = ""
    duration_ms: float = 0.0

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    @property
    def successful(self) -> bool:
        """True if no errors and data is present."""
        return not self.has_errors and self.data is not None

    def raise_for_errors(self) -> None:
        """Raise RequestFailedError if the response contains errors."""
        if self.has_errors:
            error_messages = [str(e) for e in self.errors]
            raise RequestFailedError(
                message=f"GraphQL errors: {'; '.join(error_messages)}",
                status_code=self.status_code,
            )

    def get_data(self, path: str | None = None) -> Any:
        """Get data optionally navigating a dot-separated path like ``users.0.id``."""
        if self.data is None:
            return None
        if path is None:
            return self.data
        result = self.data
        for key in path.split("."):
            if isinstance(result, dict):
                result = result.get(key)
            elif isinstance(result, list) and key.isdigit():
                idx = int(key)
                if 0 <= idx < len(result):
                    result = result[idx]
                else:
                    return None
            else:
                return None
        return result


class GraphQLClient(BaseClient[GraphQLResponse]):
    """Synchronous GraphQL client over HTTP POST.

    Example:
        >>> with GraphQLClient("https://api.example.com/graphql") as client:
        ...     response = client.execute(
        ...         "query GetUser($id: ID!) { user(id: $id) { name } }",
        ...         with_variables({"id": "123"}),
        ...     )
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 30.0,
        default_headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        validated_endpoint = _validate_endpoint(endpoint, protocols=["http", "https"])
        super().__init__(validated_endpoint, timeout, default_headers)
        self.transport = transport
        self._client: httpx.Client | None = None

    def connect(self) -> None:
        headers = {"Content-Type": "application/json"}
        headers.update(self.default_headers)
        self._client = httpx.Client(
            timeout=self.timeout,
            headers=headers,
            transport=self.transport,
        )
        self._connected = True
        logger.debug(f"GraphQL endpoint {self.endpoint} ready")

    def disconnect(self) -> None:
        if self._client:
            self._client.close()
            self._client = None
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected and self._client is not None

    def execute(self, query: str, *options: Option) -> GraphQLResponse:
        """POST one operation. GraphQL-level errors are returned, not raised.

        Raises:
            ValidationError: Empty operation text.
            RequestTimeoutError: No response within ``timeout``.
            RequestFailedError: Transport failure.
        """
        self._ensure_connected()
        assert self._client is not None

        validated_query = _validate_graphql_query(query)
        opts = collect_options(*options)
        url = set_params(self.endpoint, opts.params)

        payload: dict[str, Any] = {"query": validated_query}
        if opts.variables:
            payload["variables"] = opts.variables

        operation = "mutation" if is_mutation(validated_query) else "query"
        context = ErrorContext(target=url, operation=operation)
        start_time = time.perf_counter()

        try:
            response = self._client.post(url, json=payload, headers=opts.headers)
        except httpx.TimeoutException as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self._record_request(operation, payload, None, duration_ms, error=str(e))
            raise RequestTimeoutError(
                message=f"GraphQL request timed out after {self.timeout}s",
                context=context,
                cause=e,
            ) from e
        except httpx.RequestError as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self._record_request(operation, payload, None, duration_ms, error=str(e))
            raise RequestFailedError(
                message=f"GraphQL request failed: {e}",
                context=context,
                cause=e,
            ) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        return self._parse_response(operation, response, duration_ms, payload)

    def query(self, query: str, *options: Option) -> GraphQLResponse:
        return self.execute(query, *options)

    def mutate(self, mutation: str, *options: Option) -> GraphQLResponse:
        return self.execute(mutation, *options)

    def _parse_response(
        self,
        operation: str,
        response: httpx.Response,
        duration_ms: float,
        request_data: dict[str, Any],
    ) -> GraphQLResponse:
        errors: list[GraphQLError] = []
        data: Any = None
        extensions: dict[str, Any] | None = None

        try:
            body = response.json()
        except json.JSONDecodeError:
            body = None
            logger.debug(f"GraphQL response from {self.endpoint} is not JSON")

        if isinstance(body, dict):
            data = body.get("data")
            if body.get("errors"):
                errors = [GraphQLError.from_dict(e) for e in body["errors"]]
            extensions = body.get("extensions")

        self._record_request(
            operation,
            request_data,
            body,
            duration_ms,
            error="; ".join(str(e) for e in errors) if errors else None,
        )

        return GraphQLResponse(
            data=data,
            errors=errors,
            extensions=extensions,
            status_code=response.status_code,
            headers=dict(response.headers),
            raw_body=response.text,
            duration_ms=duration_ms,
        )


def graphql_query(url: str, query: str, *options: Option, **kwargs: Any) -> GraphQLResponse:
    """Execute one operation against ``url`` and close the client."""
    with GraphQLClient(url, **kwargs) as client:
        return client.execute(query, *options)
