"""Plain HTTP requests for hulaki.

Classes:
    HttpClient: httpx-backed client bound to one target URL.

Functions:
    http_get, http_post, http_put, http_patch, http_delete, http_head,
    http_options: One-shot helpers used by the ``hulaki http`` commands.

Example:
    >>> from hulaki.http.base import with_headers, with_params
    >>> response = http_get(
    ...     "https://api.example.com/users",
    ...     with_params({"page": "2"}),
    ...     with_headers({"Accept": "application/json"}),
    ... )
    >>> response.status_code
    200
"""

from __future__ import annotations

import logging
import time
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

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")


class HttpClient(BaseClient[httpx.Response]):
    """Synchronous HTTP client for a single target URL.

    Every verb accepts the same option helpers; query params are merged
    into the URL and the body is sent verbatim. GET and DELETE may carry
    a body too.

    Attributes:
        transport: Optional httpx transport, mainly for tests.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 30.0,
        default_headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            endpoint: Target URL (http:// or https://).
            timeout: Request timeout in seconds (default: 30.0).
            default_headers: Headers for all requests (default: None).
            transport: Custom httpx transport (default: None).

        Raises:
            ValidationError: If parameters are invalid.
        """
        validated_endpoint = _validate_endpoint(endpoint, protocols=["http", "https"])
        super().__init__(validated_endpoint, timeout, default_headers)
        self.transport = transport
        self._client: httpx.Client | None = None

    def connect(self) -> None:
        self._client = httpx.Client(
            timeout=self.timeout,
            headers=self.default_headers,
            transport=self.transport,
        )
        self._connected = True

    def disconnect(self) -> None:
        if self._client:
            self._client.close()
            self._client = None
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected and self._client is not None

    def request(self, method: str, *options: Option) -> httpx.Response:
        """Send one request to the endpoint.

        Args:
            method: HTTP method name, case-insensitive.
            *options: Option helpers (with_body, with_params, with_headers).

        Returns:
            The httpx response. Non-2xx statuses are returned, not raised.

        Raises:
            ValidationError: If the method is not supported.
            RequestTimeoutError: If the request times out.
            RequestFailedError: If the transport fails.
        """
        method = method.upper()
        if method not in HTTP_METHODS:
            raise ValidationError(
                f"Unsupported HTTP method: {method}",
                field="method",
                value=method,
            )

        self._ensure_connected()
        assert self._client is not None

        opts = collect_options(*options)
        url = set_params(self.endpoint, opts.params)
        context = ErrorContext(target=url, operation=method)
        start_time = time.perf_counter()

        try:
            response = self._client.request(
                method,
                url,
                headers=opts.headers,
                content=opts.body.encode("utf-8") if opts.body is not None else None,
            )
        except httpx.TimeoutException as e:
            self._record_failure(method, opts.body, start_time, e)
            raise RequestTimeoutError(
                message=f"{method} {url} timed out after {self.timeout}s",
                context=context,
                cause=e,
            ) from e
        except httpx.RequestError as e:
            self._record_failure(method, opts.body, start_time, e)
            raise RequestFailedError(
                message=f"{method} {url} failed: {e}",
                context=context,
                cause=e,
            ) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        self._record_request(method, opts.body, response.text, duration_ms)
        logger.debug(f"{method} {url} -> {response.status_code} in {duration_ms:.1f}ms")
        return response

    def _record_failure(
        self, method: str, body: str | None, start_time: float, error: Exception
    ) -> None:
        duration_ms = (time.perf_counter() - start_time) * 1000
        self._record_request(method, body, None, duration_ms, error=str(error))

    def get(self, *options: Option) -> httpx.Response:
        return self.request("GET", *options)

    def post(self, *options: Option) -> httpx.Response:
        return self.request("POST", *options)

    def put(self, *options: Option) -> httpx.Response:
        return self.request("PUT", *options)

    def patch(self, *options: Option) -> httpx.Response:
        return self.request("PATCH", *options)

    def delete(self, *options: Option) -> httpx.Response:
        return self.request("DELETE", *options)

    def head(self, *options: Option) -> httpx.Response:
        return self.request("HEAD", *options)

    def options(self, *options: Option) -> httpx.Response:
        return self.request("OPTIONS", *options)


def http_request(method: str, url: str, *options: Option, **kwargs: Any) -> httpx.Response:
    """Fire a single request and close the client afterwards.

    Keyword arguments are passed to HttpClient (timeout, transport, ...).
    """
    with HttpClient(url, **kwargs) as client:
        return client.request(method, *options)


def http_get(url: str, *options: Option, **kwargs: Any) -> httpx.Response:
    return http_request("GET", url, *options, **kwargs)


def http_post(url: str, *options: Option, **kwargs: Any) -> httpx.Response:
    return http_request("POST", url, *options, **kwargs)


def http_put(url: str, *options: Option, **kwargs: Any) -> httpx.Response:
    return http_request("PUT", url, *options, **kwargs)


def http_patch(url: str, *options: Option, **kwargs: Any) -> httpx.Response:
    return http_request("PATCH", url, *options, **kwargs)


def http_delete(url: str, *options: Option, **kwargs: Any) -> httpx.Response:
    return http_request("DELETE", url, *options, **kwargs)


def http_head(url: str, *options: Option, **kwargs: Any) -> httpx.Response:
    return http_request("HEAD", url, *options, **kwargs)


def http_options(url: str, *options: Option, **kwargs: Any) -> httpx.Response:
    return http_request("OPTIONS", url, *options, **kwargs)
