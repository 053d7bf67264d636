"""Tests for the HTTP client."""

from __future__ import annotations

import json

import httpx
import pytest

from hulaki.errors import RequestFailedError, RequestTimeoutError, ValidationError
from hulaki.http.base import with_body, with_headers, with_params
from hulaki.http.rest import HTTP_METHODS, HttpClient, http_get, http_post, http_request


def recording_transport(
    captured: list[httpx.Request], status: int = 200, text: str = "ok"
) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(status, headers={"X-Server": "mock"}, text=text)

    return httpx.MockTransport(handler)


class TestHttpClient:
    """Tests for HttpClient."""

    def test_init_requires_http_scheme(self) -> None:
        with pytest.raises(ValidationError):
            HttpClient("ws://example.com")

    @pytest.mark.parametrize("method", HTTP_METHODS)
    def test_every_verb(self, method: str) -> None:
        captured: list[httpx.Request] = []
        client = HttpClient("http://api.test/items", transport=recording_transport(captured))

        with client:
            response = getattr(client, method.lower())()

        assert response.status_code == 200
        assert captured[0].method == method

    def test_params_headers_and_body(self) -> None:
        captured: list[httpx.Request] = []

        response = http_post(
            "http://api.test/users?src=cli",
            with_params({"page": "2", "q": "a b"}),
            with_headers({"X-Trace": "abc"}),
            with_body('{"name": "alice"}'),
            transport=recording_transport(captured, status=201),
        )

        request = captured[0]
        assert response.status_code == 201
        assert str(request.url) == "http://api.test/users?src=cli&page=2&q=a+b"
        assert request.headers["X-Trace"] == "abc"
        assert json.loads(request.content) == {"name": "alice"}

    def test_get_may_carry_body(self) -> None:
        captured: list[httpx.Request] = []

        http_get(
            "http://api.test/search",
            with_body("payload"),
            transport=recording_transport(captured),
        )

        assert captured[0].content == b"payload"

    def test_non_2xx_is_returned(self) -> None:
        response = http_get(
            "http://api.test/missing",
            transport=recording_transport([], status=404, text="nope"),
        )

        assert response.status_code == 404
        assert response.text == "nope"

    def test_history_recorded(self) -> None:
        client = HttpClient("http://api.test/", transport=recording_transport([]))

        with client:
            client.get()
            client.delete()

        assert [record.operation for record in client.get_history()] == ["GET", "DELETE"]
        assert client.last_request().response_data == "ok"

    def test_unsupported_method(self) -> None:
        with pytest.raises(ValidationError):
            http_request("TRACE", "http://api.test/", transport=recording_transport([]))

    def test_transport_failure_raises_request_failed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RequestFailedError) as exc_info:
            http_get("http://api.test/", transport=httpx.MockTransport(handler))

        assert exc_info.value.context.operation == "GET"

    def test_timeout_raises_request_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(RequestTimeoutError):
            http_get("http://api.test/", transport=httpx.MockTransport(handler))
