"""Tests for the GraphQL client."""

from __future__ import annotations

import json

import httpx
import pytest

from hulaki.errors import RequestFailedError, ValidationError
from hulaki.http.base import with_headers, with_params, with_variables
from hulaki.http.graphql import (
    GraphQLClient,
    GraphQLError,
    GraphQLResponse,
    graphql_query,
    is_mutation,
)


def graphql_transport(captured: list[httpx.Request], body: dict) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json=body)

    return httpx.MockTransport(handler)


class TestIsMutation:
    """Tests for mutation detection."""

    def test_mutation(self) -> None:
        assert is_mutation("  Mutation CreateUser { createUser { id } }")

    def test_query(self) -> None:
        assert not is_mutation("{ users { id } }")
        assert not is_mutation("query GetUser { user { id } }")


class TestGraphQLError:
    """Tests for GraphQLError."""

    def test_from_dict(self) -> None:
        error = GraphQLError.from_dict(
            {"message": "bad field", "locations": [{"line": 1, "column": 3}], "path": ["user", 0]}
        )

        assert error.message == "bad field"
        assert str(error) == "bad field | at line 1 col 3 | path: user.0"

    def test_missing_message(self) -> None:
        assert GraphQLError.from_dict({}).message == "Unknown error"


class TestGraphQLResponse:
    """Tests for GraphQLResponse helpers."""

    def test_get_data_path(self) -> None:
        response = GraphQLResponse(data={"users": [{"name": "Alice"}]})

        assert response.get_data("users.0.name") == "Alice"
        assert response.get_data("users.5.name") is None
        assert response.successful

    def test_raise_for_errors(self) -> None:
        response = GraphQLResponse(errors=[GraphQLError(message="boom")], status_code=200)

        with pytest.raises(RequestFailedError):
            response.raise_for_errors()


class TestGraphQLClient:
    """Tests for GraphQLClient."""

    def test_requires_http_endpoint(self) -> None:
        with pytest.raises(ValidationError):
            GraphQLClient("ws://api.test/graphql")

    def test_empty_query_rejected(self) -> None:
        client = GraphQLClient("http://api.test/graphql", transport=graphql_transport([], {}))

        with pytest.raises(ValidationError):
            client.execute("   ")

    def test_posts_query_and_variables(self) -> None:
        captured: list[httpx.Request] = []

        response = graphql_query(
            "http://api.test/graphql",
            "query GetUser($id: ID!) { user(id: $id) { name } }",
            with_variables({"id": "123"}),
            with_headers({"Authorization": "Bearer t"}),
            with_params({"v": "2"}),
            transport=graphql_transport(captured, {"data": {"user": {"name": "Alice"}}}),
        )

        request = captured[0]
        assert request.method == "POST"
        assert str(request.url) == "http://api.test/graphql?v=2"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["Authorization"] == "Bearer t"
        assert json.loads(request.content) == {
            "query": "query GetUser($id: ID!) { user(id: $id) { name } }",
            "variables": {"id": "123"},
        }
        assert response.get_data("user.name") == "Alice"

    def test_variables_omitted_when_empty(self) -> None:
        captured: list[httpx.Request] = []

        graphql_query(
            "http://api.test/graphql",
            "{ ping }",
            transport=graphql_transport(captured, {"data": {"ping": True}}),
        )

        assert json.loads(captured[0].content) == {"query": "{ ping }"}

    def test_errors_parsed(self) -> None:
        body = {
            "data": None,
            "errors": [{"message": "Cannot query field", "locations": [{"line": 2, "column": 5}]}],
        }

        response = graphql_query(
            "http://api.test/graphql", "{ nope }", transport=graphql_transport([], body)
        )

        assert response.has_errors
        assert response.errors[0].locations == [{"line": 2, "column": 5}]
        assert json.loads(response.raw_body) == body

    def test_mutation_recorded_as_mutation(self) -> None:
        client = GraphQLClient(
            "http://api.test/graphql",
            transport=graphql_transport([], {"data": {"createUser": {"id": 1}}}),
        )

        with client:
            client.mutate("mutation { createUser { id } }")

        assert client.last_request().operation == "mutation"

    def test_non_json_body(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(502, text="Bad Gateway"))

        response = graphql_query("http://api.test/graphql", "{ ping }", transport=transport)

        assert response.status_code == 502
        assert response.data is None
        assert response.raw_body == "Bad Gateway"

    def test_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(RequestFailedError):
            graphql_query("http://api.test/graphql", "{ ping }", transport=httpx.MockTransport(handler))
