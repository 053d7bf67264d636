"""Tests for the hulaki command line."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from click.testing import CliRunner

from hulaki.cli.commands import cli
from hulaki.errors import ConnectError, RequestFailedError, SendError
from hulaki.http.base import collect_options
from hulaki.http.graphql import GraphQLError, GraphQLResponse
from hulaki.http.grpc import CONNECTION_FAILED, GRPCError, GRPCResponse
from hulaki.http.socketio import SocketIOResponse


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def options_of(mock: MagicMock, skip: int):
    return collect_options(*mock.call_args.args[skip:])


class TestHttpCommands:
    """Tests for hulaki http <method>."""

    def test_get_prints_headers_and_body(self, runner: CliRunner) -> None:
        response = httpx.Response(200, headers={"x-test": "1"}, text="hello")

        with patch("hulaki.cli.commands.http_request", return_value=response) as mock_request:
            result = runner.invoke(
                cli,
                ["http", "get", "http://api.test/users", "--headers", "Accept=text/plain", "-p", "page=2"],
            )

        assert result.exit_code == 0, result.output
        assert "HEADERS" in result.output
        assert "x-test: 1" in result.output
        assert "BODY" in result.output
        assert "hello" in result.output

        assert mock_request.call_args.args[:2] == ("GET", "http://api.test/users")
        assert mock_request.call_args.kwargs["timeout"] == 30.0
        opts = options_of(mock_request, 2)
        assert opts.headers == {"Accept": "text/plain"}
        assert opts.params == {"page": "2"}
        assert opts.body is None

    def test_less_prints_body_only(self, runner: CliRunner) -> None:
        response = httpx.Response(200, headers={"x-test": "1"}, text="hello")

        with patch("hulaki.cli.commands.http_request", return_value=response):
            result = runner.invoke(cli, ["http", "get", "http://api.test/", "--less"])

        assert result.exit_code == 0
        assert "HEADERS" not in result.output
        assert result.output.strip() == "hello"

    def test_key_value_body_sent_as_json(self, runner: CliRunner) -> None:
        response = httpx.Response(201, text="{}")

        with patch("hulaki.cli.commands.http_request", return_value=response) as mock_request:
            result = runner.invoke(
                cli, ["http", "post", "http://api.test/users", "--body", "name=alice,role=admin"]
            )

        assert result.exit_code == 0, result.output
        opts = options_of(mock_request, 2)
        assert json.loads(opts.body) == {"name": "alice", "role": "admin"}
        assert opts.headers["Content-Type"] == "application/json"

    def test_body_from_stdin(self, runner: CliRunner) -> None:
        response = httpx.Response(200, text="ok")

        with patch("hulaki.cli.commands.http_request", return_value=response) as mock_request:
            result = runner.invoke(
                cli, ["http", "put", "http://api.test/doc", "--body", "-"], input="plain text"
            )

        assert result.exit_code == 0, result.output
        opts = options_of(mock_request, 2)
        assert opts.body == "plain text"
        assert "Content-Type" not in opts.headers

    def test_malformed_headers(self, runner: CliRunner) -> None:
        with patch("hulaki.cli.commands.http_request") as mock_request:
            result = runner.invoke(cli, ["http", "get", "http://api.test/", "--headers", "broken"])

        assert result.exit_code == 2
        assert "Malformed headers pair" in result.output
        mock_request.assert_not_called()

    def test_transport_error_exits_1(self, runner: CliRunner) -> None:
        with patch(
            "hulaki.cli.commands.http_request",
            side_effect=RequestFailedError("GET http://api.test/ failed"),
        ):
            result = runner.invoke(cli, ["http", "get", "http://api.test/"])

        assert result.exit_code == 1
        assert "Error: [E102]" in result.output

    def test_verbose_error_shows_suggestions(self, runner: CliRunner) -> None:
        with patch(
            "hulaki.cli.commands.http_request",
            side_effect=RequestFailedError("failed", suggestions=["check the server"]),
        ):
            result = runner.invoke(cli, ["-v", "http", "delete", "http://api.test/"])

        assert result.exit_code == 1
        assert "check the server" in result.output


class TestGraphQLCommand:
    """Tests for hulaki graphql."""

    def test_prints_data(self, runner: CliRunner) -> None:
        response = GraphQLResponse(
            data={"user": {"name": "Alice"}}, headers={"content-type": "application/json"}
        )

        with patch("hulaki.cli.commands.graphql_query", return_value=response) as mock_query:
            result = runner.invoke(
                cli,
                [
                    "graphql",
                    "http://api.test/graphql",
                    "-q",
                    "query($id: ID!) { user(id: $id) { name } }",
                    "--variables",
                    '{"id": "1"}',
                ],
            )

        assert result.exit_code == 0, result.output
        assert "DATA" in result.output
        assert '"name": "Alice"' in result.output
        assert options_of(mock_query, 2).variables == {"id": "1"}

    def test_prints_errors_with_locations(self, runner: CliRunner) -> None:
        response = GraphQLResponse(
            errors=[GraphQLError(message="Cannot query field", locations=[{"line": 1, "column": 3}])]
        )

        with patch("hulaki.cli.commands.graphql_query", return_value=response):
            result = runner.invoke(cli, ["graphql", "http://api.test/graphql", "-q", "{ nope }"])

        assert "ERRORS" in result.output
        assert "Location: Line 1, Column 3" in result.output

    def test_variables_must_be_json_object(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["graphql", "http://api.test/graphql", "-q", "{ a }", "--variables", "[1, 2]"]
        )

        assert result.exit_code == 2

    def test_query_required(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["graphql", "http://api.test/graphql"])

        assert result.exit_code == 2


class TestGrpcCommand:
    """Tests for hulaki grpc."""

    def test_service_and_method_required(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["grpc", "localhost:50051", "--service", "svc.S"])

        assert result.exit_code == 2

    def test_failure_exits_1(self, runner: CliRunner) -> None:
        response = GRPCResponse(error=GRPCError(CONNECTION_FAILED, "failed to connect"))

        with patch("hulaki.cli.commands.grpc_call", return_value=response):
            result = runner.invoke(cli, ["grpc", "localhost:1", "-s", "svc.S", "-m", "M"])

        assert result.exit_code == 1
        assert "CONNECTION_FAILED" in result.output

    def test_reflect(self, runner: CliRunner) -> None:
        response = GRPCResponse(data={"status": "connected", "services": []})

        with patch("hulaki.cli.commands.grpc_reflect", return_value=response) as mock_reflect:
            result = runner.invoke(cli, ["grpc", "localhost:50051", "--reflect"])

        assert result.exit_code == 0, result.output
        assert "GRPC RESPONSE" in result.output
        mock_reflect.assert_called_once()


class TestSocketIOCommand:
    """Tests for hulaki socketio."""

    def test_emit(self, runner: CliRunner) -> None:
        response = SocketIOResponse(event="message", data={"event": "message"}, connected=True)

        with patch(
            "hulaki.cli.commands.socketio_emit", new=AsyncMock(return_value=response)
        ) as mock_emit:
            result = runner.invoke(
                cli, ["socketio", "http://localhost:3000", "--emit", "message", "--data", '{"a": 1}']
            )

        assert result.exit_code == 0, result.output
        assert "SOCKET.IO RESPONSE" in result.output
        assert "Connected: true" in result.output
        assert options_of(mock_emit, 2).body == '{"a": 1}'

    def test_listen_duration(self, runner: CliRunner) -> None:
        response = SocketIOResponse(event="chat", data={"messages": []}, connected=True)

        with patch(
            "hulaki.cli.commands.socketio_listen", new=AsyncMock(return_value=response)
        ) as mock_listen:
            result = runner.invoke(
                cli, ["socketio", "http://localhost:3000", "--listen", "chat", "--duration", "500ms"]
            )

        assert result.exit_code == 0, result.output
        assert mock_listen.call_args.args[:3] == ("http://localhost:3000", "chat", 0.5)

    def test_connect_failure_exits_1(self, runner: CliRunner) -> None:
        response = SocketIOResponse.failure(CONNECTION_FAILED, "refused")

        with patch("hulaki.cli.commands.socketio_connect", new=AsyncMock(return_value=response)):
            result = runner.invoke(cli, ["socketio", "http://localhost:1"])

        assert result.exit_code == 1
        assert "refused" in result.output


class TestWsCommand:
    """Tests for hulaki ws."""

    def test_unreachable_server_exits_1(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["ws", "ws://127.0.0.1:1"])

        assert result.exit_code == 1
        assert "Error: [E001]" in result.output

    def test_malformed_params(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["ws", "ws://localhost:9000", "-p", "nokey"])

        assert result.exit_code == 2

    def test_session_error_reported(self, runner: CliRunner) -> None:
        session = MagicMock(error=SendError("peer reset the stream"))

        with patch(
            "hulaki.cli.commands.run_ws_session", new=AsyncMock(return_value=session)
        ) as mock_run:
            result = runner.invoke(
                cli, ["ws", "http://localhost:9000", "--headers", "X-Token=abc"]
            )

        assert result.exit_code == 0
        assert "Session ended: [E301] peer reset the stream" in result.output
        assert mock_run.call_args.args[:3] == (
            "http://localhost:9000",
            {"X-Token": "abc"},
            {},
        )

    def test_frame_limits_come_from_config(self, runner: CliRunner) -> None:
        with patch(
            "hulaki.cli.commands.DuplexConnection.open",
            new=AsyncMock(side_effect=ConnectError("refused")),
        ) as mock_open:
            result = runner.invoke(
                cli, ["ws", "ws://localhost:9000"], env={"HULAKI_MAX_FRAME_SIZE": "4096"}
            )

        assert result.exit_code == 1
        assert mock_open.call_args.kwargs["max_size"] == 4096

    def test_frames_unlimited_by_default(self, runner: CliRunner) -> None:
        with patch(
            "hulaki.cli.commands.DuplexConnection.open",
            new=AsyncMock(side_effect=ConnectError("refused")),
        ) as mock_open:
            runner.invoke(cli, ["ws", "ws://localhost:9000"], env={"HULAKI_MAX_FRAME_SIZE": None})

        assert mock_open.call_args.kwargs["max_size"] is None
