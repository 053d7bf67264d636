"""CLI commands for hulaki."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, NoReturn

import click

from hulaki.cli.output import create_output
from hulaki.config import HulakiConfig, load_config
from hulaki.errors import ArgumentError, HulakiError
from hulaki.http.base import (
    parse_key_value_pairs,
    with_body,
    with_headers,
    with_namespace,
    with_params,
    with_variables,
)
from hulaki.http.graphql import graphql_query
from hulaki.http.grpc import grpc_call, grpc_reflect
from hulaki.http.rest import HTTP_METHODS, http_request
from hulaki.http.socketio import parse_duration, socketio_connect, socketio_emit, socketio_listen
from hulaki.http.websocket import DuplexConnection
from hulaki.tui.app import WebSocketApp
from hulaki.tui.session import Session

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool, log_file: str | None = None) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        filename=log_file,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _key_values(ctx: click.Context, param: click.Parameter, value: str | None) -> dict[str, str]:
    try:
        return parse_key_value_pairs(value, param.name or "argument")
    except ArgumentError as e:
        raise click.BadParameter(e.message, ctx=ctx, param=param) from e


def _read_stdin_if_dash(value: str | None) -> str | None:
    if value == "-":
        return click.get_text_stream("stdin").read()
    return value


def _json_body(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    """``--body``: ``-`` reads stdin verbatim, ``k=v,...`` becomes a JSON object."""
    if value is None:
        return None
    if value == "-":
        return _read_stdin_if_dash(value)
    ctx.meta["hulaki.json_body"] = True
    return json.dumps(_key_values(ctx, param, value))


def _json_object(ctx: click.Context, param: click.Parameter, value: str | None) -> dict[str, Any]:
    text = _read_stdin_if_dash(value)
    if not text or not text.strip():
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"invalid JSON: {e}", ctx=ctx, param=param) from e
    if not isinstance(data, dict):
        raise click.BadParameter("must be a JSON object", ctx=ctx, param=param)
    return data


def _raw_data(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    return _read_stdin_if_dash(value)


def request_options(func: Any) -> Any:
    """Attach the shared --headers and --params options."""
    func = click.option(
        "--params",
        "-p",
        callback=_key_values,
        help="Query parameters as key=value pairs separated by commas",
    )(func)
    func = click.option(
        "--headers",
        callback=_key_values,
        help="Request headers as key=value pairs separated by commas",
    )(func)
    return func


def less_option(func: Any) -> Any:
    return click.option(
        "--less", "-l", is_flag=True, help="Show only the response payload"
    )(func)


def _fail(ctx: click.Context, error: HulakiError) -> NoReturn:
    if ctx.obj.get("verbose"):
        click.echo(error.format_verbose(), err=True)
    else:
        click.echo(f"Error: {error}", err=True)
    sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--config", "-c", type=click.Path(exists=True), help="Path to config file")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: str | None) -> None:
    """hulaki - HTTP, GraphQL, gRPC, WebSocket and Socket.IO from the terminal."""
    ctx.ensure_object(dict)

    config_obj = load_config(config)
    if verbose:
        config_obj.verbose = True

    ctx.obj["config"] = config_obj
    ctx.obj["verbose"] = config_obj.verbose

    setup_logging(config_obj.verbose, config_obj.log_file)


@cli.group()
def http() -> None:
    """Make HTTP requests (get, post, put, patch, delete, head, options)."""


def _make_http_command(method: str) -> click.Command:
    @click.command(name=method.lower(), help=f"Send an HTTP {method} request to URL.")
    @click.argument("url")
    @request_options
    @click.option(
        "--body",
        callback=_json_body,
        help="Body as key=value pairs (sent as JSON) or '-' to read stdin",
    )
    @less_option
    @click.pass_context
    def command(
        ctx: click.Context,
        url: str,
        headers: dict[str, str],
        params: dict[str, str],
        body: str | None,
        less: bool,
    ) -> None:
        config: HulakiConfig = ctx.obj["config"]
        if ctx.meta.get("hulaki.json_body") and not any(
            key.lower() == "content-type" for key in headers
        ):
            headers = {**headers, "Content-Type": "application/json"}

        try:
            response = http_request(
                method,
                url,
                with_body(body),
                with_params(params),
                with_headers(headers),
                timeout=config.timeout,
            )
        except HulakiError as e:
            _fail(ctx, e)

        create_output().http_response(response, less=less)

    return command


for _method in HTTP_METHODS:
    http.add_command(_make_http_command(_method))


@cli.command()
@click.argument("url")
@click.option("--query", "-q", required=True, help="GraphQL query or mutation string")
@click.option(
    "--variables", callback=_json_object, help="Variables as a JSON object or '-' to read stdin"
)
@request_options
@less_option
@click.option("--raw", is_flag=True, help="Show the raw response body")
@click.pass_context
def graphql(
    ctx: click.Context,
    url: str,
    query: str,
    variables: dict[str, Any],
    headers: dict[str, str],
    params: dict[str, str],
    less: bool,
    raw: bool,
) -> None:
    """Send a GraphQL query or mutation to URL."""
    config: HulakiConfig = ctx.obj["config"]
    try:
        response = graphql_query(
            url,
            query,
            with_variables(variables),
            with_headers(headers),
            with_params(params),
            timeout=config.timeout,
        )
    except HulakiError as e:
        _fail(ctx, e)

    create_output().graphql_response(response, less=less, raw=raw)


@cli.command()
@click.argument("address")
@click.option("--service", "-s", help="Fully qualified service name")
@click.option("--method", "-m", help="Method name")
@click.option("--data", callback=_raw_data, help="Request as JSON or '-' to read stdin")
@request_options
@less_option
@click.option("--reflect", is_flag=True, help="Probe the server for reflection")
@click.pass_context
def grpc(
    ctx: click.Context,
    address: str,
    service: str | None,
    method: str | None,
    data: str | None,
    headers: dict[str, str],
    params: dict[str, str],
    less: bool,
    reflect: bool,
) -> None:
    """Probe a gRPC server at ADDRESS."""
    config: HulakiConfig = ctx.obj["config"]
    if params:
        logger.debug("gRPC ignores query parameters")

    try:
        if reflect:
            response = grpc_reflect(
                address, with_headers(headers), connect_timeout=config.grpc_connect_timeout
            )
        else:
            if not service or not method:
                raise click.UsageError("--service and --method are required unless --reflect")
            response = grpc_call(
                address,
                service,
                method,
                with_body(data),
                with_headers(headers),
                connect_timeout=config.grpc_connect_timeout,
            )
    except HulakiError as e:
        _fail(ctx, e)

    create_output().grpc_response(response, less=less)
    if response.error is not None:
        sys.exit(1)


@cli.command()
@click.argument("url")
@click.option("--emit", help="Event name to emit")
@click.option("--listen", help="Event name to listen for")
@click.option("--duration", default=None, help="How long to listen, e.g. 500ms, 10s, 1m")
@click.option("--data", callback=_raw_data, help="Event data as JSON or '-' to read stdin")
@click.option("--namespace", help="Socket.IO namespace to connect to")
@request_options
@less_option
@click.pass_context
def socketio(
    ctx: click.Context,
    url: str,
    emit: str | None,
    listen: str | None,
    duration: str | None,
    data: str | None,
    namespace: str | None,
    headers: dict[str, str],
    params: dict[str, str],
    less: bool,
) -> None:
    """Connect to a Socket.IO server, emit an event or listen for one."""
    config: HulakiConfig = ctx.obj["config"]
    options = (with_headers(headers), with_params(params), with_namespace(namespace))
    kwargs = {"open_timeout": config.open_timeout}

    if emit:
        coro = socketio_emit(url, emit, with_body(data), *options, **kwargs)
    elif listen:
        seconds = parse_duration(duration or config.socketio_listen_duration)
        coro = socketio_listen(url, listen, seconds, *options, **kwargs)
    else:
        coro = socketio_connect(url, *options, **kwargs)

    response = asyncio.run(coro)
    create_output().socketio_response(response, less=less)
    if response.error is not None:
        sys.exit(1)


async def run_ws_session(
    url: str,
    headers: dict[str, str],
    params: dict[str, str],
    config: HulakiConfig,
) -> Session:
    """Open the connection, then run the terminal UI until the session ends.

    Raises:
        ConnectError: If the connection cannot be opened. No UI is started.
    """
    connection = await DuplexConnection.open(
        url,
        headers=headers,
        params=params,
        open_timeout=config.open_timeout,
        send_timeout=config.send_timeout,
        max_size=config.max_frame_size,
    )
    session = Session(
        connection,
        queue_size=config.event_queue_size,
        log_limit=config.log_limit,
        char_limit=config.char_limit,
    )
    try:
        await WebSocketApp(session).run_async()
    finally:
        await connection.close()
    return session


@cli.command()
@click.argument("url")
@request_options
@click.pass_context
def ws(ctx: click.Context, url: str, headers: dict[str, str], params: dict[str, str]) -> None:
    """Open an interactive WebSocket session to URL."""
    config: HulakiConfig = ctx.obj["config"]

    # Console logging would draw over the terminal UI.
    if not config.log_file:
        logging.disable(logging.CRITICAL)
    try:
        session = asyncio.run(run_ws_session(url, headers, params, config))
    except HulakiError as e:
        _fail(ctx, e)
    finally:
        logging.disable(logging.NOTSET)

    if session.error is not None:
        click.echo(f"Session ended: {session.error}", err=True)
