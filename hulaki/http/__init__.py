"""hulaki protocol clients.

- Options: with_headers, with_params, with_body, ... shared by every client
- REST: HttpClient and the http_* one-shot helpers
- GraphQL: GraphQLClient
- gRPC: GRPCClient connectivity probe
- Socket.IO: SocketIOClient connect/emit/listen probe
- WebSocket: DuplexConnection for the interactive session

Example:
    >>> from hulaki.http import http_get, with_params
    >>> response = http_get("https://api.example.com/users", with_params({"page": "2"}))
"""

# Base client classes and option helpers
from hulaki.http.base import (
    BaseAsyncClient,
    BaseClient,
    ClientRecord,
    Option,
    RequestOptions,
    collect_options,
    parse_key_value_pairs,
    set_params,
    with_body,
    with_headers,
    with_namespace,
    with_params,
    with_variables,
)

# GraphQL Client
from hulaki.http.graphql import GraphQLClient, GraphQLError, GraphQLResponse, graphql_query

# gRPC probe
from hulaki.http.grpc import GRPCClient, GRPCError, GRPCResponse, grpc_call, grpc_reflect

# REST HTTP Client
from hulaki.http.rest import (
    HTTP_METHODS,
    HttpClient,
    http_delete,
    http_get,
    http_head,
    http_options,
    http_patch,
    http_post,
    http_put,
    http_request,
)

# Socket.IO probe
from hulaki.http.socketio import (
    SocketIOClient,
    SocketIOError,
    SocketIOResponse,
    socketio_connect,
    socketio_emit,
    socketio_listen,
)

# WebSocket duplex connection
from hulaki.http.websocket import ConnectionState, DuplexConnection

__all__ = [
    # Base
    "BaseAsyncClient",
    "BaseClient",
    "ClientRecord",
    "Option",
    "RequestOptions",
    "collect_options",
    "parse_key_value_pairs",
    "set_params",
    "with_body",
    "with_headers",
    "with_namespace",
    "with_params",
    "with_variables",
    # REST
    "HTTP_METHODS",
    "HttpClient",
    "http_delete",
    "http_get",
    "http_head",
    "http_options",
    "http_patch",
    "http_post",
    "http_put",
    "http_request",
    # GraphQL
    "GraphQLClient",
    "GraphQLError",
    "GraphQLResponse",
    "graphql_query",
    # gRPC
    "GRPCClient",
    "GRPCError",
    "GRPCResponse",
    "grpc_call",
    "grpc_reflect",
    # Socket.IO
    "SocketIOClient",
    "SocketIOError",
    "SocketIOResponse",
    "socketio_connect",
    "socketio_emit",
    "socketio_listen",
    # WebSocket
    "ConnectionState",
    "DuplexConnection",
]
