"""gRPC connectivity probe for hulaki.

hulaki does not compile protobuf schemas. A call dials the server
insecurely, waits for the channel to become ready and echoes the call it
would have made. Failures are reported in the response rather than raised,
so the CLI can print them like any other result.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from hulaki.errors import ConnectError, ConnectTimeoutError, ErrorContext
from hulaki.http.base import BaseClient, Option, _validate_positive_number, collect_options

if TYPE_CHECKING:
    import grpc

logger = logging.getLogger(__name__)

CONNECTION_ERROR = "CONNECTION_ERROR"
CONNECTION_FAILED = "CONNECTION_FAILED"
INVALID_REQUEST = "INVALID_REQUEST"


@dataclass
class GRPCError:
    code: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


@dataclass
class GRPCResponse:
    """Result of a gRPC probe.

    Attributes:
        data: Echo of the call, or reflection summary.
        metadata: Outgoing metadata attached to the call.
        error: Set when the probe failed.
        duration_ms: Time spent dialing and waiting for readiness.
    """

    data: dict[str, Any] | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    error: GRPCError | None = None
    duration_ms: float = 0.0

    @property
    def successful(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"data": self.data}
        if self.metadata:
            result["metadata"] = self.metadata
        if self.error is not None:
            result["error"] = self.error.to_dict()
        return result


class GRPCClient(BaseClient[GRPCResponse]):
    """Insecure gRPC channel with a bounded readiness check.

    Attributes:
        connect_timeout: Seconds to wait for the channel to become ready.
        metadata: Metadata sent with calls.
    """

    def __init__(
        self,
        address: str,
        connect_timeout: float = 1.0,
        metadata: dict[str, str] | None = None,
    ) -> None:
        super().__init__(address, timeout=connect_timeout, default_headers=metadata)
        _validate_positive_number(connect_timeout, "connect_timeout")
        self.connect_timeout = connect_timeout
        self._channel: grpc.Channel | None = None

    @property
    def address(self) -> str:
        return self.endpoint

    @property
    def metadata(self) -> dict[str, str]:
        return self.default_headers

    def connect(self) -> None:
        """Create the insecure channel. Does not wait for readiness."""
        import grpc

        if self._channel is not None:
            return
        try:
            self._channel = grpc.insecure_channel(self.endpoint)
        except (ValueError, TypeError, RuntimeError) as e:
            raise ConnectError(
                message=f"Failed to create gRPC channel: {e}",
                context=ErrorContext(target=self.endpoint, operation="dial"),
                cause=e,
            ) from e
        self._connected = True
        logger.debug(f"gRPC channel created for {self.endpoint}")

    def disconnect(self) -> None:
        if self._channel is not None:
            self._channel.close()
            self._channel = None
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected and self._channel is not None

    def test_connection(self) -> None:
        """Wait until the channel is ready.

        Raises:
            ConnectTimeoutError: If the channel is not ready within connect_timeout.
        """
        import grpc

        self._ensure_connected()
        assert self._channel is not None
        try:
            grpc.channel_ready_future(self._channel).result(timeout=self.connect_timeout)
        except grpc.FutureTimeoutError as e:
            raise ConnectTimeoutError(
                message=f"gRPC server not ready after {self.connect_timeout}s",
                context=ErrorContext(target=self.endpoint, operation="connect"),
                cause=e,
            ) from e

    def _probe(self, operation: str) -> tuple[GRPCError | None, float]:
        start_time = time.perf_counter()
        error: GRPCError | None = None
        try:
            self.connect()
        except ConnectError as e:
            error = GRPCError(CONNECTION_ERROR, e.message)
        else:
            try:
                self.test_connection()
            except ConnectError as e:
                error = GRPCError(
                    CONNECTION_FAILED, f"failed to connect to gRPC server: {e.message}"
                )
        duration_ms = (time.perf_counter() - start_time) * 1000
        self._record_request(
            operation, None, None, duration_ms, error=error.message if error else None
        )
        return error, duration_ms

    def call(self, service: str, method: str, *options: Option) -> GRPCResponse:
        """Probe the server and echo the call.

        Args:
            service: Fully qualified service name.
            method: Method name.
            *options: with_body (JSON object) and with_headers (metadata).
        """
        opts = collect_options(*options)
        metadata = {**self.metadata, **opts.headers}

        error, duration_ms = self._probe(f"{service}/{method}")
        if error is not None:
            return GRPCResponse(metadata=metadata, error=error, duration_ms=duration_ms)

        request_data: Any = None
        if opts.body and opts.body.strip():
            try:
                request_data = json.loads(opts.body)
            except json.JSONDecodeError as e:
                return GRPCResponse(
                    metadata=metadata,
                    error=GRPCError(INVALID_REQUEST, f"failed to decode request body: {e}"),
                    duration_ms=duration_ms,
                )

        return GRPCResponse(
            data={
                "service": service,
                "method": method,
                "request": request_data,
                "status": "connected",
                "connection": "established",
                "address": self.address,
            },
            metadata=metadata,
            duration_ms=duration_ms,
        )

    def reflect(self, *options: Option) -> GRPCResponse:
        """Report whether the server is reachable for reflection."""
        opts = collect_options(*options)
        metadata = {**self.metadata, **opts.headers}

        error, duration_ms = self._probe("reflect")
        if error is not None:
            return GRPCResponse(metadata=metadata, error=error, duration_ms=duration_ms)

        return GRPCResponse(
            data={
                "address": self.address,
                "status": "connected",
                "reflection": "available",
                "services": [],
            },
            metadata=metadata,
            duration_ms=duration_ms,
        )


def grpc_call(
    address: str, service: str, method: str, *options: Option, **kwargs: Any
) -> GRPCResponse:
    client = GRPCClient(address, **kwargs)
    try:
        return client.call(service, method, *options)
    finally:
        client.disconnect()


def grpc_reflect(address: str, *options: Option, **kwargs: Any) -> GRPCResponse:
    client = GRPCClient(address, **kwargs)
    try:
        return client.reflect(*options)
    finally:
        client.disconnect()
