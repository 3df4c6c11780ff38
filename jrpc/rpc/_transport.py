"""Transport protocol and in-process implementation."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from jrpc.rpc._common import TransportError
from jrpc.rpc._debug import fmt_payload, wire_request_logger

# ---------------------------------------------------------------------------
# RpcTransport protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class RpcTransport(Protocol):
    """Request/response byte transport bound to one endpoint.

    Implementations apply their configured timeout to the whole round trip
    and raise :class:`~jrpc.rpc.TransportError` for every failure to move
    bytes (connection refused, timeout, I/O error, non-success status).
    The response body is returned untouched: JSON-RPC error objects are
    never a transport concern.
    """

    def send(self, payload: bytes, content_type: str) -> bytes:
        """Send an encoded request and return the encoded response."""
        ...

    def close(self) -> None:
        """Release the transport's resources."""
        ...


@runtime_checkable
class AsyncRpcTransport(Protocol):
    """Transport that can also perform the round trip without blocking."""

    async def send_async(self, payload: bytes, content_type: str) -> bytes:
        """Send an encoded request and return the encoded response."""
        ...

    async def aclose(self) -> None:
        """Release resources bound to the event loop."""
        ...


# ---------------------------------------------------------------------------
# LoopbackTransport
# ---------------------------------------------------------------------------

LoopbackHandler = Callable[[bytes, str], bytes]
"""Callable receiving ``(payload, content_type)`` and returning the response payload."""


class LoopbackTransport:
    """Transport that hands request bytes to an in-process callable.

    Exceptions raised by the handler other than ``TransportError`` are
    wrapped into ``TransportError``, mirroring a failed round trip.
    """

    __slots__ = ("_closed", "_handler")

    def __init__(self, handler: LoopbackHandler) -> None:
        """Initialize with the callable that produces responses."""
        self._handler = handler
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether :meth:`close` has been called."""
        return self._closed

    def send(self, payload: bytes, content_type: str) -> bytes:
        """Pass *payload* to the handler and return its response."""
        if self._closed:
            raise TransportError("Transport is closed")
        if wire_request_logger.isEnabledFor(logging.DEBUG):
            wire_request_logger.debug("Loopback send: content_type=%s, payload=%s", content_type, fmt_payload(payload))
        try:
            return self._handler(payload, content_type)
        except TransportError:
            raise
        except Exception as exc:
            raise TransportError(f"Loopback handler failed: {exc}") from exc

    def close(self) -> None:
        """Mark the transport closed."""
        self._closed = True
