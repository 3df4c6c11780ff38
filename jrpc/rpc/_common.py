"""Constants and errors for the JSON-RPC client."""

from __future__ import annotations

import logging
from enum import Enum, IntEnum
from typing import Final

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

JSONRPC_VERSION: Final = "2.0"
DEFAULT_TIMEOUT: Final = 5.0
"""Default round-trip timeout in seconds for HTTP transports."""

_logger = logging.getLogger("jrpc.rpc")


class ParamsStyle(Enum):
    """How a generated method places its arguments in the ``params`` member."""

    NAMED = "named"
    POSITIONAL = "positional"


class ErrorCode(IntEnum):
    """Error codes reserved by the JSON-RPC 2.0 specification."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class RpcError(Exception):
    """Base class for every failure of an RPC call.

    Subclasses tell apart a call that never completed a round trip
    (:class:`TransportError`), a broken or incompatible peer
    (:class:`ProtocolError`), a call the server rejected
    (:class:`RemoteError`) and a result of an unexpected shape
    (:class:`DecodeError`).
    """


class TransportError(RpcError):
    """Raised when the request or response could not be moved over the wire.

    Attributes:
        status_code: HTTP status for non-2xx responses, ``None`` for
            connection failures and timeouts.
        body: Preview of the response body for non-2xx responses.

    """

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        """Initialize with a description and optional HTTP details."""
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class ProtocolError(RpcError):
    """Raised when the response envelope is malformed or does not belong to the request."""


class RemoteError(RpcError):
    """Raised when the server answers with a JSON-RPC error object.

    Attributes:
        code: The error code sent by the server.
        message: The error message sent by the server.
        data: The optional ``data`` member, verbatim (``None`` if absent).

    """

    def __init__(self, code: int, message: str, data: object = None) -> None:
        """Initialize with the members of the remote error object."""
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"{code} {message}")

    @property
    def error_code(self) -> ErrorCode | None:
        """The reserved :class:`ErrorCode` for ``code``, or ``None`` for application codes."""
        try:
            return ErrorCode(self.code)
        except ValueError:
            return None


class DecodeError(RpcError):
    """Raised when a payload or result does not have the expected shape."""
