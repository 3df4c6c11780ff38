# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Transport-agnostic JSON-RPC 2.0 client.

Calls are made either through the low-level :class:`RpcClient` or through a
typed proxy generated from a Protocol class (or an explicit table of method
descriptors).

Wire Protocol
-------------
Request::

    {"jsonrpc": "2.0", "method": "add", "params": {"a": 1, "b": 2}, "id": 1}

Response (exactly one of ``result`` / ``error``)::

    {"jsonrpc": "2.0", "result": 3, "id": 1}
    {"jsonrpc": "2.0", "error": {"code": -32601, "message": "Method not found"}, "id": 1}

The same envelopes can be carried as MessagePack (``codec="msgpack"``);
the transport sends ``Content-Type: application/msgpack`` in that case.

Every call carries a fresh integer id and the response must echo it.
Batches and notifications are not supported.

Errors
------
- ``TransportError``: the round trip did not complete
- ``ProtocolError``: malformed, version- or id-mismatched response envelope
- ``RemoteError``: the server returned an error object (``code``, ``message``, ``data``)
- ``DecodeError``: the result does not match the requested type, or a
  requested ``result_field`` is missing

All four derive from ``RpcError``.  Nothing is retried.

Generated Clients
-----------------
Methods are declared on a ``Protocol``; the return annotation is the type
the result is validated into::

    class Auth(Protocol):
        @rpc_method("auth.login", result_field="token")
        def login(self, user: str, password: str) -> str: ...

    with http_connect(Auth, "http://localhost:8080/rpc") as auth:
        token = auth.login("alice", "secret")

Arguments are sent as a named-params object unless the method is declared
with ``params_style=ParamsStyle.POSITIONAL``.

"""

from __future__ import annotations

from jrpc.rpc._client import (
    RpcClient,
    RpcConnection,
    _RpcProxy,
    connect,
    make_client,
)
from jrpc.rpc._codec import (
    MIME_JSON,
    MIME_MSGPACK,
    Codec,
    JsonCodec,
    MsgPackCodec,
    get_codec,
)
from jrpc.rpc._common import (
    DEFAULT_TIMEOUT,
    JSONRPC_VERSION,
    DecodeError,
    ErrorCode,
    ParamsStyle,
    ProtocolError,
    RemoteError,
    RpcError,
    TransportError,
    _logger,
)
from jrpc.rpc._transport import (
    AsyncRpcTransport,
    LoopbackHandler,
    LoopbackTransport,
    RpcTransport,
)
from jrpc.rpc._types import (
    RpcMethodInfo,
    _format_signature,
    method_info,
    method_table,
    rpc_method,
    rpc_methods,
)
from jrpc.rpc._wire import (
    _build_request,
    _decode_value,
    _encode_request,
    _extract_field,
    _read_response,
    _validate_response,
)

__all__ = [
    # Public API
    "AsyncRpcTransport",
    "Codec",
    "DEFAULT_TIMEOUT",
    "DecodeError",
    "ErrorCode",
    "JSONRPC_VERSION",
    "JsonCodec",
    "LoopbackHandler",
    "LoopbackTransport",
    "MIME_JSON",
    "MIME_MSGPACK",
    "MsgPackCodec",
    "ParamsStyle",
    "ProtocolError",
    "RemoteError",
    "RpcClient",
    "RpcConnection",
    "RpcError",
    "RpcMethodInfo",
    "RpcTransport",
    "TransportError",
    "connect",
    "get_codec",
    "make_client",
    "method_info",
    "method_table",
    "rpc_method",
    "rpc_methods",
    # Internal (used by jrpc.http and tests)
    "_RpcProxy",
    "_build_request",
    "_decode_value",
    "_encode_request",
    "_extract_field",
    "_format_signature",
    "_logger",
    "_read_response",
    "_validate_response",
]
