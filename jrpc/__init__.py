# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""JSON-RPC 2.0 client with JSON and MessagePack codecs and typed generated clients."""

from jrpc.http import HttpTransport, http_client, http_connect
from jrpc.rpc import (
    DEFAULT_TIMEOUT,
    JSONRPC_VERSION,
    AsyncRpcTransport,
    Codec,
    DecodeError,
    ErrorCode,
    JsonCodec,
    LoopbackTransport,
    MsgPackCodec,
    ParamsStyle,
    ProtocolError,
    RemoteError,
    RpcClient,
    RpcConnection,
    RpcError,
    RpcMethodInfo,
    RpcTransport,
    TransportError,
    connect,
    get_codec,
    make_client,
    method_info,
    rpc_method,
    rpc_methods,
)

__all__ = [
    # Core
    "RpcClient",
    "RpcConnection",
    "RpcTransport",
    "AsyncRpcTransport",
    "RpcMethodInfo",
    # Errors
    "RpcError",
    "TransportError",
    "ProtocolError",
    "RemoteError",
    "DecodeError",
    "ErrorCode",
    # Client generation
    "ParamsStyle",
    "connect",
    "make_client",
    "method_info",
    "rpc_method",
    "rpc_methods",
    # Codecs
    "Codec",
    "JsonCodec",
    "MsgPackCodec",
    "get_codec",
    # Transports
    "HttpTransport",
    "LoopbackTransport",
    "http_client",
    "http_connect",
    # Constants
    "DEFAULT_TIMEOUT",
    "JSONRPC_VERSION",
]
