# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Protocol engine, client proxy and connection."""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from types import TracebackType
from typing import Any, Self, cast, overload

from jrpc.rpc._codec import Codec, get_codec
from jrpc.rpc._common import _logger
from jrpc.rpc._transport import AsyncRpcTransport, RpcTransport
from jrpc.rpc._types import RpcMethodInfo, _format_signature, method_table, rpc_methods
from jrpc.rpc._wire import _decode_value, _encode_request, _extract_field, _read_response

# ---------------------------------------------------------------------------
# RpcClient: low-level call interface
# ---------------------------------------------------------------------------


def _call_extra(method: str, request_id: int) -> dict[str, object]:
    """Structured log fields for one call (rendered under ``"rpc"`` by JrpcJsonFormatter)."""
    return {"rpc_method": method, "rpc_id": request_id}


class RpcClient:
    """Low-level JSON-RPC client over one transport and one codec.

    Every call is independent: the client keeps no state between calls other
    than the request-id counter, which hands out a fresh id per call and is
    safe to share between threads.  Whether concurrent calls are possible
    depends on the transport.

    Example::

        client = RpcClient(HttpTransport("http://localhost:8080/rpc"))
        total = client.call("add", {"a": 1, "b": 2}, int)

    """

    __slots__ = ("_codec", "_id_lock", "_ids", "_transport")

    def __init__(self, transport: RpcTransport, codec: str | Codec = "json") -> None:
        """Initialize with a transport and a codec (instance or ``"json"``/``"msgpack"``)."""
        self._transport = transport
        self._codec = get_codec(codec)
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()

    @property
    def transport(self) -> RpcTransport:
        """The transport requests are sent through."""
        return self._transport

    @property
    def codec(self) -> Codec:
        """The codec used for request and response envelopes."""
        return self._codec

    def _next_id(self) -> int:
        with self._id_lock:
            return next(self._ids)

    @overload
    def call[R](self, method: str, params: object, result_type: type[R]) -> R: ...

    @overload
    def call(self, method: str, params: object = None, result_type: Any = Any) -> Any: ...

    def call(self, method: str, params: object = None, result_type: Any = Any) -> Any:
        """Invoke *method* and return its result validated into *result_type*.

        Args:
            method: Method name sent in the request envelope.
            params: Any serializable value; a ``dict`` for named params, a
                ``list`` for positional params, ``None`` to omit ``params``.
            result_type: Type the result is validated into (``Any`` returns
                the decoded value unchanged).

        Raises:
            TransportError: The round trip did not complete.
            ProtocolError: The response envelope is malformed or answers
                another request.
            RemoteError: The server returned an error object.
            DecodeError: The result does not match *result_type*.
            TypeError: *params* cannot be serialized.

        """
        request_id = self._next_id()
        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug("Call start: method=%s, id=%d", method, request_id, extra=_call_extra(method, request_id))
        payload = _encode_request(self._codec, method, params, request_id)
        response = self._transport.send(payload, self._codec.content_type)
        raw = _read_response(self._codec, response, request_id)
        value = _decode_value(raw, result_type)
        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug("Call done: method=%s, id=%d", method, request_id, extra=_call_extra(method, request_id))
        return value

    async def call_async(self, method: str, params: object = None, result_type: Any = Any) -> Any:
        """Invoke *method* without blocking the event loop.

        Same pipeline and errors as :meth:`call`; requires a transport that
        implements ``send_async``.

        Raises:
            TypeError: If the transport has no ``send_async``.

        """
        if not isinstance(self._transport, AsyncRpcTransport):
            raise TypeError(f"{type(self._transport).__name__} does not support async calls")
        request_id = self._next_id()
        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug(
                "Async call start: method=%s, id=%d", method, request_id, extra=_call_extra(method, request_id)
            )
        payload = _encode_request(self._codec, method, params, request_id)
        response = await self._transport.send_async(payload, self._codec.content_type)
        raw = _read_response(self._codec, response, request_id)
        value = _decode_value(raw, result_type)
        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug(
                "Async call done: method=%s, id=%d", method, request_id, extra=_call_extra(method, request_id)
            )
        return value

    def close(self) -> None:
        """Close the transport."""
        self._transport.close()

    def __enter__(self) -> Self:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the transport."""
        self.close()

    async def aclose(self) -> None:
        """Close the transport, including resources bound to the event loop."""
        if isinstance(self._transport, AsyncRpcTransport):
            await self._transport.aclose()
        self._transport.close()

    async def __aenter__(self) -> Self:
        """Enter async context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the transport from the event loop."""
        await self.aclose()

    def __repr__(self) -> str:
        return f"RpcClient(transport={type(self._transport).__name__}, codec={self._codec.name!r})"


# ---------------------------------------------------------------------------
# _RpcProxy: generated typed client
# ---------------------------------------------------------------------------


class _RpcProxy:
    """Dynamic proxy that turns method descriptors into calls on an ``RpcClient``.

    Methods are created lazily on first attribute access and cached on the
    instance.  The proxy performs no network activity until a method is
    invoked.
    """

    def __init__(self, methods: Mapping[str, RpcMethodInfo], client: RpcClient, *, name: str = "RpcClient") -> None:
        self._methods = methods
        self._client = client
        self._name = name

    def __getattr__(self, name: str) -> Any:
        # __getattr__ only runs for missing attributes; guard the
        # instance fields so a half-initialized proxy cannot recurse.
        if name.startswith("_"):
            raise AttributeError(name)
        info = self._methods.get(name)
        if info is None:
            available = "; ".join(_format_signature(m) for _, m in sorted(self._methods.items())) or "none"
            raise AttributeError(f"{self._name} has no RPC method '{name}' (available: {available})")
        caller = self._make_caller(info)
        self.__dict__[name] = caller
        return caller

    def __dir__(self) -> list[str]:
        return sorted({*super().__dir__(), *self._methods})

    def __repr__(self) -> str:
        return f"<{self._name} proxy over {self._client!r}>"

    def _make_caller(self, info: RpcMethodInfo) -> Callable[..., object]:
        client = self._client

        def caller(*args: object, **kwargs: object) -> object:
            params = info.build_params(args, kwargs)
            if info.result_type is None:
                # -> None methods discard whatever the server returns
                client.call(info.wire_name, params)
                return None
            if info.result_field is None:
                return client.call(info.wire_name, params, info.result_type)
            raw = client.call(info.wire_name, params)
            return _decode_value(_extract_field(raw, info.result_field), info.result_type)

        caller.__name__ = info.name
        caller.__qualname__ = f"{self._name}.{info.name}"
        caller.__doc__ = info.doc
        caller.__signature__ = info.signature  # type: ignore[attr-defined]
        return caller


def make_client(methods: Iterable[RpcMethodInfo], client: RpcClient, *, name: str = "RpcClient") -> Any:
    """Build a client object from an explicit table of method descriptors.

    Example::

        api = make_client(
            [
                method_info("login", ["user", "password"], result_type=str, result_field="token"),
                method_info("version", result_type=str, wire_name="sys.version"),
            ],
            http_client("http://localhost:8080/rpc"),
        )
        token = api.login("alice", "secret")

    Raises:
        ValueError: If two descriptors share a name.

    """
    return _RpcProxy(method_table(methods), client, name=name)


# ---------------------------------------------------------------------------
# RpcConnection: typed context manager
# ---------------------------------------------------------------------------


class RpcConnection[P]:
    """Context manager that provides a typed RPC proxy over a client.

    The type parameter ``P`` is the Protocol class, enabling IDE
    autocompletion for all methods defined on the protocol::

        with RpcConnection(MyProtocol, client) as svc:
            result = svc.add(a=1, b=2)   # IDE sees MyProtocol methods

    The method table is built (and validated) at construction; a malformed
    Protocol raises there rather than on first call.
    """

    __slots__ = ("_client", "_methods", "_protocol")

    def __init__(self, protocol: type[P], client: RpcClient) -> None:
        """Initialize with a protocol type and client."""
        self._protocol = protocol
        self._client = client
        self._methods = rpc_methods(protocol)

    @property
    def proxy(self) -> P:
        """A typed proxy; usable without entering the context."""
        return cast(P, _RpcProxy(self._methods, self._client, name=self._protocol.__name__))

    def __enter__(self) -> P:
        """Enter the context and return a typed proxy."""
        _logger.debug("RpcConnection open: protocol=%s", self._protocol.__name__)
        return self.proxy

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the client's transport."""
        _logger.debug("RpcConnection close: protocol=%s", self._protocol.__name__)
        self._client.close()


def connect[P](protocol: type[P], transport: RpcTransport, codec: str | Codec = "json") -> RpcConnection[P]:
    """Create a typed connection over *transport*.

    Example::

        with connect(Calculator, LoopbackTransport(handler)) as calc:
            calc.add(a=1, b=2)

    """
    return RpcConnection(protocol, RpcClient(transport, codec))
