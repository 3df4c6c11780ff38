# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""In-process JSON-RPC server for testing HTTP clients.

Provides ``make_wsgi_app``, a small Falcon WSGI application that dispatches
JSON-RPC requests to the methods of a plain Python object, and
``make_sync_client``, which wires it into an ``httpx.Client`` through
``httpx.WSGITransport`` so no real HTTP server is needed.

Dispatch rules:

- The wire method name maps to an attribute of the handler object, with
  ``.`` replaced by ``_`` (``"auth.login"`` → ``handler.auth_login``).
- Named params become keyword arguments; positional params become
  positional arguments; absent params call the method with no arguments.
- A handler raising :class:`~jrpc.rpc.RemoteError` produces an error
  object with that code, message and data; any other exception produces
  ``INTERNAL_ERROR``.

The request codec is chosen from ``Content-Type`` and the response uses the
same codec.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping

import falcon
import httpx

from jrpc.rpc import JSONRPC_VERSION, Codec, DecodeError, ErrorCode, JsonCodec, MsgPackCodec, RemoteError

_logger = logging.getLogger("jrpc.http.testing")

TEST_BASE_URL = "http://testserver"

_CODECS_BY_TYPE: dict[str, Codec] = {codec.content_type: codec for codec in (JsonCodec(), MsgPackCodec())}


def _error(request_id: object, code: int, message: str, data: object = None) -> dict[str, object]:
    error: dict[str, object] = {"code": int(code), "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "error": error, "id": request_id}


class _JsonRpcResource:
    """Falcon resource answering ``POST {path}`` with JSON-RPC envelopes."""

    def __init__(self, handler: object) -> None:
        self._handler = handler

    def on_post(self, req: falcon.Request, resp: falcon.Response) -> None:
        """Decode the request, dispatch it, and encode the response envelope."""
        content_type = (req.content_type or "").split(";", 1)[0].strip()
        codec = _CODECS_BY_TYPE.get(content_type)
        if codec is None:
            raise falcon.HTTPUnsupportedMediaType(description=f"Unsupported Content-Type {content_type!r}")
        body = req.bounded_stream.read()
        try:
            request = codec.decode(body)
        except DecodeError as exc:
            envelope = _error(None, ErrorCode.PARSE_ERROR, "Parse error", str(exc))
        else:
            envelope = self._dispatch(request)
        resp.content_type = codec.content_type
        resp.data = codec.encode(envelope)
        resp.status = falcon.HTTP_200

    def _dispatch(self, request: object) -> dict[str, object]:
        if not isinstance(request, Mapping):
            return _error(None, ErrorCode.INVALID_REQUEST, "Invalid Request")
        request_id = request.get("id")
        method = request.get("method")
        if request.get("jsonrpc") != JSONRPC_VERSION or not isinstance(method, str) or "id" not in request:
            return _error(request_id, ErrorCode.INVALID_REQUEST, "Invalid Request")
        fn = getattr(self._handler, method.replace(".", "_"), None)
        if method.startswith("_") or not callable(fn):
            return _error(request_id, ErrorCode.METHOD_NOT_FOUND, "Method not found", method)

        params = request.get("params")
        args: tuple[object, ...] = ()
        kwargs: dict[str, object] = {}
        if isinstance(params, Mapping):
            kwargs = dict(params)
        elif isinstance(params, list):
            args = tuple(params)
        elif params is not None:
            return _error(request_id, ErrorCode.INVALID_PARAMS, "Invalid params")
        try:
            inspect.signature(fn).bind(*args, **kwargs)
        except TypeError as exc:
            return _error(request_id, ErrorCode.INVALID_PARAMS, "Invalid params", str(exc))

        try:
            result = fn(*args, **kwargs)
        except RemoteError as exc:
            return _error(request_id, exc.code, exc.message, exc.data)
        except Exception as exc:
            _logger.debug("Handler %s raised", method, exc_info=True)
            return _error(request_id, ErrorCode.INTERNAL_ERROR, "Internal error", f"{type(exc).__name__}: {exc}")
        return {"jsonrpc": JSONRPC_VERSION, "result": result, "id": request_id}


def make_wsgi_app(handler: object, *, path: str = "/rpc") -> falcon.App[falcon.Request, falcon.Response]:
    """Create a Falcon WSGI app serving *handler*'s methods at *path*."""
    app: falcon.App[falcon.Request, falcon.Response] = falcon.App()
    app.add_route(path, _JsonRpcResource(handler))
    _logger.debug("Test WSGI app created for %s at %s", type(handler).__name__, path)
    return app


def make_sync_client(handler: object, *, path: str = "/rpc") -> httpx.Client:
    """Create an ``httpx.Client`` routed to an in-process app for *handler*.

    Requests must target ``TEST_BASE_URL`` + *path*::

        client = make_sync_client(Calculator())
        transport = HttpTransport(f"{TEST_BASE_URL}/rpc", client=client)

    """
    app = make_wsgi_app(handler, path=path)
    return httpx.Client(transport=httpx.WSGITransport(app=app), base_url=TEST_BASE_URL)
