"""Shared test fixtures for jrpc tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

import httpx
import pytest

from jrpc.http import HttpTransport
from jrpc.http._testing import TEST_BASE_URL, make_sync_client
from jrpc.rpc import Codec, RemoteError, RpcClient, get_codec

Responder = Callable[[dict[str, Any]], object]
"""Builds a response envelope (or raw bytes) from a decoded request envelope."""

ClientFactory = Callable[..., RpcClient]
"""Type alias for the ``make_http_client`` fixture return type."""


# ---------------------------------------------------------------------------
# Loopback fake server
# ---------------------------------------------------------------------------


class FakeServer:
    """Loopback handler that decodes requests, records them, and answers via a responder."""

    def __init__(self, respond: Responder, codec: str | Codec = "json") -> None:
        self.codec = get_codec(codec)
        self.respond = respond
        self.requests: list[dict[str, Any]] = []
        self.content_types: list[str] = []

    def __call__(self, payload: bytes, content_type: str) -> bytes:
        request = self.codec.decode(payload)
        assert isinstance(request, dict)
        self.requests.append(request)
        self.content_types.append(content_type)
        response = self.respond(request)
        if isinstance(response, bytes):
            return response
        return self.codec.encode(response)


def ok(result: object) -> Responder:
    """Responder answering every request with *result*."""
    return lambda req: {"jsonrpc": "2.0", "result": result, "id": req["id"]}


def fail(code: int, message: str, data: object = None) -> Responder:
    """Responder answering every request with an error object."""

    def respond(req: dict[str, Any]) -> object:
        error: dict[str, object] = {"code": code, "message": message}
        if data is not None:
            error["data"] = data
        return {"jsonrpc": "2.0", "error": error, "id": req["id"]}

    return respond


# ---------------------------------------------------------------------------
# In-process HTTP service
# ---------------------------------------------------------------------------


@dataclass
class Point:
    """Structured value used for typed-result tests."""

    x: int
    y: int


class CalculatorHandler:
    """Server-side methods served by the in-process Falcon app."""

    def add(self, a: int, b: int) -> int:
        return a + b

    def echo(self, value: object) -> object:
        return value

    def point(self, x: int, y: int) -> dict[str, int]:
        return {"x": x, "y": y}

    def login(self, user: str, password: str) -> dict[str, object]:
        return {"api_version": 2, "token": f"tok-{user}"}

    def status(self) -> dict[str, object]:
        return {"api_version": 2}

    def sys_version(self) -> str:
        return "1.2.3"

    def reset(self) -> bool:
        return True

    def reject(self, code: int, message: str) -> None:
        raise RemoteError(code, message, {"hint": "check input"})

    def boom(self) -> None:
        raise RuntimeError("kaboom")


@pytest.fixture
def calculator_http() -> Iterator[httpx.Client]:
    """``httpx.Client`` routed to an in-process app serving ``CalculatorHandler``."""
    client = make_sync_client(CalculatorHandler())
    yield client
    client.close()


@pytest.fixture
def make_http_client(calculator_http: httpx.Client) -> ClientFactory:
    """Factory building an ``RpcClient`` over the in-process HTTP service."""

    def factory(codec: str | Codec = "json") -> RpcClient:
        return RpcClient(HttpTransport(f"{TEST_BASE_URL}/rpc", client=calculator_http), codec)

    return factory
