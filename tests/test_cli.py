# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Tests for the jrpc CLI tool."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from typing import Any

import httpx
import pytest
import typer
from typer.testing import CliRunner

from jrpc.cli import _coerce_value, _parse_key_value_args, app
from jrpc.http import http_client
from jrpc.http._testing import TEST_BASE_URL
from jrpc.rpc import RpcClient

runner = CliRunner()

_URL = f"{TEST_BASE_URL}/rpc"


@pytest.fixture(autouse=True)
def _restore_jrpc_logger() -> Iterator[None]:
    """``--verbose`` reconfigures the ``jrpc`` logger; put it back afterwards."""
    logger = logging.getLogger("jrpc")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield
    logger.handlers, logger.level, logger.propagate = saved[0], saved[1], saved[2]


def _route_to(monkeypatch: pytest.MonkeyPatch, http: httpx.Client) -> None:
    """Make the CLI build its client on top of *http*."""

    def fake_http_client(url: str, **kwargs: Any) -> RpcClient:
        return http_client(url, client=http, **kwargs)

    monkeypatch.setattr("jrpc.cli.http_client", fake_http_client)


@pytest.fixture
def served(monkeypatch: pytest.MonkeyPatch, calculator_http: httpx.Client) -> None:
    """Route CLI calls to the in-process calculator service."""
    _route_to(monkeypatch, calculator_http)


def _invoke(*args: str) -> Any:
    return runner.invoke(app, ["--url", _URL, *args])


# ---------------------------------------------------------------------------
# call
# ---------------------------------------------------------------------------


@pytest.mark.usefixtures("served")
class TestCall:
    """The ``call`` command against a live service."""

    def test_key_value_args(self) -> None:
        """key=value args become named params parsed as JSON."""
        result = _invoke("call", "add", "a=1", "b=2")
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == 3

    def test_positional_args(self) -> None:
        """--positional sends a params array."""
        result = _invoke("call", "add", "--positional", "4", "5")
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == 9

    def test_json_params(self) -> None:
        result = _invoke("call", "point", "--json", '{"x": 1, "y": 2}')
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"x": 1, "y": 2}

    def test_string_values_fall_back(self) -> None:
        result = _invoke("call", "echo", "value=hello")
        assert json.loads(result.output) == "hello"

    def test_no_params(self) -> None:
        result = _invoke("call", "sys.version")
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == "1.2.3"

    def test_msgpack_codec(self) -> None:
        """--codec msgpack produces the same result."""
        result = runner.invoke(app, ["--url", _URL, "--codec", "msgpack", "call", "echo", 'value={"k": [1, 2]}'])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"k": [1, 2]}

    def test_pretty(self) -> None:
        result = _invoke("call", "point", "x=1", "y=2", "--pretty")
        assert result.output.startswith("{\n  ")

    def test_remote_error_exits_1(self) -> None:
        """A JSON-RPC error object is reported on stderr with its code."""
        result = _invoke("call", "missing")
        assert result.exit_code == 1
        payload = json.loads(result.output.strip().splitlines()[-1])
        assert payload["error"]["type"] == "RemoteError"
        assert payload["error"]["code"] == -32601
        assert payload["error"]["data"] == "missing"

    def test_application_error_data(self) -> None:
        result = _invoke("call", "reject", "code=-32001", "message=nope")
        assert result.exit_code == 1
        payload = json.loads(result.output.strip().splitlines()[-1])
        assert payload["error"] == {
            "type": "RemoteError",
            "message": "nope",
            "code": -32001,
            "data": {"hint": "check input"},
        }


class TestCallTransportErrors:
    """Transport failures are reported, not raised."""

    def test_http_status(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _route_to(monkeypatch, httpx.Client(transport=httpx.MockTransport(lambda req: httpx.Response(502))))
        result = _invoke("call", "add", "a=1", "b=2")
        assert result.exit_code == 1
        payload = json.loads(result.output.strip().splitlines()[-1])
        assert payload["error"]["type"] == "TransportError"
        assert payload["error"]["status_code"] == 502

    def test_connection_refused(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        _route_to(monkeypatch, httpx.Client(transport=httpx.MockTransport(refuse)))
        result = _invoke("call", "add")
        assert result.exit_code == 1
        assert "connection refused" in result.output


# ---------------------------------------------------------------------------
# Usage errors
# ---------------------------------------------------------------------------


class TestUsageErrors:
    """Bad invocations exit with a usage error before any request is sent."""

    @pytest.mark.parametrize(
        "args",
        [
            ["--url", _URL, "call", "add", "a=1", "--json", "{}"],
            ["--url", _URL, "call", "add", "oops"],
            ["--url", _URL, "call", "add", "a=1", "a=2"],
            ["--url", _URL, "call", "add", "--json", "{not json"],
            ["--url", _URL, "--timeout", "0", "call", "add"],
            ["--url", _URL, "--codec", "xml", "call", "add"],
            ["call", "add"],
        ],
    )
    def test_usage_error(self, args: list[str], monkeypatch: pytest.MonkeyPatch) -> None:
        sent: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return httpx.Response(500)

        _route_to(monkeypatch, httpx.Client(transport=httpx.MockTransport(record)))
        result = runner.invoke(app, args)
        assert result.exit_code == 2, result.output
        assert sent == []


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.mark.usefixtures("served")
class TestVerbose:
    """--verbose logs wire traffic to stderr."""

    def test_text_format(self) -> None:
        result = runner.invoke(app, ["--url", _URL, "--verbose", "call", "add", "a=1", "b=2"])
        assert result.exit_code == 0, result.output
        assert "jrpc.wire.request" in result.output
        assert "jrpc.wire.http" in result.output

    def test_json_format(self) -> None:
        result = runner.invoke(app, ["--url", _URL, "-v", "--log-format", "json", "call", "add", "a=1", "b=2"])
        assert result.exit_code == 0, result.output
        records = [json.loads(line) for line in result.output.splitlines() if line.startswith('{"timestamp"')]
        assert records
        starts = [r for r in records if r["logger"] == "jrpc.rpc" and r["message"].startswith("Call start")]
        assert starts[0]["rpc"] == {"method": "add", "id": 1}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    """Argument parsing helpers."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("1", 1), ("true", True), ("[1,2]", [1, 2]), ("abc", "abc"), ('"1"', "1"), ("null", None)],
    )
    def test_coerce_value(self, raw: str, expected: object) -> None:
        assert _coerce_value(raw) == expected

    def test_parse_key_value_args(self) -> None:
        assert _parse_key_value_args(["a=1", "b=x=y"]) == {"a": 1, "b": "x=y"}

    @pytest.mark.parametrize(
        ("args", "match"),
        [(["novalue"], "Expected key=value"), (["a=1", "a=2"], "Duplicate parameter 'a'")],
    )
    def test_parse_key_value_errors(self, args: list[str], match: str) -> None:
        with pytest.raises(typer.BadParameter, match=match):
            _parse_key_value_args(args)


