"""Command-line interface for JSON-RPC services.

Provides a ``call`` command for invoking a method on any JSON-RPC 2.0
endpoint reachable over HTTP.

Usage::

    jrpc --url http://localhost:8080/rpc call add a=1 b=2
    jrpc --url http://localhost:8080/rpc call add --positional 1 2
    jrpc --url http://localhost:8080/rpc --codec msgpack call echo --json '{"value": [1, 2]}'

"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from enum import StrEnum
from typing import Annotated

import typer

from jrpc.http import http_client
from jrpc.logging_utils import JrpcJsonFormatter
from jrpc.rpc import DEFAULT_TIMEOUT, RemoteError, RpcClient, RpcError, TransportError

# ---------------------------------------------------------------------------
# Option enums
# ---------------------------------------------------------------------------


class CodecName(StrEnum):
    """Wire codec for CLI calls."""

    json = "json"
    msgpack = "msgpack"


class LogFormat(StrEnum):
    """Format of diagnostic log lines written to stderr."""

    text = "text"
    json = "json"


# ---------------------------------------------------------------------------
# CLI config
# ---------------------------------------------------------------------------


@dataclass
class _CliConfig:
    """Holds resolved CLI options."""

    url: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    codec: CodecName = CodecName.json
    verbose: bool = False
    log_format: LogFormat = LogFormat.text


app = typer.Typer(
    name="jrpc",
    help="CLI client for JSON-RPC 2.0 services.",
    add_completion=False,
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def _main(
    ctx: typer.Context,
    url: Annotated[str | None, typer.Option("--url", "-u", help="JSON-RPC endpoint URL")] = None,
    timeout: Annotated[float, typer.Option("--timeout", "-t", help="Round-trip timeout in seconds")] = DEFAULT_TIMEOUT,
    codec: Annotated[CodecName, typer.Option("--codec", help="Wire codec")] = CodecName.json,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log wire traffic to stderr")] = False,
    log_format: Annotated[LogFormat, typer.Option("--log-format", help="Format of log lines")] = LogFormat.text,
) -> None:
    """Configure endpoint, codec and logging options."""
    if timeout <= 0:
        raise typer.BadParameter("--timeout must be > 0")
    ctx.obj = _CliConfig(url=url, timeout=timeout, codec=codec, verbose=verbose, log_format=log_format)
    if verbose:
        _configure_logging(log_format)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _configure_logging(log_format: LogFormat) -> None:
    """Send ``jrpc`` debug logging to stderr in the chosen format."""
    handler = logging.StreamHandler(sys.stderr)
    if log_format is LogFormat.json:
        handler.setFormatter(JrpcJsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger("jrpc")
    root.handlers = [handler]
    root.setLevel(logging.DEBUG)
    root.propagate = False


def _coerce_value(value_str: str) -> object:
    """Parse a CLI value as JSON, falling back to the raw string.

    ``1`` → ``1``, ``true`` → ``True``, ``[1,2]`` → ``[1, 2]``, ``abc`` → ``"abc"``.
    """
    try:
        return json.loads(value_str)
    except ValueError:
        return value_str


def _parse_key_value_args(args: list[str]) -> dict[str, object]:
    """Parse ``key=value`` args into named params.

    Raises:
        typer.BadParameter: If an arg has no ``=`` or a key repeats.

    """
    result: dict[str, object] = {}
    for arg in args:
        if "=" not in arg:
            raise typer.BadParameter(f"Expected key=value, got: {arg}")
        key, value = arg.split("=", 1)
        if key in result:
            raise typer.BadParameter(f"Duplicate parameter '{key}'")
        result[key] = _coerce_value(value)
    return result


def _print_json(data: object, *, pretty: bool = False) -> None:
    """Print JSON to stdout."""
    if pretty:
        typer.echo(json.dumps(data, indent=2, default=str))
    else:
        typer.echo(json.dumps(data, default=str))


def _emit_rpc_error(e: RpcError) -> None:
    """Write an RpcError to stderr as JSON."""
    err: dict[str, object] = {"type": type(e).__name__, "message": str(e)}
    if isinstance(e, RemoteError):
        err["code"] = e.code
        err["message"] = e.message
        if e.data is not None:
            err["data"] = e.data
    elif isinstance(e, TransportError) and e.status_code is not None:
        err["status_code"] = e.status_code
    typer.echo(json.dumps({"error": err}, default=str), err=True)


def _make_client(config: _CliConfig) -> RpcClient:
    """Build the client for the configured endpoint."""
    if not config.url:
        raise typer.BadParameter("--url is required")
    return http_client(config.url, timeout=config.timeout, codec=config.codec.value)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def call(
    ctx: typer.Context,
    method: Annotated[str, typer.Argument(help="Method name to call")],
    args: Annotated[list[str] | None, typer.Argument(help="key=value parameters (values parsed as JSON)")] = None,
    json_input: Annotated[str | None, typer.Option("--json", "-j", help="JSON params")] = None,
    positional: Annotated[bool, typer.Option("--positional", "-P", help="Send args as a positional array")] = False,
    pretty: Annotated[bool, typer.Option("--pretty", help="Indent JSON output")] = False,
) -> None:
    """Call a method on a JSON-RPC service and print its result as JSON."""
    config: _CliConfig = ctx.obj

    if json_input and args:
        raise typer.BadParameter("--json and positional/key=value args are mutually exclusive")

    params: object
    if json_input:
        try:
            params = json.loads(json_input)
        except ValueError as e:
            raise typer.BadParameter(f"--json is not valid JSON: {e}") from None
    elif positional:
        params = [_coerce_value(a) for a in args or []]
    elif args:
        params = _parse_key_value_args(args)
    else:
        params = None

    client = _make_client(config)
    try:
        result = client.call(method, params)
    except RpcError as e:
        _emit_rpc_error(e)
        raise typer.Exit(1) from None
    except TypeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    finally:
        client.close()
    _print_json(result, pretty=pretty)
