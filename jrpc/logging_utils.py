# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Structured JSON log lines for jrpc diagnostics.

:class:`JrpcJsonFormatter` renders each record as one JSON object.  Call
context attached by the protocol engine through ``extra`` (``rpc_method``,
``rpc_id``) is grouped under an ``"rpc"`` key; any other ``extra`` field is
emitted at the top level.

Used by ``jrpc --verbose --log-format json``; import it explicitly to use it
elsewhere::

    from jrpc.logging_utils import JrpcJsonFormatter
"""

from __future__ import annotations

import datetime
import json
import logging

__all__ = ["JrpcJsonFormatter"]

_STANDARD_ATTRS: frozenset[str] = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_RPC_PREFIX = "rpc_"

_RESERVED_KEYS: frozenset[str] = frozenset({"timestamp", "level", "logger", "message", "rpc", "exception"})


class JrpcJsonFormatter(logging.Formatter):
    """Format log records as single-line JSON.

    ``timestamp`` is ISO-8601 in UTC with millisecond precision.  Extra
    fields never overwrite the standard keys, and values that JSON cannot
    represent are written as strings.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a single-line JSON string."""
        created = datetime.datetime.fromtimestamp(record.created, tz=datetime.UTC)
        obj: dict[str, object] = {
            "timestamp": created.isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        rpc: dict[str, object] = {}
        for key, value in vars(record).items():
            if key in _STANDARD_ATTRS or key in _RESERVED_KEYS:
                continue
            if key.startswith(_RPC_PREFIX):
                rpc[key.removeprefix(_RPC_PREFIX)] = value
            else:
                obj[key] = value
        if rpc:
            obj["rpc"] = rpc
        if record.exc_info and record.exc_info[1] is not None:
            obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(obj, default=str)
