"""Envelope construction, response validation, and typed result decoding."""

from __future__ import annotations

import functools
import logging
from collections.abc import Mapping
from typing import Any

import pydantic
import pydantic_core

from jrpc.rpc._codec import Codec
from jrpc.rpc._common import JSONRPC_VERSION, DecodeError, ProtocolError, RemoteError
from jrpc.rpc._debug import fmt_envelope, fmt_params, fmt_payload, wire_request_logger, wire_response_logger

# ---------------------------------------------------------------------------
# Request side
# ---------------------------------------------------------------------------


def _build_request(method: str, params: object, request_id: int) -> dict[str, object]:
    """Build a request envelope; ``params`` is omitted when ``None``."""
    envelope: dict[str, object] = {"jsonrpc": JSONRPC_VERSION, "method": method}
    if params is not None:
        envelope["params"] = params
    envelope["id"] = request_id
    return envelope


def _encode_request(codec: Codec, method: str, params: object, request_id: int) -> bytes:
    """Build and encode a request envelope with *codec*."""
    envelope = _build_request(method, params, request_id)
    payload = codec.encode(envelope)
    if wire_request_logger.isEnabledFor(logging.DEBUG):
        wire_request_logger.debug(
            "Request: id=%d, method=%s, params=%s, codec=%s, payload=%s",
            request_id,
            method,
            fmt_params(params),
            codec.name,
            fmt_payload(payload),
        )
    return payload


# ---------------------------------------------------------------------------
# Response side
# ---------------------------------------------------------------------------


def _remote_error(error: object) -> RemoteError:
    """Convert a wire error object into ``RemoteError``, validating its shape."""
    if not isinstance(error, Mapping):
        raise ProtocolError(f"invalid server response: error member is not an object ({type(error).__name__})")
    code = error.get("code")
    message = error.get("message")
    if isinstance(code, bool) or not isinstance(code, int):
        raise ProtocolError(f"invalid server response: error code is not an integer ({code!r})")
    if not isinstance(message, str):
        raise ProtocolError(f"invalid server response: error message is not a string ({message!r})")
    return RemoteError(code, message, error.get("data"))


def _validate_response(envelope: object, request_id: int) -> object:
    """Validate a decoded response envelope and return its raw ``result``.

    Raises:
        ProtocolError: If the envelope is malformed, has the wrong version,
            carries both or neither of ``result``/``error``, or answers a
            different request id.
        RemoteError: If the envelope carries a well-formed error object.

    """
    if not isinstance(envelope, Mapping):
        raise ProtocolError(f"invalid server response: envelope is not an object ({type(envelope).__name__})")
    version = envelope.get("jsonrpc")
    if version != JSONRPC_VERSION:
        raise ProtocolError(f"invalid server response: invalid JSON RPC version {version!r}")
    has_result = "result" in envelope
    has_error = "error" in envelope
    if has_result and has_error:
        raise ProtocolError("invalid server response: both result and error fields present")
    if not has_result and not has_error:
        raise ProtocolError("invalid server response: no result/error fields")
    response_id = envelope.get("id")
    if isinstance(response_id, bool) or not isinstance(response_id, int) or response_id != request_id:
        raise ProtocolError(f"invalid server response: invalid response ID {response_id!r} (expected {request_id})")
    if has_error:
        raise _remote_error(envelope["error"])
    return envelope["result"]


def _read_response(codec: Codec, payload: bytes, request_id: int) -> object:
    """Decode response bytes with *codec* and return the raw result value."""
    try:
        envelope = codec.decode(payload)
    except DecodeError as exc:
        raise ProtocolError(f"invalid server response: {exc}") from exc
    if wire_response_logger.isEnabledFor(logging.DEBUG):
        wire_response_logger.debug("Response: id=%d, envelope=%s", request_id, fmt_envelope(envelope))
    return _validate_response(envelope, request_id)


# ---------------------------------------------------------------------------
# Typed decoding
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=256)
def _type_adapter(result_type: Any) -> pydantic.TypeAdapter[Any]:
    return pydantic.TypeAdapter(result_type)


def _decode_value(value: object, result_type: Any) -> Any:
    """Validate *value* into *result_type*; ``Any`` returns it unchanged.

    Validation is strict: ``"42"`` is not an ``int`` and ``1.0`` is not an
    ``int``.  The value goes through JSON validation so objects still build
    dataclasses and models.

    Raises:
        DecodeError: If *value* does not match *result_type*.

    """
    if result_type is Any or result_type is object:
        return value
    try:
        adapter = _type_adapter(result_type)
    except TypeError:
        # unhashable generic aliases cannot be cached
        adapter = pydantic.TypeAdapter(result_type)
    try:
        as_json = pydantic_core.to_json(value)
    except pydantic_core.PydanticSerializationError as exc:
        raise DecodeError(f"Result does not match {_type_name(result_type)}: {exc}") from exc
    try:
        return adapter.validate_json(as_json, strict=True)
    except pydantic.ValidationError as exc:
        raise DecodeError(f"Result does not match {_type_name(result_type)}: {exc}") from exc


def _extract_field(value: object, result_field: str) -> object:
    """Return ``value[result_field]`` from a structured result.

    Raises:
        DecodeError: If *value* is not a mapping or lacks the key.

    """
    if not isinstance(value, Mapping):
        raise DecodeError(f"Result is not an object, cannot extract field {result_field!r}")
    try:
        return value[result_field]
    except KeyError:
        raise DecodeError(f"Result has no field {result_field!r}") from None


def _type_name(tp: Any) -> str:
    return tp.__name__ if isinstance(tp, type) else repr(tp)
