"""Wire codecs: JSON text and MessagePack binary.

A codec turns a Python value into bytes and back.  Both codecs accept the
same values (builtins, dataclasses, pydantic models, enums, datetimes) and
produce the same logical structure, so swapping one for the other only
changes the bytes on the wire and the ``Content-Type`` the transport sends.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import msgpack
import pydantic_core

from jrpc.rpc._common import DecodeError

MIME_JSON = "application/json"
MIME_MSGPACK = "application/msgpack"


@runtime_checkable
class Codec(Protocol):
    """Encode/decode pair for one wire format."""

    @property
    def name(self) -> str:
        """Short codec name (``"json"``, ``"msgpack"``)."""
        ...

    @property
    def content_type(self) -> str:
        """MIME type used for ``Content-Type`` and ``Accept`` headers."""
        ...

    def encode(self, value: object) -> bytes:
        """Serialize *value* to bytes.

        Raises:
            TypeError: If *value* cannot be serialized.

        """
        ...

    def decode(self, data: bytes) -> object:
        """Deserialize bytes into builtin Python values.

        Raises:
            DecodeError: If *data* is not valid for this format.

        """
        ...


class JsonCodec:
    """UTF-8 JSON codec backed by ``pydantic_core``."""

    __slots__ = ()

    name = "json"
    content_type = MIME_JSON

    def encode(self, value: object) -> bytes:
        """Serialize *value* to compact JSON bytes."""
        try:
            return pydantic_core.to_json(value)
        except pydantic_core.PydanticSerializationError as exc:
            raise TypeError(f"Value of type {type(value).__name__} is not JSON serializable: {exc}") from exc

    def decode(self, data: bytes) -> object:
        """Parse JSON bytes."""
        try:
            return pydantic_core.from_json(data)
        except ValueError as exc:
            raise DecodeError(f"Invalid JSON payload: {exc}") from exc

    def __repr__(self) -> str:
        return "JsonCodec()"


def _msgpack_default(value: object) -> object:
    """Convert values msgpack cannot pack natively into builtins."""
    try:
        return pydantic_core.to_jsonable_python(value)
    except pydantic_core.PydanticSerializationError as exc:
        raise TypeError(f"Value of type {type(value).__name__} is not MessagePack serializable: {exc}") from exc


class MsgPackCodec:
    """MessagePack codec with string keys and binary type support."""

    __slots__ = ()

    name = "msgpack"
    content_type = MIME_MSGPACK

    def encode(self, value: object) -> bytes:
        """Serialize *value* to MessagePack bytes."""
        packed = msgpack.packb(value, default=_msgpack_default, use_bin_type=True)
        assert isinstance(packed, bytes)
        return packed

    def decode(self, data: bytes) -> object:
        """Unpack MessagePack bytes."""
        try:
            return msgpack.unpackb(data, raw=False, strict_map_key=False)
        except (ValueError, TypeError, msgpack.UnpackException) as exc:
            raise DecodeError(f"Invalid MessagePack payload: {exc}") from exc

    def __repr__(self) -> str:
        return "MsgPackCodec()"


_CODECS: dict[str, Codec] = {
    JsonCodec.name: JsonCodec(),
    MsgPackCodec.name: MsgPackCodec(),
}


def get_codec(codec: str | Codec) -> Codec:
    """Resolve a codec by name, or return a codec instance unchanged.

    Raises:
        ValueError: If *codec* is an unknown name.

    """
    if not isinstance(codec, str):
        return codec
    try:
        return _CODECS[codec]
    except KeyError:
        available = ", ".join(sorted(_CODECS))
        raise ValueError(f"Unknown codec {codec!r}. Available: {available}") from None
