"""Tests for the JSON and MessagePack codecs."""

from __future__ import annotations

import datetime
import enum
from dataclasses import dataclass

import msgpack
import pydantic
import pytest

from jrpc.rpc import MIME_JSON, MIME_MSGPACK, Codec, DecodeError, JsonCodec, MsgPackCodec, get_codec


class Color(enum.Enum):
    """Enum serialized by value."""

    RED = "red"


@dataclass
class Item:
    """Dataclass serialized as an object."""

    name: str
    qty: int


class Account(pydantic.BaseModel):
    """Pydantic model serialized as an object."""

    login: str
    active: bool = True


CODECS = [JsonCodec(), MsgPackCodec()]


class TestCodecContract:
    """Behaviour shared by both codecs."""

    @pytest.mark.parametrize("codec", CODECS, ids=lambda c: c.name)
    def test_is_codec(self, codec: Codec) -> None:
        assert isinstance(codec, Codec)

    @pytest.mark.parametrize("codec", CODECS, ids=lambda c: c.name)
    def test_nested_structure(self, codec: Codec) -> None:
        value = {"a": [1, 2.5, None, True], "b": {"c": "ü"}}
        assert codec.decode(codec.encode(value)) == value

    @pytest.mark.parametrize("codec", CODECS, ids=lambda c: c.name)
    def test_rich_values_become_builtins(self, codec: Codec) -> None:
        value = {
            "item": Item("bolt", 3),
            "account": Account(login="alice"),
            "color": Color.RED,
            "when": datetime.date(2024, 1, 2),
        }
        assert codec.decode(codec.encode(value)) == {
            "item": {"name": "bolt", "qty": 3},
            "account": {"login": "alice", "active": True},
            "color": "red",
            "when": "2024-01-02",
        }

    @pytest.mark.parametrize("codec", CODECS, ids=lambda c: c.name)
    def test_unserializable_raises_type_error(self, codec: Codec) -> None:
        with pytest.raises(TypeError, match="not"):
            codec.encode({"x": object()})

    @pytest.mark.parametrize("codec", CODECS, ids=lambda c: c.name)
    def test_garbage_raises_decode_error(self, codec: Codec) -> None:
        with pytest.raises(DecodeError):
            codec.decode(b"\xc1\xc1{{not valid")


class TestJsonCodec:
    """JSON-specific behaviour."""

    def test_compact_utf8(self) -> None:
        assert JsonCodec().encode({"a": 1, "b": "ü"}) == '{"a":1,"b":"ü"}'.encode()

    def test_content_type(self) -> None:
        assert JsonCodec().content_type == MIME_JSON

    def test_truncated_json(self) -> None:
        with pytest.raises(DecodeError, match="Invalid JSON"):
            JsonCodec().decode(b'{"jsonrpc": "2.0"')


class TestMsgPackCodec:
    """MessagePack-specific behaviour."""

    def test_wire_is_msgpack(self) -> None:
        payload = MsgPackCodec().encode({"a": 1})
        assert msgpack.unpackb(payload, raw=False) == {"a": 1}

    def test_bytes_stay_binary(self) -> None:
        codec = MsgPackCodec()
        assert codec.decode(codec.encode({"blob": b"\x00\x01"})) == {"blob": b"\x00\x01"}

    def test_content_type(self) -> None:
        assert MsgPackCodec().content_type == MIME_MSGPACK

    def test_incomplete_input(self) -> None:
        payload = MsgPackCodec().encode({"a": "long enough string"})
        with pytest.raises(DecodeError, match="Invalid MessagePack"):
            MsgPackCodec().decode(payload[:-3])


class TestGetCodec:
    """Codec lookup by name."""

    def test_by_name(self) -> None:
        assert isinstance(get_codec("json"), JsonCodec)
        assert isinstance(get_codec("msgpack"), MsgPackCodec)

    def test_instance_passthrough(self) -> None:
        codec = MsgPackCodec()
        assert get_codec(codec) is codec

    def test_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown codec 'xml'. Available: json, msgpack"):
            get_codec("xml")
