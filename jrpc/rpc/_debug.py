"""Debug logging infrastructure for wire protocol diagnostics.

Provides logger instances under the ``jrpc.wire.*`` hierarchy and
formatting helpers for envelopes and payloads.  Enabling
``logging.getLogger("jrpc.wire").setLevel(logging.DEBUG)`` gives full
visibility into what flows over the wire.

All formatting helpers return ``str`` and never log directly.
They are designed to be called inside ``isEnabledFor`` guards so
there is zero overhead when debug logging is disabled.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

# ---------------------------------------------------------------------------
# Logger hierarchy: jrpc.wire.*
# ---------------------------------------------------------------------------

wire_request_logger = logging.getLogger("jrpc.wire.request")
"""Request envelope construction and encoding."""

wire_response_logger = logging.getLogger("jrpc.wire.response")
"""Response envelope decoding and validation."""

wire_http_logger = logging.getLogger("jrpc.wire.http")
"""HTTP client requests / responses."""

# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

_MAX_VALUE_LEN = 80
"""Maximum repr length for individual values in fmt_params / fmt_envelope."""

_MAX_PAYLOAD_PREVIEW = 64
"""Number of payload bytes shown by fmt_payload."""


def _truncate(text: str) -> str:
    if len(text) > _MAX_VALUE_LEN:
        return text[:_MAX_VALUE_LEN] + "..."
    return text


def fmt_params(params: object) -> str:
    """Format request params compactly.

    Returns:
        ``"{a=1, b='x'}"`` for named params, ``"[1, 'x']"`` for positional
        params, ``"None"`` when params are omitted.

    """
    if isinstance(params, Mapping):
        parts = [f"{k}={_truncate(repr(v))}" for k, v in params.items()]
        return "{" + ", ".join(parts) + "}"
    if isinstance(params, list | tuple):
        return "[" + ", ".join(_truncate(repr(v)) for v in params) + "]"
    return _truncate(repr(params))


def fmt_envelope(envelope: object) -> str:
    """Format a decoded envelope, truncating long member values."""
    if not isinstance(envelope, Mapping):
        return f"<{type(envelope).__name__}> {_truncate(repr(envelope))}"
    parts = [f"{k}={_truncate(repr(v))}" for k, v in envelope.items()]
    return "{" + ", ".join(parts) + "}"


def fmt_payload(payload: bytes) -> str:
    """Format raw wire bytes as size plus a short preview.

    Returns:
        ``"42 bytes b'{...}'"``, with a trailing ``...`` when the
        preview is truncated.

    """
    preview = payload[:_MAX_PAYLOAD_PREVIEW]
    suffix = "..." if len(payload) > _MAX_PAYLOAD_PREVIEW else ""
    return f"{len(payload)} bytes {preview!r}{suffix}"
