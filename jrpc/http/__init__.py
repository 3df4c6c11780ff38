"""HTTP transport for jrpc using httpx.

Each call is one ``POST`` to the endpoint URL carrying the encoded request
envelope.  ``Content-Type`` and ``Accept`` follow the active codec
(``application/json`` or ``application/msgpack``).  Any non-2xx status is a
``TransportError``; JSON-RPC error objects arrive with a 2xx status and are
left to the protocol engine.

The in-process test server lives in ``jrpc.http._testing`` and requires
``pip install jrpc[test]``.
"""

from jrpc.http._client import (
    HttpTransport,
    _check_response,
    http_client,
    http_connect,
)

__all__ = [
    "HttpTransport",
    "_check_response",
    "http_client",
    "http_connect",
]
