"""HTTP transport implementation using httpx.

Provides ``HttpTransport`` plus the ``http_client`` and ``http_connect``
conveniences.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Mapping

import httpx

from jrpc.rpc import (
    DEFAULT_TIMEOUT,
    Codec,
    RpcClient,
    RpcConnection,
    TransportError,
)
from jrpc.rpc._debug import fmt_payload, wire_http_logger

_BODY_PREVIEW_LEN = 200

# floor for the per-phase timeout once the deadline is nearly spent
_MIN_PHASE_TIMEOUT = 0.001


def _check_response(url: str, response: httpx.Response, body: bytes) -> bytes:
    """Return *body*, or raise ``TransportError`` on a non-2xx status."""
    if wire_http_logger.isEnabledFor(logging.DEBUG):
        wire_http_logger.debug(
            "HTTP response: url=%s, status=%d, body=%s",
            url,
            response.status_code,
            fmt_payload(body),
        )
    if not response.is_success:
        preview = body[:_BODY_PREVIEW_LEN].decode(errors="replace")
        raise TransportError(
            f"HTTP {response.status_code} {response.reason_phrase} from {url}: {preview!r}",
            status_code=response.status_code,
            body=preview,
        )
    return body


class HttpTransport:
    """Transport that POSTs each encoded request to one URL.

    The timeout bounds the whole round trip, from acquiring a connection to
    the last byte of the response body.  The sync path checks the deadline
    between body chunks and gives every phase only the time left when the
    request starts; the async path runs under ``asyncio.timeout``.
    Connection failures, timeouts and non-2xx statuses raise
    ``TransportError``; nothing is retried.

    ``client`` / ``async_client`` may be supplied to share a connection
    pool or to inject a test transport; supplied clients are not closed by
    :meth:`close` or :meth:`aclose`.

    Example::

        transport = HttpTransport("http://localhost:8080/rpc", timeout=2.0)
        client = RpcClient(transport, codec="msgpack")

    """

    __slots__ = (
        "_async_client",
        "_client",
        "_client_lock",
        "_headers",
        "_owns_async_client",
        "_owns_client",
        "_timeout",
        "_url",
    )

    def __init__(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        headers: Mapping[str, str] | None = None,
        client: httpx.Client | None = None,
        async_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize with endpoint URL, timeout in seconds, and optional extra headers."""
        if timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {timeout}")
        self._url = url
        self._timeout = float(timeout)
        self._headers = dict(headers or {})
        self._client = client
        self._owns_client = client is None
        self._async_client = async_client
        self._owns_async_client = async_client is None
        self._client_lock = threading.Lock()

    @property
    def url(self) -> str:
        """Endpoint URL."""
        return self._url

    @property
    def timeout(self) -> float:
        """Round-trip timeout in seconds."""
        return self._timeout

    def _request_headers(self, content_type: str) -> dict[str, str]:
        return {**self._headers, "Content-Type": content_type, "Accept": content_type}

    def _get_client(self) -> httpx.Client:
        with self._client_lock:
            if self._client is None:
                self._client = httpx.Client(timeout=self._timeout)
            return self._client

    def _get_async_client(self) -> httpx.AsyncClient:
        with self._client_lock:
            if self._async_client is None:
                self._async_client = httpx.AsyncClient(timeout=self._timeout)
            return self._async_client

    def _timed_out(self) -> TransportError:
        return TransportError(f"Request to {self._url} timed out after {self._timeout}s")

    def send(self, payload: bytes, content_type: str) -> bytes:
        """POST *payload* and return the response body.

        Raises:
            TransportError: On connection failure, timeout, or non-2xx status.

        """
        if wire_http_logger.isEnabledFor(logging.DEBUG):
            wire_http_logger.debug(
                "HTTP POST: url=%s, content_type=%s, body=%s", self._url, content_type, fmt_payload(payload)
            )
        deadline = time.monotonic() + self._timeout
        chunks: list[bytes] = []
        try:
            with self._get_client().stream(
                "POST",
                self._url,
                content=payload,
                headers=self._request_headers(content_type),
                timeout=httpx.Timeout(max(deadline - time.monotonic(), _MIN_PHASE_TIMEOUT)),
            ) as response:
                if time.monotonic() >= deadline:
                    raise self._timed_out()
                for chunk in response.iter_bytes():
                    chunks.append(chunk)
                    if time.monotonic() >= deadline:
                        raise self._timed_out()
        except httpx.TimeoutException as exc:
            raise TransportError(f"Request to {self._url} timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {self._url} failed: {exc}") from exc
        return _check_response(self._url, response, b"".join(chunks))

    async def send_async(self, payload: bytes, content_type: str) -> bytes:
        """POST *payload* without blocking and return the response body.

        Raises:
            TransportError: On connection failure, timeout, or non-2xx status.

        """
        if wire_http_logger.isEnabledFor(logging.DEBUG):
            wire_http_logger.debug(
                "HTTP POST (async): url=%s, content_type=%s, body=%s", self._url, content_type, fmt_payload(payload)
            )
        client = self._get_async_client()
        try:
            async with asyncio.timeout(self._timeout):
                response = await client.post(
                    self._url,
                    content=payload,
                    headers=self._request_headers(content_type),
                    timeout=self._timeout,
                )
        except TimeoutError as exc:
            raise self._timed_out() from exc
        except httpx.TimeoutException as exc:
            raise TransportError(f"Request to {self._url} timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {self._url} failed: {exc}") from exc
        return _check_response(self._url, response, response.content)

    async def aclose(self) -> None:
        """Close the owned async client, if one was created."""
        with self._client_lock:
            client, owned = self._async_client, self._owns_async_client
            if owned:
                self._async_client = None
        if owned and client is not None:
            await client.aclose()

    def close(self) -> None:
        """Close the owned sync client, if one was created.

        An owned async client must be closed with :meth:`aclose` from the
        event loop that used it.
        """
        with self._client_lock:
            client, owned = self._client, self._owns_client
            if owned:
                self._client = None
        if owned and client is not None:
            client.close()

    def __repr__(self) -> str:
        return f"HttpTransport({self._url!r}, timeout={self.timeout})"


# ---------------------------------------------------------------------------
# Conveniences
# ---------------------------------------------------------------------------


def http_client(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    codec: str | Codec = "json",
    headers: Mapping[str, str] | None = None,
    client: httpx.Client | None = None,
) -> RpcClient:
    """Create an ``RpcClient`` that talks to *url* over HTTP.

    Args:
        url: JSON-RPC endpoint.
        timeout: Round-trip timeout in seconds.
        codec: ``"json"`` (default), ``"msgpack"`` or a codec instance.
        headers: Extra headers sent with every request (e.g. auth tokens).
        client: Optional ``httpx.Client`` to send requests through.

    """
    return RpcClient(HttpTransport(url, timeout=timeout, headers=headers, client=client), codec)


def http_connect[P](
    protocol: type[P],
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    codec: str | Codec = "json",
    headers: Mapping[str, str] | None = None,
    client: httpx.Client | None = None,
) -> RpcConnection[P]:
    """Create a typed connection to *url* for *protocol*.

    Example::

        with http_connect(Calculator, "http://localhost:8080/rpc") as calc:
            calc.add(a=1, b=2)

    """
    return RpcConnection(
        protocol,
        http_client(url, timeout=timeout, codec=codec, headers=headers, client=client),
    )
