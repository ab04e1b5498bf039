"""Hand-built HTTP/1.1 over a client-authenticated TLS socket.

The registry is only reachable with a client certificate and the runtime
offers no HTTP library for that, so request bytes are assembled and the
response (including ``chunked`` framing) is decoded here.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode, urlsplit

from ..auth.credentials import PemCredential
from ..errors import ConfigurationError, MalformedResponseError, UpstreamStatusError
from ..trace import Trace
from .tls import DEFAULT_TIMEOUT, ConnectionTarget, Deadline, TlsSocketClient

logger = logging.getLogger(__name__)

_CRLF = b"\r\n"
_SEPARATOR = b"\r\n\r\n"
_HEX_SIZE = re.compile(rb"[0-9A-Fa-f]+")
_MANAGED_HEADERS = {"host", "connection", "accept", "content-type", "content-length"}

DIAGNOSTIC_EXCERPT_BYTES = 500


def excerpt(data: bytes, limit: int = DIAGNOSTIC_EXCERPT_BYTES) -> str:
    """Return the first ``limit`` bytes of ``data`` as text for diagnostics."""
    return data[:limit].decode("utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Request encoding
# ---------------------------------------------------------------------------


@dataclass
class OutboundRequest:
    """A logical HTTP request before serialization.

    Attributes:
        method: ``GET`` or ``POST``.
        path: Absolute request path (e.g. ``/nv0101/v1/sokpavar/api/Ae/KoptaVariabler``).
        query: Ordered query parameters.
        headers: Extra headers, sent after the managed ones.
        body: Serialized body bytes, or ``None`` for no body.
    """

    method: str
    path: str
    query: list[tuple[str, str]] = field(default_factory=list)
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes | None = None

    @classmethod
    def with_json(
        cls,
        method: str,
        path: str,
        payload: Any = None,
        query: list[tuple[str, str]] | None = None,
        headers: list[tuple[str, str]] | None = None,
    ) -> OutboundRequest:
        """Build a request whose body is ``payload`` serialized as UTF-8 JSON.

        Non-ASCII characters are kept as-is (``ensure_ascii=False``), so the
        body's byte length can exceed its character count.
        """
        body = None
        if payload is not None:
            body = json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
        return cls(
            method=method.upper(),
            path=path,
            query=list(query or []),
            headers=list(headers or []),
            body=body,
        )

    @property
    def target(self) -> str:
        """Request target: path plus encoded query string, if any."""
        if not self.query:
            return self.path
        return f"{self.path}?{urlencode(self.query)}"


def encode_request(request: OutboundRequest, host: str) -> bytes:
    """Serialize ``request`` to raw HTTP/1.1 bytes.

    Header order is fixed: ``Host``, ``Connection: close``, ``Accept``,
    then ``Content-Type`` and ``Content-Length`` when a body is present,
    then any extra headers whose names don't collide with those.
    """
    headers: list[tuple[str, str]] = [
        ("Host", host),
        ("Connection", "close"),
        ("Accept", "application/json"),
    ]
    if request.body is not None:
        headers.append(("Content-Type", "application/json; charset=utf-8"))
        headers.append(("Content-Length", str(len(request.body))))
    for name, value in request.headers:
        if name.strip().lower() not in _MANAGED_HEADERS:
            headers.append((name, value))

    request_line = f"{request.method} {request.target} HTTP/1.1\r\n"
    header_lines = "".join(f"{k}: {v}\r\n" for k, v in headers)
    raw = (request_line + header_lines + "\r\n").encode("utf-8")
    if request.body is not None:
        raw += request.body
    return raw


# ---------------------------------------------------------------------------
# Response decoding
# ---------------------------------------------------------------------------


@dataclass
class RawResponse:
    """Response bytes split into status line, headers, and undecoded body.

    Attributes:
        status_line: First line of the header block.
        headers: Header name/value pairs in received order.
        body: Everything after the first blank line, as received.
        separator_found: ``False`` when the stream had no blank line.
        header_block: Raw bytes before the blank line (the whole stream
            when there is none).
    """

    status_line: str
    headers: list[tuple[str, str]]
    body: bytes
    separator_found: bool = True
    header_block: bytes = b""

    def header(self, name: str) -> str | None:
        """Return the first value of header ``name`` (case-insensitive)."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    def header_values(self, name: str) -> list[str]:
        """Return every value of header ``name`` (case-insensitive)."""
        wanted = name.lower()
        return [value for key, value in self.headers if key.lower() == wanted]


@dataclass
class HttpResponse:
    """Decoded HTTP response.

    Attributes:
        status: Status code, or ``None`` if the status line was unparsable.
        reason: Reason phrase from the status line.
        headers: Header name/value pairs in received order.
        body: Body with any chunk framing removed.
        raw_body: Body bytes exactly as received.
        chunked: Whether chunked framing was removed.
    """

    status: int | None
    reason: str
    headers: list[tuple[str, str]]
    body: bytes
    raw_body: bytes = b""
    chunked: bool = False

    @property
    def ok(self) -> bool:
        """Whether the status is 2xx."""
        return self.status is not None and 200 <= self.status < 300


def split_response(raw: bytes) -> RawResponse:
    """Split ``raw`` on the first blank line into headers and body.

    Without a blank line, the whole input is treated as the header block
    and the body is empty.
    """
    sep_idx = raw.find(_SEPARATOR)
    if sep_idx == -1:
        header_bytes, body, found = raw, b"", False
    else:
        header_bytes, body, found = raw[:sep_idx], raw[sep_idx + len(_SEPARATOR):], True

    lines = header_bytes.decode("iso-8859-1").split("\r\n")
    headers = []
    for line in lines[1:]:
        if ":" in line:
            key, value = line.split(":", 1)
            headers.append((key.strip(), value.strip()))

    return RawResponse(
        status_line=lines[0],
        headers=headers,
        body=body,
        separator_found=found,
        header_block=header_bytes,
    )


def parse_status_line(line: str) -> tuple[int | None, str]:
    """Parse ``HTTP/1.1 200 OK`` into ``(200, "OK")``.

    Returns ``(None, "")`` when the line is not a status line.
    """
    parts = line.strip().split(" ", 2)
    if len(parts) < 2 or not parts[0].startswith("HTTP/") or not parts[1].isdigit():
        return None, ""
    return int(parts[1]), parts[2] if len(parts) > 2 else ""


def is_chunked(response: RawResponse) -> bool:
    """Whether any ``Transfer-Encoding`` header lists ``chunked``."""
    for value in response.header_values("transfer-encoding"):
        tokens = [t.strip().lower() for t in value.split(",")]
        if "chunked" in tokens:
            return True
    return False


def decode_chunked(data: bytes) -> bytes:
    """Decode HTTP chunked transfer encoding.

    Each chunk is a hex size line (extensions after ``;`` are ignored),
    exactly that many data bytes, then CRLF. A zero-size chunk ends the
    stream; trailer headers after it are ignored.

    Raises:
        MalformedResponseError: If a size line is unparsable, a chunk is
            cut short, or the stream ends before the terminal chunk.
    """
    decoded = bytearray()
    pos = 0
    while True:
        crlf = data.find(_CRLF, pos)
        if crlf == -1:
            raise MalformedResponseError(
                "Malformed chunked body: stream ended before terminal chunk",
                raw_excerpt=excerpt(data),
            )
        size_field = data[pos:crlf].split(b";", 1)[0].strip()
        if not _HEX_SIZE.fullmatch(size_field):
            raise MalformedResponseError(
                f"Malformed chunked body: invalid chunk size {size_field[:32]!r}",
                raw_excerpt=excerpt(data),
            )
        chunk_size = int(size_field, 16)
        if chunk_size == 0:
            return bytes(decoded)

        chunk_start = crlf + len(_CRLF)
        chunk_end = chunk_start + chunk_size
        if chunk_end > len(data):
            raise MalformedResponseError(
                f"Malformed chunked body: chunk of {chunk_size} bytes truncated "
                f"at {len(data) - chunk_start}",
                raw_excerpt=excerpt(data),
            )
        if data[chunk_end:chunk_end + len(_CRLF)] != _CRLF:
            raise MalformedResponseError(
                "Malformed chunked body: chunk data not followed by CRLF",
                raw_excerpt=excerpt(data),
            )
        decoded.extend(data[chunk_start:chunk_end])
        pos = chunk_end + len(_CRLF)


def parse_response(raw: bytes, trace: Trace | None = None) -> HttpResponse:
    """Decode a complete response byte stream.

    The status line is parsed for diagnostics; this function never fails on
    status. A missing header/body separator is recorded in ``trace`` but is
    not an error by itself.

    Raises:
        MalformedResponseError: If the chunk stream cannot be decoded.
    """
    split = split_response(raw)
    status, reason = parse_status_line(split.status_line)

    if trace is not None:
        trace.add(f"Response: {split.status_line}", status=status)
        if not split.separator_found:
            trace.add("Malformed response: no header/body separator found")

    chunked = is_chunked(split)
    body = decode_chunked(split.body) if chunked else split.body
    if chunked and trace is not None:
        trace.add(f"Decoded chunked body: {len(body)} bytes")

    return HttpResponse(
        status=status,
        reason=reason,
        headers=split.headers,
        body=body,
        raw_body=split.body,
        chunked=chunked,
    )


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a valid JSON value")


def parse_json_body(response: HttpResponse, trace: Trace | None = None) -> Any:
    """Parse the decoded body as JSON.

    ``NaN``, ``Infinity`` and ``-Infinity`` are rejected like any other
    non-JSON text.

    Raises:
        MalformedResponseError: If the body is not valid JSON. The first
            ``DIAGNOSTIC_EXCERPT_BYTES`` of the raw body are attached and
            written to ``trace``.
    """
    try:
        return json.loads(response.body, parse_constant=_reject_constant)
    except ValueError as e:
        raw_excerpt = excerpt(response.raw_body)
        if trace is not None:
            trace.add(f"Raw response: {raw_excerpt}")
        raise MalformedResponseError(
            f"Failed to parse JSON response: {e}", raw_excerpt=raw_excerpt
        ) from e


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class RegistryHttpClient:
    """HTTP/1.1 client for the registry API over a fresh mTLS connection per call.

    No pooling and no retries: every ``request`` opens a connection, sends
    one request with ``Connection: close``, reads until the peer closes,
    and closes the socket on every exit path.

    Args:
        base_url: ``https://`` URL of the API root; its path is prefixed
            to every request path.
        socket_client: Socket client used to open connections.
        timeout: Seconds allowed for a whole round trip. ``None`` disables it.
    """

    def __init__(
        self,
        base_url: str,
        socket_client: TlsSocketClient | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
    ) -> None:
        parts = urlsplit(base_url)
        if parts.scheme != "https" or not parts.hostname:
            raise ConfigurationError(f"Registry base URL must be an https URL: {base_url!r}")
        self._base_url = base_url.rstrip("/")
        self._host = parts.hostname
        self._port = parts.port or 443
        self._prefix = parts.path.rstrip("/")
        self._socket_client = socket_client or TlsSocketClient()
        self._timeout = timeout

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    @property
    def host_header(self) -> str:
        """``Host`` header value; the port is included unless it is 443."""
        if self._port == 443:
            return self._host
        return f"{self._host}:{self._port}"

    def request(
        self,
        method: str,
        path: str,
        credential: PemCredential,
        body: Any = None,
        query: list[tuple[str, str]] | None = None,
        trace: Trace | None = None,
        cancel: threading.Event | None = None,
    ) -> HttpResponse:
        """Send one request and return the decoded response.

        Args:
            method: ``GET`` or ``POST``.
            path: Path below the base URL (e.g. ``/api/Ae/KoptaKategorier``).
            credential: Client certificate and key for the handshake.
            body: JSON-serializable body, or ``None``.
            query: Ordered query parameters.
            trace: Per-call trace to append diagnostics to.
            cancel: Optional event that aborts the round trip when set.

        Raises:
            ConnectionFailureError: On connect, handshake, or socket I/O failure.
            RequestTimeoutError: If the round trip exceeds the timeout.
            MalformedResponseError: If the chunk stream cannot be decoded.
        """
        trace = trace if trace is not None else Trace()
        outbound = OutboundRequest.with_json(method, self._prefix + path, body, query=query)
        raw_request = encode_request(outbound, self.host_header)
        target = ConnectionTarget(hostname=self._host, port=self._port, credential=credential)

        trace.add(f"Connecting to: https://{self.host_header}{outbound.target}", port=self._port)
        deadline = Deadline(self._timeout, cancel)

        raw_response = self._socket_client.round_trip(
            target, raw_request, deadline, trace, label=f"{outbound.method} request"
        )
        logger.debug("Received %d bytes from %s", len(raw_response), target)
        return parse_response(raw_response, trace)

    def request_json(
        self,
        method: str,
        path: str,
        credential: PemCredential,
        body: Any = None,
        query: list[tuple[str, str]] | None = None,
        trace: Trace | None = None,
        cancel: threading.Event | None = None,
    ) -> Any:
        """Send one request and return its JSON body.

        Raises:
            UpstreamStatusError: If the registry answers with a non-2xx status.
            MalformedResponseError: If the body is not valid JSON.
            ConnectionFailureError: On connect, handshake, or socket I/O failure.
            RequestTimeoutError: If the round trip exceeds the timeout.
        """
        trace = trace if trace is not None else Trace()
        response = self.request(
            method, path, credential, body=body, query=query, trace=trace, cancel=cancel
        )
        if response.status is not None and not response.ok:
            body_excerpt = excerpt(response.body)
            trace.add(f"Upstream body: {body_excerpt}")
            raise UpstreamStatusError(
                f"Registry returned status {response.status} {response.reason}".rstrip(),
                status=response.status,
                reason=response.reason,
                body_excerpt=body_excerpt,
            )
        return parse_json_body(response, trace)
