"""Blocking TLS socket client that authenticates with a client certificate."""

from __future__ import annotations

import logging
import os
import socket
import ssl
import tempfile
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from ..auth.credentials import PemCredential
from ..errors import ConnectionFailureError, RequestCancelledError, RequestTimeoutError
from ..trace import Trace

logger = logging.getLogger(__name__)

_BUFFER_SIZE = 65536
DEFAULT_TIMEOUT = 30.0  # seconds, whole round trip


@dataclass(frozen=True)
class ConnectionTarget:
    """Where to connect and which credential to present.

    Attributes:
        hostname: Registry host name; also used for SNI and certificate checks.
        credential: Client certificate and key for the handshake.
        port: TCP port. Defaults to ``443``.
    """

    hostname: str
    credential: PemCredential
    port: int = 443

    def __str__(self) -> str:
        return f"{self.hostname}:{self.port}"


class Deadline:
    """Time budget shared by every socket operation of one round trip.

    Args:
        timeout: Seconds allowed from construction. ``None`` means no limit.
        cancel: Optional event; once set, the next check raises
            ``RequestCancelledError``.
    """

    def __init__(
        self,
        timeout: float | None = DEFAULT_TIMEOUT,
        cancel: threading.Event | None = None,
    ) -> None:
        self.timeout = timeout
        self._expires_at = None if timeout is None else time.monotonic() + timeout
        self._cancel = cancel

    def remaining(self) -> float | None:
        """Seconds left, for use as a socket timeout.

        Returns:
            Remaining seconds, or ``None`` when unbounded.

        Raises:
            RequestCancelledError: If the cancel event is set.
            RequestTimeoutError: If the budget is used up.
        """
        if self._cancel is not None and self._cancel.is_set():
            raise RequestCancelledError("Request cancelled")
        if self._expires_at is None:
            return None
        left = self._expires_at - time.monotonic()
        if left <= 0:
            raise RequestTimeoutError(f"Request timed out after {self.timeout}s")
        return left


def build_ssl_context(credential: PemCredential) -> ssl.SSLContext:
    """Create a client context that verifies the server and presents ``credential``.

    ``SSLContext.load_cert_chain`` only accepts file paths, so the PEM
    material is written to owner-only files in a private temporary
    directory that is removed before returning.

    Raises:
        ConnectionFailureError: If the certificate or key cannot be loaded.
    """
    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    with tempfile.TemporaryDirectory(prefix="scb-mtls-") as tmp:
        cert_path = os.path.join(tmp, "client.crt")
        key_path = os.path.join(tmp, "client.key")
        for path, material in ((cert_path, credential.certificate), (key_path, credential.private_key)):
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(material)
        try:
            context.load_cert_chain(certfile=cert_path, keyfile=key_path)
        except ssl.SSLError as e:
            raise ConnectionFailureError(
                f"Client certificate rejected while loading: {e}"
            ) from e
    return context


class TlsConnection:
    """An open TLS socket owned by exactly one round trip."""

    def __init__(self, sock: ssl.SSLSocket | socket.socket, target: ConnectionTarget) -> None:
        self.sock = sock
        self.target = target
        self.closed = False

    def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        try:
            self.sock.close()
        except OSError as e:
            logger.debug("Ignoring error while closing %s: %s", self.target, e)


class TlsSocketClient:
    """Opens one mutually authenticated TLS connection per call.

    ``round_trip`` runs one complete exchange. The byte-level ``open``,
    ``write``, ``read_all``, and ``close`` steps are exposed for callers that
    need them; such callers must ``close`` on every exit path.

    Args:
        context_factory: Builds the ``SSLContext`` for a credential.
            Defaults to ``build_ssl_context``.
    """

    def __init__(
        self,
        context_factory: Callable[[PemCredential], ssl.SSLContext] = build_ssl_context,
    ) -> None:
        self._context_factory = context_factory

    def open(
        self,
        target: ConnectionTarget,
        deadline: Deadline | None = None,
        trace: Trace | None = None,
    ) -> TlsConnection:
        """Connect to ``target`` and complete the TLS handshake.

        Raises:
            ConnectionFailureError: On DNS failure, refused connection, or
                handshake/certificate rejection.
            RequestTimeoutError: If the deadline expires first.
        """
        deadline = deadline or Deadline()
        context = self._context_factory(target.credential)

        try:
            raw_sock = socket.create_connection(
                (target.hostname, target.port), timeout=deadline.remaining()
            )
        except socket.gaierror as e:
            raise ConnectionFailureError(
                f"Cannot resolve registry host {target.hostname}: {e}"
            ) from e
        except TimeoutError as e:
            raise RequestTimeoutError(f"Connecting to {target} timed out") from e
        except OSError as e:
            raise ConnectionFailureError(f"Cannot connect to {target}: {e}") from e

        try:
            raw_sock.settimeout(deadline.remaining())
            tls_sock = context.wrap_socket(raw_sock, server_hostname=target.hostname)
        except TimeoutError as e:
            raw_sock.close()
            raise RequestTimeoutError(f"TLS handshake with {target} timed out") from e
        except OSError as e:
            raw_sock.close()
            raise ConnectionFailureError(f"TLS handshake with {target} failed: {e}") from e
        except BaseException:
            raw_sock.close()
            raise

        if trace is not None:
            version = getattr(tls_sock, "version", lambda: None)()
            trace.add(
                "TLS connection established" + (f" ({version})" if version else ""),
                target=str(target),
            )
        return TlsConnection(tls_sock, target)

    def write(self, conn: TlsConnection, data: bytes, deadline: Deadline | None = None) -> None:
        """Send all of ``data``.

        Raises:
            ConnectionFailureError: If the socket fails before everything is sent.
            RequestTimeoutError: If the deadline expires first.
        """
        deadline = deadline or Deadline(None)
        try:
            conn.sock.settimeout(deadline.remaining())
            conn.sock.sendall(data)
        except TimeoutError as e:
            raise RequestTimeoutError(f"Sending request to {conn.target} timed out") from e
        except OSError as e:
            raise ConnectionFailureError(f"Sending request to {conn.target} failed: {e}") from e

    def read_all(self, conn: TlsConnection, deadline: Deadline | None = None) -> bytes:
        """Read until the peer closes the connection.

        End-of-stream is the only termination condition; the request always
        carries ``Connection: close``.

        Raises:
            ConnectionFailureError: If the socket fails mid-read.
            RequestTimeoutError: If the deadline expires first.
        """
        deadline = deadline or Deadline(None)
        chunks: list[bytes] = []
        while True:
            try:
                conn.sock.settimeout(deadline.remaining())
                chunk = conn.sock.recv(_BUFFER_SIZE)
            except TimeoutError as e:
                raise RequestTimeoutError(
                    f"Reading response from {conn.target} timed out"
                ) from e
            except (ssl.SSLZeroReturnError, ssl.SSLEOFError):
                # Peer closed without (or with) close_notify
                break
            except OSError as e:
                raise ConnectionFailureError(
                    f"Reading response from {conn.target} failed: {e}"
                ) from e
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)

    def close(self, conn: TlsConnection) -> None:
        """Release the connection. Idempotent."""
        conn.close()

    def round_trip(
        self,
        target: ConnectionTarget,
        data: bytes,
        deadline: Deadline | None = None,
        trace: Trace | None = None,
        label: str = "Request",
    ) -> bytes:
        """Open, send ``data``, read until close, and close.

        The connection is closed exactly once whether or not a step fails.

        Args:
            target: Host, port, and credential to connect with.
            data: Complete request bytes.
            deadline: Bounds the whole round trip.
            trace: Per-call trace; receives ``"<label> sent"`` after the write.
            label: Prefix of the trace line written after sending.

        Returns:
            Every byte the peer sent before closing.
        """
        deadline = deadline or Deadline()
        conn = self.open(target, deadline, trace)
        try:
            self.write(conn, data, deadline)
            if trace is not None:
                trace.add(f"{label} sent", bytes=len(data))
            return self.read_all(conn, deadline)
        finally:
            self.close(conn)
