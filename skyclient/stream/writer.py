"""Chunked HTTP/1.0 request writer over a raw TCP connection."""
import http.client
import socket
from enum import Enum

import structlog

from ..config import get_settings
from ..errors import StreamError, StreamStateError, TransportError
from ..metrics import collector, STREAMS_OPEN, STREAM_CHUNKS_TOTAL, STREAM_BYTES_TOTAL

log = structlog.get_logger()

TERMINATING_CHUNK = b"0\r\n\r\n"


class StreamState(str, Enum):
    """Lifecycle of a stream writer."""
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    CLOSED = "closed"


def encode_chunk(payload: bytes) -> bytes:
    """Frame ``payload`` as one chunk: lowercase hex length, CRLF, bytes, CRLF."""
    return b"%x\r\n" % len(payload) + payload + b"\r\n"


class ChunkedStreamWriter:
    """
    Writes an open-ended sequence of payloads as the chunked body of a single
    ``PATCH`` request, then reads the server's one response on close.

    The writer owns its socket exclusively and is not safe for concurrent use.
    Chunks reach the wire in the order ``append`` was called.
    """

    def __init__(
        self,
        host: str,
        port: int,
        path: str,
        connect_timeout: float | None = None,
        timeout: float | None = None,
        auto_flush: bool = True,
    ):
        """
        Initialize an unconnected writer.

        Args:
            host: Server host
            port: Server port
            path: Request path, e.g. "/events"
            connect_timeout: Dial timeout (defaults to settings.CONNECT_TIMEOUT)
            timeout: Write and handshake read deadline (defaults to settings.STREAM_TIMEOUT)
            auto_flush: Write each chunk to the socket as soon as it is appended
        """
        settings = get_settings()
        self.host = host
        self.port = port
        self.path = path
        self.connect_timeout = connect_timeout if connect_timeout is not None else settings.CONNECT_TIMEOUT
        self.timeout = timeout if timeout is not None else settings.STREAM_TIMEOUT
        self.auto_flush = auto_flush
        self._header = (
            f"PATCH {path} HTTP/1.0\r\n"
            f"Host: {host}\r\n"
            "Content-Type: application/json\r\n"
            "Transfer-Encoding: chunked\r\n"
            "\r\n"
        ).encode("ascii")
        self._sock: socket.socket | None = None
        self._buffer = bytearray()
        self._state = StreamState.UNCONNECTED

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def header(self) -> bytes:
        return self._header

    def open(self):
        """
        Dial the server and write the request header.

        Any existing connection is released first. On failure the writer is
        left unconnected.

        Raises:
            TransportError: If the dial or header write fails
        """
        self._release()
        self._state = StreamState.UNCONNECTED

        sock = None
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.connect_timeout)
            sock.settimeout(self.timeout)
            sock.sendall(self._header)
        except OSError as e:
            if sock is not None:
                sock.close()
            log.warning("stream.connect_failed", host=self.host, port=self.port, path=self.path, error=str(e))
            raise TransportError(f"Unable to open stream to {self.host}:{self.port}{self.path}: {e}") from e

        self._sock = sock
        self._state = StreamState.CONNECTED
        collector.adjust(STREAMS_OPEN, 1)
        log.info("stream.connected", host=self.host, port=self.port, path=self.path)

    reconnect = open

    def append(self, payload: bytes):
        """
        Frame ``payload`` as one chunk.

        An empty payload terminates the body, so it runs the full close
        handshake and leaves the writer closed.

        Raises:
            StreamStateError: If the writer is not connected
            TransportError: If the chunk could not be written
            StreamError: If an empty payload's handshake is rejected
        """
        self._require_connected("append")
        if not payload:
            self.close()
            return
        self._buffer += encode_chunk(payload)
        collector.increment(STREAM_CHUNKS_TOTAL)
        collector.increment(STREAM_BYTES_TOTAL, len(payload))
        if self.auto_flush:
            self._write_buffer()

    def flush(self):
        """Write every buffered chunk to the socket."""
        self._require_connected("flush")
        self._write_buffer()

    def close(self):
        """
        Finish the request body and wait for the server's acknowledgement.

        The socket is released on every exit path.

        Raises:
            StreamStateError: If the writer is not connected
            StreamError: If the server answers with a non-200 status or a
                malformed response
            TransportError: If writing or reading the handshake fails
        """
        self._require_connected("close")
        try:
            self._buffer += TERMINATING_CHUNK
            self._write_buffer()
            status, reason = self._read_response()
        finally:
            self._release()
            self._state = StreamState.CLOSED

        if status != 200:
            log.warning("stream.rejected", path=self.path, status_code=status, reason=reason)
            raise StreamError(f"{status} {reason}".strip(), status_code=status)
        log.info("stream.closed", path=self.path, status_code=status)

    def abort(self):
        """Release the connection without the close handshake."""
        self._release()
        self._state = StreamState.CLOSED

    def _read_response(self) -> tuple[int, str]:
        response = http.client.HTTPResponse(self._sock, method="PATCH")
        try:
            response.begin()
            response.read()
        except http.client.HTTPException as e:
            raise StreamError(f"Malformed stream response: {e!r}") from e
        except OSError as e:
            raise TransportError(f"Unable to read stream response: {e}") from e
        finally:
            response.close()
        return response.status, response.reason

    def _write_buffer(self):
        if not self._buffer:
            return
        data = bytes(self._buffer)
        self._buffer.clear()
        try:
            self._sock.sendall(data)
        except OSError as e:
            log.warning("stream.send_failed", path=self.path, error=str(e))
            self._release()
            self._state = StreamState.UNCONNECTED
            raise TransportError(f"Unable to write to stream {self.path}: {e}") from e

    def _require_connected(self, operation: str):
        if self._state is not StreamState.CONNECTED:
            raise StreamStateError(f"Cannot {operation} a stream that is {self._state.value}")

    def _release(self):
        self._buffer.clear()
        if self._sock is not None:
            sock, self._sock = self._sock, None
            sock.close()
            collector.adjust(STREAMS_OPEN, -1)

    def __enter__(self) -> "ChunkedStreamWriter":
        if self._state is not StreamState.CONNECTED:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None and self._state is StreamState.CONNECTED:
            self.close()
        else:
            self.abort()
