"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one accepted client socket with the small API the
connection handler needs: read one request head, send bytes, close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. A client that writes

    GET /index.html HTTP/1.1\r\n\r\n

may be seen by the server as one recv() or as several:

    recv() → "GET /ind"
    recv() → "ex.html HTTP/1.1\r\n\r\n"

So we buffer received bytes until the request line is complete. Only
the method and target matter, so the request is answered right away:

    - blank line already buffered → the head is everything up to it;
      bytes after it start the next request on the same connection
    - no blank line yet           → the head is the request line alone;
      the header fields still in flight are dropped when they arrive

Empty lines in front of a request line are skipped, so a stray CRLF
after a request does not turn into a second, empty one.

=============================================================================
BOUNDED READS
=============================================================================

A request head may not grow past max_request_size. Without the bound a
client could stream an endless request line into our memory; with it we
answer "431 Request Header Fields Too Large" and hang up.

    ┌──────────────────────────────────────────────────────────────┐
    │  buffer < max  and no newline  →  recv() more               │
    │  buffer >= max and no newline  →  RequestTooLargeError      │
    │  request line complete         →  return the head           │
    │  recv() returns b"", data held →  return what was sent      │
    │  recv() returns b"", nothing   →  client went away          │
    └──────────────────────────────────────────────────────────────┘

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


# A request head ends at the first empty line. Bare LF is accepted for
# hand-typed requests (telnet, nc).
HEAD_TERMINATORS = (b"\r\n\r\n", b"\n\n")

# Unread client bytes discarded on close before giving up
MAX_DRAIN_BYTES = 64 * 1024


def is_field_line(data: bytes) -> bool:
    """
    True if the first line of data is a header field ("Name: value") or
    the continuation of one (leading space or tab).
    """
    if data[:1] in (b" ", b"\t"):
        return True
    tokens = data.split(None, 1)
    return bool(tokens) and b":" in tokens[0]


class RequestTooLargeError(ValueError):
    """Raised when a request head exceeds the connection's max_request_size."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Request head too large: {size} bytes (limit {limit})")
        self.size = size
        self.limit = limit


class ConnectionState(Enum):
    """
    Per-connection protocol states.

        AWAITING_REQUEST ──► PARSING ──► RESOLVING ─┬─► RESPONDING_OK ──┐
               ▲                                    │                   │
               └────────────────────────────────────┼───────────────────┘
                                                    └─► RESPONDING_NOT_FOUND ──► CLOSED

    Any read error, EOF or failed send goes straight to CLOSED.
    """
    AWAITING_REQUEST = "awaiting_request"
    PARSING = "parsing"
    RESOLVING = "resolving"
    RESPONDING_OK = "responding_ok"
    RESPONDING_NOT_FOUND = "responding_not_found"
    CLOSED = "closed"


# eq=False keeps identity hashing so live connections can be kept in a set
@dataclass(eq=False)
class Connection:
    """
    Represents one client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used to prefix log lines.
        state: Current protocol state.
        created_at: Timestamp when the connection was accepted.
        requests_handled: Number of request heads read so far.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.AWAITING_REQUEST
    created_at: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 2048
    max_request_size: int = 8192
    keep_alive_timeout: Optional[float] = None

    _buffer: bytes = field(default=b"", repr=False)
    _in_fields: bool = field(default=False, repr=False)

    def __post_init__(self):
        """Put the accepted socket in blocking mode, with the idle timeout if any."""
        self.socket.setblocking(True)

        if self.keep_alive_timeout:
            self.socket.settimeout(self.keep_alive_timeout)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    def read_request(self) -> Optional[bytes]:
        """
        Read one request head from the socket.

        Bytes are read in chunks of at most buffer_size. Empty lines in
        front of a request are skipped. The head is returned as soon as
        its request line is complete:

        - if the blank line ending the head is already buffered, the head
          runs up to and including it, and anything after stays buffered
          for the next call
        - otherwise only the request line is returned, and the header
          fields that follow are dropped as they arrive

        If the client stops sending before the request line is complete,
        whatever it did send is returned as the head.

        Returns:
            The request head, or None if the client closed the connection
            (or the idle timeout expired) without sending a request.

        Raises:
            RequestTooLargeError: If the head does not fit max_request_size.
            OSError: If the socket read fails.
        """
        self.state = ConnectionState.AWAITING_REQUEST

        while True:
            self._skip_leftovers()

            line_end = self._buffer.find(b"\n")
            if line_end >= 0:
                break

            if len(self._buffer) >= self.max_request_size:
                raise RequestTooLargeError(len(self._buffer), self.max_request_size)

            chunk = self._recv()
            if not chunk:
                return self._take_unterminated()

            self._buffer += chunk

        head_end = self._find_head_end()
        self._in_fields = head_end < 0
        if self._in_fields:
            head_end = line_end + 1

        if head_end > self.max_request_size:
            raise RequestTooLargeError(head_end, self.max_request_size)

        head = self._buffer[:head_end]
        self._buffer = self._buffer[head_end:]
        self.requests_handled += 1
        return head

    def _skip_leftovers(self):
        """
        Drop empty lines at the front of the buffer, and the header
        fields of a request that was answered from its request line.
        """
        while True:
            if self._buffer.startswith(b"\r\n"):
                self._buffer = self._buffer[2:]
                self._in_fields = False
            elif self._buffer.startswith(b"\n"):
                self._buffer = self._buffer[1:]
                self._in_fields = False
            elif self._in_fields and b"\n" in self._buffer and is_field_line(self._buffer):
                self._buffer = self._buffer[self._buffer.index(b"\n") + 1:]
            else:
                return

    def _take_unterminated(self) -> Optional[bytes]:
        """The client stopped sending: hand over what is buffered, if anything."""
        leftover = self._buffer
        self._buffer = b""

        if not leftover.strip() or (self._in_fields and is_field_line(leftover)):
            return None

        logger.debug(f"[{self.id}] Client stopped after {len(leftover)} bytes of unterminated request")
        self.requests_handled += 1
        return leftover

    def _find_head_end(self) -> int:
        """Index just past the first head terminator in the buffer, or -1."""
        ends = []
        for terminator in HEAD_TERMINATORS:
            pos = self._buffer.find(terminator)
            if pos >= 0:
                ends.append(pos + len(terminator))
        return min(ends) if ends else -1

    def _recv(self) -> bytes:
        """
        Receive at most buffer_size bytes.

        An expired idle timeout is reported as end of stream. Every other
        socket error propagates to the handler.
        """
        try:
            return self.socket.recv(self.buffer_size)
        except socket.timeout:
            logger.debug(f"[{self.id}] Keep-alive timeout")
            return b""

    def send(self, data: bytes) -> bool:
        """
        Send bytes to the client.

        Uses sendall() so the whole buffer goes out or the call fails.

        Returns:
            True if the send succeeded, False if the connection is gone.
        """
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def abort(self):
        """
        Shut the socket down in both directions without closing it.

        Safe to call from another thread: a worker blocked in recv() or
        sendall() on this socket wakes up with EOF or an error and runs
        its normal close path.
        """
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Already disconnected

    def close(self, drain: bool = True):
        """
        Close the connection.

        1. shutdown(SHUT_WR): send FIN so the client sees end of stream
        2. drain briefly so unread client bytes don't turn the close into RST
        3. close(): release the file descriptor

        Args:
            drain: Skip step 2 when False (the caller can't wait).

        Idempotent.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        if drain:
            try:
                self.socket.settimeout(0.5)
                drained = 0
                while drained < MAX_DRAIN_BYTES:
                    data = self.socket.recv(1024)
                    if not data:
                        break
                    drained += len(data)
            except OSError:
                pass  # Timeout or reset, closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensure connection is closed."""
        self.close()
        return False
