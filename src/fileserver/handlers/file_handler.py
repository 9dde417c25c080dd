"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Owns one accepted connection from first byte to close, and answers every
request on it with a file or a 404.

=============================================================================
THE KEEP-ALIVE LOOP
=============================================================================

    ┌──────────────────────────────────────────────────────────────────┐
    │                                                                   │
    │   AWAITING_REQUEST   read_request()                               │
    │        │   ├── None (EOF)          ──────────────────► CLOSED     │
    │        │   ├── OSError             ──────────────────► CLOSED     │
    │        │   └── RequestTooLarge     ── send 431 ──────► CLOSED     │
    │        ▼                                                          │
    │   PARSING            parse_request_line()                         │
    │        ▼                                                          │
    │   RESOLVING          resolver.resolve() + resolver.open()         │
    │        │   └── None                ── send 404 ──────► CLOSED     │
    │        ▼                                                          │
    │   RESPONDING_OK      send headers, stream file in chunks          │
    │        │   └── send/read failure   ──────────────────► CLOSED     │
    │        │                                                          │
    │        └──────────────► back to AWAITING_REQUEST                  │
    │                                                                   │
    └──────────────────────────────────────────────────────────────────┘

A 404 always closes the connection, even though the client may have
asked for keep-alive. A 200 always keeps it open: client headers,
including "Connection: close", are never read.

Requests on one connection are handled strictly one after another. The
file opened for a request is closed before the next read.

=============================================================================
"""

import time
import logging
from typing import Optional

from ..core.connection import Connection, ConnectionState, RequestTooLargeError
from ..http.request import RequestLine, parse_request_line
from ..http.resolver import PathResolver, OpenFile
from ..http.response import ok_head, NOT_FOUND_RESPONSE, REQUEST_TOO_LARGE_RESPONSE
from ..http.response import NOT_FOUND_BODY, REQUEST_TOO_LARGE_BODY
from ..http.mime_types import get_mime_type
from ..http.status_codes import HTTPStatus
from .access_log import AccessLogger


logger = logging.getLogger(__name__)


class ConnectionHandler:
    """
    Serves files over one connection until it ends.

    The handler itself is stateless and shared by all worker threads;
    all per-connection state lives in the Connection passed to handle().

    Usage:
        handler = ConnectionHandler(PathResolver("/var/www"), buffer_size=2048)
        pool.submit(handler.handle, args=(conn,))
    """

    def __init__(
        self,
        resolver: PathResolver,
        buffer_size: int = 2048,
        access_logger: Optional[AccessLogger] = None,
    ):
        """
        Args:
            resolver: Maps targets to files.
            buffer_size: Largest chunk of file data sent in one write.
            access_logger: Where to record answered requests.
        """
        self.resolver = resolver
        self.buffer_size = buffer_size
        self.access_logger = access_logger or AccessLogger()

    def handle(self, conn: Connection) -> None:
        """
        Run the keep-alive loop for one connection, then close it.

        Never raises: every error ends this connection only.
        """
        with conn:
            try:
                while self._handle_one(conn):
                    pass
            except Exception as e:
                logger.exception(f"[{conn.id}] Connection error: {e}")

    def _handle_one(self, conn: Connection) -> bool:
        """
        Read and answer one request.

        Returns:
            True to wait for another request on this connection.
        """
        try:
            head = conn.read_request()
        except RequestTooLargeError as e:
            logger.warning(f"[{conn.id}] {e}")
            started_at = time.time()
            conn.send(REQUEST_TOO_LARGE_RESPONSE)
            self._log(conn, RequestLine("", ""), HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE,
                      len(REQUEST_TOO_LARGE_BODY), started_at)
            return False
        except OSError as e:
            logger.warning(f"[{conn.id}] Read failed: {e}")
            return False

        if head is None:
            logger.debug(f"[{conn.id}] Client disconnected")
            return False

        return self.serve(conn, head)

    def serve(self, conn: Connection, head: bytes) -> bool:
        """
        Answer one request head.

        Returns:
            True if a 200 was sent completely and the connection may be
            reused, False if it must be closed.
        """
        started_at = time.time()

        conn.state = ConnectionState.PARSING
        request = parse_request_line(head)

        conn.state = ConnectionState.RESOLVING
        resolved = self.resolver.resolve(request.target)
        opened = self.resolver.open(resolved)

        if opened is None:
            conn.state = ConnectionState.RESPONDING_NOT_FOUND
            # Logged whether or not the send succeeds
            conn.send(NOT_FOUND_RESPONSE)
            self._log(conn, request, HTTPStatus.NOT_FOUND, len(NOT_FOUND_BODY), started_at)
            return False

        conn.state = ConnectionState.RESPONDING_OK
        with opened:
            return self._send_file(conn, request, resolved, opened, started_at)

    def _send_file(
        self,
        conn: Connection,
        request: RequestLine,
        resolved: str,
        opened: OpenFile,
        started_at: float,
    ) -> bool:
        """Send the 200 header block, then the file body chunk by chunk."""
        if not conn.send(ok_head(get_mime_type(resolved), opened.size)):
            return False

        sent = 0
        try:
            for chunk in opened.chunks(self.buffer_size):
                if not conn.send(chunk):
                    return False
                sent += len(chunk)
        except OSError as e:
            logger.warning(f"[{conn.id}] Read of {opened.path!r} failed: {e}")
            return False

        self._log(conn, request, HTTPStatus.OK, sent, started_at)

        if sent != opened.size:
            # Content-Length promised more; the client can't find the next response
            logger.warning(
                f"[{conn.id}] {opened.path!r} shrank while sending "
                f"({sent} of {opened.size} bytes), closing"
            )
            return False

        return True

    def _log(
        self,
        conn: Connection,
        request: RequestLine,
        status: HTTPStatus,
        content_length: int,
        started_at: float,
    ):
        self.access_logger.log(
            conn_id=conn.id,
            client_ip=conn.client_ip,
            method=request.method,
            target=request.target,
            status_code=status,
            content_length=content_length,
            started_at=started_at,
        )
