"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER (THE LISTENER)
=============================================================================

This module owns the listening socket. It binds, listens, and accepts
connections, handing each one to a callback. It never reads or writes
connection data itself.

SOCKET LIFECYCLE (Server Side):
────────────────────────────────

    1. socket()    Create a socket file descriptor
    2. bind()      Associate the socket with IP:PORT
    3. listen()    Let the OS queue incoming connections (backlog)
    4. accept()    Wait for a client, get a NEW socket just for it
    5. close()     Release the listening socket

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once in start()
                    │   0.0.0.0:8888        │     Never sends/receives data
                    └───────────┬───────────┘
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │Connection │         │Connection │         │Connection │
    │ (worker)  │         │ (worker)  │         │ (worker)  │
    └───────────┘         └───────────┘         └───────────┘

=============================================================================
FAILURE POLICY
=============================================================================

- bind()/listen() failure is a startup error: logged and re-raised.
- accept() failure while running is fatal: the loop ends and
  AcceptError is raised so the process can exit non-zero.
- accept() timing out is NOT a failure. The 1 second timeout only
  exists so shutdown() can stop the loop from another thread.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class AcceptError(OSError):
    """Raised when accept() fails while the server is running."""


class SocketServer:
    """
    Low-level TCP socket server.

    Usage:
        def dispatch(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(dispatch)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        """
        Initialize the socket server.

        Args:
            config: Server configuration (host, port, backlog, buffer sizes).

        The socket is created lazily in start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None

        self._running = False
        self._listening = threading.Event()

        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """
        Get the server's address (IP, port).

        Once bound this is the real address, so a configured port of 0
        reports the port the OS picked.
        """
        return self._bound_address or (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """
        Create and configure the listening socket.

        SO_REUSEADDR lets a restarted server bind while the old socket is
        still in TIME_WAIT. TCP_NODELAY sends small header blocks without
        waiting for Nagle's algorithm.
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # Bounded accept() so the loop can notice shutdown()
        sock.settimeout(1.0)

        return sock

    def _setup_signals(self):
        """
        Install SIGTERM/SIGINT handlers that call shutdown().

        Python only allows this from the main thread; when the server is
        run from another thread (tests, embedding) shutdown() must be
        called directly.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop.

        This method BLOCKS until shutdown() is called or accept() fails.

        Args:
            connection_handler: Called once per accepted connection. It
                                must not block; it hands the connection to
                                a worker and returns.

        Raises:
            OSError: If the socket cannot be created, bound or put in
                     listening mode.
            AcceptError: If accept() fails while running.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
            self._socket.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._cleanup()
            raise

        self._bound_address = self._socket.getsockname()[:2]
        self._running = True
        self._setup_signals()
        self._listening.set()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown.

            while running:
                accept()             ← blocks (1s max)
                Connection(...)      ← wrap client socket
                connection_handler() ← hand off, don't wait
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break  # Socket closed by shutdown()
                logger.error(f"Accept failed: {e}")
                raise AcceptError(e.errno, f"accept() failed: {e.strerror or e}") from e

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                max_request_size=self.config.max_request_size,
                keep_alive_timeout=self.config.keep_alive_timeout,
            )

            logger.debug(f"[{conn.id}] Accepted connection from {client_address[0]}:{client_address[1]}")

            connection_handler(conn)

    def shutdown(self):
        """
        Stop the accept loop.

        Safe to call from a signal handler or another thread, and safe
        to call more than once.
        """
        if self._running:
            logger.info("Shutting down listener...")
        self._running = False

    def _cleanup(self):
        """Restore signal handlers and close the listening socket."""
        self._running = False
        self._listening.clear()
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None

        logger.info("Listener stopped")

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the socket to be bound and listening.

        Returns:
            True if the server is listening, False on timeout.
        """
        return self._listening.wait(timeout)
