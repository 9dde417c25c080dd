"""
=============================================================================
FILE SERVER
=============================================================================

The orchestrator that wires configuration, logging, the listener, the
worker pool and the connection handler together.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   FileServer    │   run() owns everything  │
    │                        └────────┬────────┘                          │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────────┐    │
    │    │ SocketServer │    │  ThreadPool  │    │ConnectionHandler │    │
    │    │  (Listener)  │    │ (Supervisor) │    │  (per request)   │    │
    │    └──────┬───────┘    └──────┬───────┘    └──────────────────┘    │
    │           │ accept()          │ one worker per connection          │
    │           ▼                   ▼                                     │
    │    ┌──────────────┐    ┌──────────────┐                            │
    │    │  Connection  │───►│ handler.handle(conn) until the client      │
    │    └──────────────┘    │ leaves, a 404 is sent, or an error         │
    │                        └──────────────┘                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONNECTION LIFECYCLE
=============================================================================

    1. Listener accepts and wraps the socket in a Connection
    2. _dispatch() registers it and submits it to the pool; the
       listener goes straight back to accept()
    3. If no worker can take it, it is closed immediately
    4. A worker runs the keep-alive loop and closes the connection
    5. The connection is unregistered

On shutdown every registered connection is aborted, which wakes workers
blocked reading from idle clients, and the pool is drained. Nothing is
left open when run() returns.

=============================================================================
"""

import logging
import threading
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .handlers import ConnectionHandler, AccessLogger
from .http import PathResolver


logger = logging.getLogger(__name__)


class FileServer:
    """
    Concurrent HTTP/1.1 file server with keep-alive.

    Usage:
        server = FileServer(ServerConfig(port=8888, root_dir="./public"))
        server.run()    # blocks until SIGINT/SIGTERM or shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Initialize the file server.

        Args:
            config: Server configuration. Defaults are used if omitted.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)

        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )

        self._handler = ConnectionHandler(
            resolver=PathResolver(
                root_dir=self.config.root_dir,
                default_document=self.config.default_document,
                confine_to_root=self.config.confine_to_root,
            ),
            buffer_size=self.config.buffer_size,
            access_logger=AccessLogger(log_format=self.config.log_format),
        )

        # Live connections, so shutdown can close them
        self._connections: set = set()
        self._connections_lock = threading.Lock()

    @property
    def address(self):
        """Bound (host, port); the real port once listening."""
        return self._socket_server.address

    @property
    def active_connections(self) -> int:
        with self._connections_lock:
            return len(self._connections)

    def run(self):
        """
        Start the server (blocking).

        Raises:
            OSError: If the listening socket cannot be bound.
            AcceptError: If accept() fails while serving.
        """
        self._setup_logging()

        self._thread_pool.start()

        logger.info(
            f"Serving {self.config.root_dir!r} on {self.config.host}:{self.config.port} "
            f"(buffer {self.config.buffer_size} bytes, up to {self.config.max_workers} workers)"
        )

        try:
            self._socket_server.start(self._dispatch)
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask a running server to stop. Returns immediately."""
        self._socket_server.shutdown()

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_listening(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("fileserver").setLevel(level)

    def _shutdown(self):
        """
        Close every live connection, then drain the pool.

        Aborting a connection makes its worker's blocking recv() return,
        so the worker finishes its loop and closes the socket itself.
        """
        logger.info("Shutting down server...")

        with self._connections_lock:
            live = list(self._connections)

        if live:
            logger.info(f"Closing {len(live)} open connections")
        for conn in live:
            conn.abort()

        self._thread_pool.shutdown(wait=True, timeout=10.0)

        logger.info("Server stopped")

    def _dispatch(self, conn: Connection):
        """
        Hand a new connection to a worker. Called on the listener thread.

        Must not block: the listener is waiting to accept the next client.
        """
        with self._connections_lock:
            self._connections.add(conn)

        try:
            submitted = self._thread_pool.submit(self._process_connection, args=(conn,))
        except RuntimeError as e:
            logger.warning(f"[{conn.id}] Thread pool unavailable: {e}")
            submitted = False

        if not submitted:
            logger.warning(f"[{conn.id}] No worker available, closing connection")
            self._forget(conn)
            conn.close(drain=False)

    def _process_connection(self, conn: Connection):
        """Run the handler for one connection (worker thread)."""
        try:
            self._handler.handle(conn)
        finally:
            self._forget(conn)

    def _forget(self, conn: Connection):
        with self._connections_lock:
            self._connections.discard(conn)


def create_server(config: Optional[ServerConfig] = None) -> FileServer:
    """
    Create a file server.

    Example:
        server = create_server(ServerConfig(port=9000, root_dir="site"))
        server.run()
    """
    return FileServer(config)
