"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the file server.

The defaults below are the values the server has always shipped with as
constants (port 8888, backlog 10, 2 KB buffers). They can now be changed
from code, the command line or the environment without touching the
protocol behavior.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m fileserver --port 9000                          │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── FILESERVER_PORT=9000 python -m fileserver                 │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, max_request_size

    FILES
    - root_dir, default_document, confine_to_root

    THREADING SETTINGS
    - min_workers, max_workers, queue_size, keep_alive_timeout

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces (default)
    - "127.0.0.1" - Localhost only
    """

    port: int = 8888
    """
    The port number to listen on. 0 lets the OS pick a free port.
    """

    backlog: int = 10
    """
    Maximum number of queued connections waiting for accept().
    """

    buffer_size: int = 2048
    """
    Size of each socket read and of each file chunk sent, in bytes.
    """

    max_request_size: int = 8192
    """
    Upper bound for one request head (request line plus headers).
    Larger heads are answered with 431 and the connection is closed.
    """

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "."
    """
    Directory request targets are resolved against.
    """

    default_document: str = "index.html"
    """
    File served for the target "/".
    """

    confine_to_root: bool = False
    """
    Refuse resolved paths that escape root_dir (e.g. "/../secret").
    Off by default: targets are stripped and opened as-is.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """
    Worker threads created at startup.
    """

    max_workers: int = 128
    """
    Hard cap on worker threads. Each live connection holds one worker,
    so this is also the number of connections served at the same time.
    """

    queue_size: int = 64
    """
    Accepted connections allowed to wait for a free worker once
    max_workers is reached. Beyond this they are closed immediately.
    """

    keep_alive_timeout: Optional[float] = None
    """
    Idle seconds before a connection waiting for its next request is
    closed. None = wait forever.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    log_format: str = "text"
    """
    Access log format: 'text' or 'json'.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        FILESERVER_HOST         Bind address (default: 0.0.0.0)
        FILESERVER_PORT         Port (default: 8888)
        FILESERVER_BACKLOG      Listen backlog (default: 10)
        FILESERVER_BUFFER_SIZE  Chunk size in bytes (default: 2048)
        FILESERVER_ROOT         Document root (default: .)
        FILESERVER_WORKERS      Max worker threads (default: 128)
        FILESERVER_LOG_LEVEL    Logging level (default: INFO)

        =====================================================================
        """
        max_workers = int(os.getenv("FILESERVER_WORKERS", "128"))

        return cls(
            host=os.getenv("FILESERVER_HOST", "0.0.0.0"),
            port=int(os.getenv("FILESERVER_PORT", "8888")),
            backlog=int(os.getenv("FILESERVER_BACKLOG", "10")),
            buffer_size=int(os.getenv("FILESERVER_BUFFER_SIZE", "2048")),
            root_dir=os.getenv("FILESERVER_ROOT", "."),
            min_workers=min(4, max_workers),
            max_workers=max_workers,
            log_level=os.getenv("FILESERVER_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so a bad value fails before the socket
        is bound.

        Raises:
            ValueError: On the first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.keep_alive_timeout is not None and self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}")
