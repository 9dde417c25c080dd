"""
=============================================================================
FILE SERVER CLI ENTRY POINT
=============================================================================

    # Serve the current directory on port 8888
    python -m fileserver

    # Another port and document root
    python -m fileserver --port 9000 --root ./public

    # Refuse targets that escape the document root
    python -m fileserver --confine

    # FILESERVER_* variables fill in flags that are not given
    FILESERVER_PORT=9000 FILESERVER_ROOT=./public python -m fileserver

Exit status is 0 after a SIGINT/SIGTERM shutdown and 1 when the server
cannot start (bad configuration, port in use) or accept() fails.

=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .server import FileServer
from .config import ServerConfig, LOG_FORMATS


def build_parser(defaults: Optional[ServerConfig] = None) -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Args:
        defaults: Values used for flags that are not given, normally
                  ServerConfig.from_env(). Plain ServerConfig() if omitted.
    """
    defaults = defaults or ServerConfig()

    parser = argparse.ArgumentParser(
        prog="fileserver",
        description="Concurrent HTTP/1.1 file server with keep-alive",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m fileserver                        # Serve . on port 8888
  python -m fileserver --port 9000 -r public  # Custom port and root
  python -m fileserver --confine              # Block ../ traversal
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host",
        default=defaults.host,
        help="Address to bind to (default: %(default)s)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help="Port to listen on (default: %(default)s)"
    )

    parser.add_argument(
        "--backlog",
        type=int,
        default=defaults.backlog,
        help="Pending-connection queue depth (default: %(default)s)"
    )

    parser.add_argument(
        "--buffer-size",
        type=int,
        default=defaults.buffer_size,
        help="Read/send chunk size in bytes (default: %(default)s)"
    )

    parser.add_argument(
        "--max-request-size",
        type=int,
        default=defaults.max_request_size,
        help="Largest accepted request head in bytes (default: %(default)s)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        default=defaults.root_dir,
        help="Directory to serve files from (default: %(default)s)"
    )

    parser.add_argument(
        "--index",
        default=defaults.default_document,
        help="File served for / (default: %(default)s)"
    )

    parser.add_argument(
        "--confine",
        action="store_true",
        default=defaults.confine_to_root,
        help="Answer 404 for paths that resolve outside the root"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.max_workers,
        help="Maximum worker threads, i.e. connections served at once (default: %(default)s)"
    )

    parser.add_argument(
        "--keep-alive-timeout",
        type=float,
        default=defaults.keep_alive_timeout,
        help="Close connections idle for this many seconds (default: never)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help="Logging level (default: %(default)s)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help="Access log format (default: %(default)s)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"fileserver {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Translate parsed CLI arguments into a ServerConfig."""
    return ServerConfig(
        host=args.host,
        port=args.port,
        backlog=args.backlog,
        buffer_size=args.buffer_size,
        max_request_size=args.max_request_size,
        root_dir=args.root,
        default_document=args.index,
        confine_to_root=args.confine,
        min_workers=min(4, args.workers),
        max_workers=args.workers,
        keep_alive_timeout=args.keep_alive_timeout,
        log_level=args.log_level,
        log_format=args.log_format,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status.
    """
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid environment setting: {e}", file=sys.stderr)
        return 1

    args = build_parser(defaults).parse_args(argv)

    try:
        server = FileServer(config_from_args(args))
    except ValueError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1

    try:
        server.run()
    except KeyboardInterrupt:
        pass
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
