"""
=============================================================================
FILESERVER - Concurrent HTTP/1.1 File Server with Keep-Alive
=============================================================================

Serves files from a directory over raw sockets. One worker thread per
connection; each connection may carry any number of sequential GET
requests until the client hangs up or asks for a file that isn't there.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    fileserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m fileserver)
    ├── server.py            # FileServer orchestrator
    ├── config.py            # ServerConfig dataclass
    ├── core/
    │   ├── socket_server.py # Listener: bind, listen, accept loop
    │   ├── connection.py    # Client socket wrapper and protocol states
    │   └── thread_pool.py   # Supervised worker pool
    ├── http/
    │   ├── request.py       # Request-line tokenizing
    │   ├── resolver.py      # Target → file path, open
    │   ├── response.py      # 200 header block, fixed 404/431
    │   ├── status_codes.py  # HTTPStatus
    │   └── mime_types.py    # Extension → Content-Type
    └── handlers/
        ├── file_handler.py  # The keep-alive loop
        └── access_log.py    # One log line per answered request

=============================================================================
QUICK START
=============================================================================

    from fileserver import FileServer, ServerConfig

    server = FileServer(ServerConfig(port=8888, root_dir="./public"))
    server.run()

or from a shell:

    python -m fileserver --port 8888 --root ./public

=============================================================================
"""

__version__ = "1.0.0"

from .server import FileServer, create_server
from .config import ServerConfig

__all__ = ["FileServer", "create_server", "ServerConfig", "__version__"]
