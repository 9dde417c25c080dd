"""
pytest configuration and fixtures.
"""

import socket
import threading
import time
from pathlib import Path
from typing import Callable, Dict, Generator, Optional, Tuple
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fileserver import FileServer, ServerConfig


INDEX_HTML = b"<p>hi!</p>"  # 10 bytes
SECRET = b"top secret, outside the root\n"


def make_blob(size: int, seed: int) -> bytes:
    """Deterministic bytes that differ per seed."""
    return bytes((i * 31 + seed * 17) % 251 for i in range(size))


@pytest.fixture
def docroot(tmp_path: Path) -> Path:
    """
    A document root with one file per MIME type plus a large binary.

        tmp_path/
        ├── secret.txt         (outside the root)
        └── www/
            ├── index.html
            ├── style.css
            ├── app.js
            ├── logo.png
            ├── photo.jpeg
            ├── notes.txt
            ├── big.bin        (several buffers long)
            └── sub/page.html
    """
    (tmp_path / "secret.txt").write_bytes(SECRET)

    root = tmp_path / "www"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "style.css").write_bytes(b"body { color: red; }\n")
    (root / "app.js").write_bytes(b"console.log('hi');\n")
    (root / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n" + make_blob(300, 1))
    (root / "photo.jpeg").write_bytes(b"\xff\xd8\xff" + make_blob(200, 2))
    (root / "notes.txt").write_bytes(b"plain notes\n")
    (root / "big.bin").write_bytes(make_blob(10_000, 3))
    (root / "sub").mkdir()
    (root / "sub" / "page.html").write_bytes(b"<h1>sub</h1>")
    return root


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


def wait_for(condition: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll condition until it is true or timeout passes."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if condition():
            return True
        time.sleep(0.02)
    return condition()


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # not a test class

    def __init__(self, server: FileServer):
        self.server = server
        self.error: Optional[BaseException] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def _run(self):
        try:
            self.server.run()
        except BaseException as e:
            self.error = e

    def start(self) -> "TestServer":
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_listening(timeout=5.0):
            raise RuntimeError(f"Server failed to start: {self.error}")
        return self

    def stop(self, timeout: float = 15.0) -> bool:
        """Stop the server; True if its thread ended in time."""
        self.server.shutdown()
        if self._thread:
            self._thread.join(timeout=timeout)
            return not self._thread.is_alive()
        return True

    def connect(self, timeout: float = 5.0) -> "HTTPClient":
        return HTTPClient(socket.create_connection(("127.0.0.1", self.port), timeout=timeout))


class HTTPClient:
    """
    Raw-socket client that reads responses framed by Content-Length.

    Keeps unread bytes between calls so pipelined responses work.
    """

    __test__ = False

    def __init__(self, sock: socket.socket):
        self.sock = sock
        self._buffer = b""

    def send(self, data: bytes):
        self.sock.sendall(data)

    def get(self, target: str, extra_headers: bytes = b""):
        self.send(f"GET {target} HTTP/1.1\r\n".encode() + b"Host: test\r\n" + extra_headers + b"\r\n")
        return self.read_response()

    def _fill(self) -> bool:
        chunk = self.sock.recv(65536)
        if not chunk:
            return False
        self._buffer += chunk
        return True

    def read_response(self) -> Tuple[str, Dict[str, str], bytes]:
        """
        Read one response.

        Returns:
            (status line, headers, body). Without Content-Length the body
            runs to end of stream.
        """
        while b"\r\n\r\n" not in self._buffer:
            if not self._fill():
                raise ConnectionError(f"closed before headers: {self._buffer!r}")

        head, self._buffer = self._buffer.split(b"\r\n\r\n", 1)
        lines = head.decode("latin-1").split("\r\n")
        status_line = lines[0]
        headers = {}
        for line in lines[1:]:
            name, value = line.split(":", 1)
            headers[name.strip()] = value.strip()

        if "Content-Length" in headers:
            length = int(headers["Content-Length"])
            while len(self._buffer) < length:
                if not self._fill():
                    raise ConnectionError("closed mid-body")
            body, self._buffer = self._buffer[:length], self._buffer[length:]
        else:
            while self._fill():
                pass
            body, self._buffer = self._buffer, b""

        return status_line, headers, body

    def read_all(self) -> bytes:
        """Everything until the server closes the connection."""
        while self._fill():
            pass
        data, self._buffer = self._buffer, b""
        return data

    def is_closed_by_server(self) -> bool:
        """True if the next read sees end of stream (or a reset)."""
        try:
            return self.sock.recv(1) == b""
        except ConnectionResetError:
            return True

    def close(self):
        self.sock.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


def make_config(docroot: Path, **overrides) -> ServerConfig:
    """Test configuration: loopback, ephemeral port, quiet logs."""
    values = dict(
        host="127.0.0.1",
        port=0,
        root_dir=str(docroot),
        min_workers=2,
        max_workers=32,
        log_level="WARNING",
    )
    values.update(overrides)
    return ServerConfig(**values)


@pytest.fixture
def server_factory(docroot: Path) -> Generator[Callable[..., TestServer], None, None]:
    """Start servers with config overrides; all are stopped after the test."""
    started = []

    def factory(**overrides) -> TestServer:
        srv = TestServer(FileServer(make_config(docroot, **overrides))).start()
        started.append(srv)
        return srv

    yield factory

    for srv in started:
        srv.stop()


@pytest.fixture
def test_server(server_factory) -> TestServer:
    """A running server with default settings over docroot."""
    return server_factory()
