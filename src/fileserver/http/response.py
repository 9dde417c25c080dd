"""
=============================================================================
HTTP RESPONSE CONSTRUCTION
=============================================================================

The server sends only three kinds of response. The header block is always
sent on its own first; for a 200 the body is then streamed from the file
in chunks, so a response is never held in memory whole.

    200 (keep-alive):                    404 (always closes):

    HTTP/1.1 200 OK\r\n                  HTTP/1.1 404 Not Found\r\n
    Content-Type: <mime>\r\n             Content-Type: text/html\r\n
    Content-Length: <size>\r\n           Connection: close\r\n
    Connection: keep-alive\r\n           \r\n
    \r\n                                 <html><body><h1>404 Not Found...
    <file bytes, streamed>

Content-Length is what lets a keep-alive client find the end of one
response and the start of the next on the same socket. It must equal the
number of body bytes exactly.

No Date or Server header is added. The header block contains exactly the
headers given, in the order given.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    Status line plus headers of an HTTP response.

    Attributes:
        status: HTTP status code.
        headers: Header names to values, serialized in insertion order.
        version: HTTP version for the status line.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.version} {self.status} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def head_bytes(self) -> bytes:
        """
        Serialize the status line and headers, ending with the blank line.

        Returns:
            Header block ready for socket.sendall(); the body, if any,
            follows it on the wire.
        """
        lines = [self.status_line]

        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")

        lines.append("")

        return ("\r\n".join(lines) + "\r\n").encode("latin-1")

    def with_body(self, body: bytes) -> bytes:
        """Header block followed by body, for small fixed responses."""
        return self.head_bytes() + body


def ok_head(content_type: str, content_length: int) -> bytes:
    """
    Build the header block of a 200 response.

    Args:
        content_type: Value for Content-Type (see mime_types).
        content_length: Exact size of the body that will follow.

    Example:
        >>> ok_head("text/html", 10)
        b'HTTP/1.1 200 OK\\r\\nContent-Type: text/html\\r\\nContent-Length: 10\\r\\nConnection: keep-alive\\r\\n\\r\\n'
    """
    response = (HTTPResponse(HTTPStatus.OK)
        .set_header("Content-Type", content_type)
        .set_header("Content-Length", str(content_length))
        .set_header("Connection", "keep-alive"))
    return response.head_bytes()


# The 404 has no Content-Length; "Connection: close" tells the client the
# body ends when the socket does.
NOT_FOUND_BODY = b"<html><body><h1>404 Not Found</h1></body></html>"

NOT_FOUND_RESPONSE = (HTTPResponse(HTTPStatus.NOT_FOUND)
    .set_header("Content-Type", "text/html")
    .set_header("Connection", "close")
    .with_body(NOT_FOUND_BODY))


REQUEST_TOO_LARGE_BODY = b"<html><body><h1>431 Request Header Fields Too Large</h1></body></html>"

REQUEST_TOO_LARGE_RESPONSE = (HTTPResponse(HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE)
    .set_header("Content-Type", "text/html")
    .set_header("Connection", "close")
    .with_body(REQUEST_TOO_LARGE_BODY))
