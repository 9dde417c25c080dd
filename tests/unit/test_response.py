"""
Unit tests for HTTP response construction.
"""

from fileserver.http.response import (
    HTTPResponse,
    HTTPStatus,
    ok_head,
    NOT_FOUND_RESPONSE,
    REQUEST_TOO_LARGE_RESPONSE,
)


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        response = HTTPResponse(status=HTTPStatus.OK)
        assert response.status_line == "HTTP/1.1 200 OK"

        response = HTTPResponse(status=HTTPStatus.NOT_FOUND)
        assert response.status_line == "HTTP/1.1 404 Not Found"

    def test_head_bytes_keeps_header_order(self):
        response = (HTTPResponse()
            .set_header("B", "2")
            .set_header("A", "1"))

        assert response.head_bytes() == b"HTTP/1.1 200 OK\r\nB: 2\r\nA: 1\r\n\r\n"

    def test_no_implicit_headers(self):
        """Nothing is added that wasn't set: no Date, Server or Content-Length."""
        assert HTTPResponse().head_bytes() == b"HTTP/1.1 200 OK\r\n\r\n"


class TestFixedResponses:

    def test_ok_head(self):
        assert ok_head("text/html", 10) == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/html\r\n"
            b"Content-Length: 10\r\n"
            b"Connection: keep-alive\r\n"
            b"\r\n"
        )

    def test_not_found_is_exact(self):
        assert NOT_FOUND_RESPONSE == (
            b"HTTP/1.1 404 Not Found\r\n"
            b"Content-Type: text/html\r\n"
            b"Connection: close\r\n"
            b"\r\n"
            b"<html><body><h1>404 Not Found</h1></body></html>"
        )

    def test_request_too_large_closes(self):
        assert REQUEST_TOO_LARGE_RESPONSE.startswith(
            b"HTTP/1.1 431 Request Header Fields Too Large\r\n"
        )
        assert b"Connection: close\r\n" in REQUEST_TOO_LARGE_RESPONSE
