"""
Unit tests for request-line parsing.
"""

from fileserver.http.request import RequestLine, parse_request_line


class TestParseRequestLine:
    """Tests for parse_request_line()."""

    def test_parse_simple_get(self):
        """Method and target are the first two tokens."""
        request = parse_request_line(b"GET /index.html HTTP/1.1\r\n\r\n")

        assert request.method == "GET"
        assert request.target == "/index.html"

    def test_headers_are_not_interpreted(self):
        """Header lines, including Connection: close, are ignored."""
        raw = (
            b"GET /style.css HTTP/1.1\r\n"
            b"Host: localhost:8888\r\n"
            b"Connection: close\r\n"
            b"\r\n"
        )
        request = parse_request_line(raw)

        assert request == RequestLine(method="GET", target="/style.css", raw=raw)
        assert not hasattr(request, "headers")

    def test_any_whitespace_separates_tokens(self):
        request = parse_request_line(b"GET\t  /a.png   HTTP/1.0\n\n")

        assert request.method == "GET"
        assert request.target == "/a.png"

    def test_method_is_not_validated(self):
        request = parse_request_line(b"BREW /pot HTTP/1.1\r\n\r\n")

        assert request.method == "BREW"
        assert request.target == "/pot"

    def test_query_string_kept_in_target(self):
        request = parse_request_line(b"GET /a.html?x=1#top HTTP/1.1\r\n\r\n")

        assert request.target == "/a.html?x=1#top"

    def test_missing_target_is_empty(self):
        request = parse_request_line(b"GET\r\n\r\n")

        assert request.method == "GET"
        assert request.target == ""

    def test_empty_head(self):
        request = parse_request_line(b"\r\n\r\n")

        assert request.method == ""
        assert request.target == ""

    def test_non_ascii_target_round_trips(self):
        """Undecodable bytes survive so the file name opened is the one sent."""
        import os

        request = parse_request_line(b"GET /caf\xc3\xa9-\xff.html HTTP/1.1\r\n\r\n")

        assert os.fsencode(request.target) == b"/caf\xc3\xa9-\xff.html"
