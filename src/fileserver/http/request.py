"""
=============================================================================
REQUEST LINE PARSING
=============================================================================

The server reads only the first two whitespace-separated tokens of a
request head:

    GET /images/logo.png HTTP/1.1\r\n
    Host: localhost:8888\r\n          ◄── read into the buffer,
    Connection: close\r\n             ◄── never interpreted
    \r\n
    │    │
    │    └── target
    └── method

Everything else, including the version and all headers, is ignored. A
client's "Connection: close" does not change how the server responds.
The method is not validated either: any method is answered as a GET.

A head with fewer than two tokens yields empty strings for the missing
ones. An empty target never resolves to a file, so it ends in a 404.

=============================================================================
"""

import os
from dataclasses import dataclass, field


@dataclass
class RequestLine:
    """
    The interpreted part of one request.

    Attributes:
        method: First token (e.g. "GET"), or "" if absent.
        target: Second token (e.g. "/index.html"), or "" if absent.
        raw: The full request head as received, for logging.
    """

    method: str
    target: str
    raw: bytes = field(default=b"", repr=False)


def parse_request_line(head: bytes) -> RequestLine:
    """
    Tokenize a request head into method and target.

    Args:
        head: Raw request head bytes.

    Returns:
        RequestLine with the first two whitespace-delimited tokens.

    Examples:
        >>> parse_request_line(b"GET / HTTP/1.1\\r\\n\\r\\n").target
        '/'
        >>> parse_request_line(b"GET\\r\\n\\r\\n").target
        ''
    """
    tokens = head.split(None, 2)

    # fsdecode round-trips to the original bytes when the target is opened
    method = os.fsdecode(tokens[0]) if len(tokens) > 0 else ""
    target = os.fsdecode(tokens[1]) if len(tokens) > 1 else ""

    return RequestLine(method=method, target=target, raw=head)
