"""
HTTP protocol pieces: request-line parsing, path resolution, MIME types
and response headers.
"""

from .status_codes import HTTPStatus
from .request import RequestLine, parse_request_line
from .response import (
    HTTPResponse,
    ok_head,
    NOT_FOUND_RESPONSE,
    REQUEST_TOO_LARGE_RESPONSE,
)
from .mime_types import get_mime_type, MIME_TYPES, DEFAULT_MIME_TYPE
from .resolver import PathResolver, OpenFile

__all__ = [
    "HTTPStatus",
    "RequestLine",
    "parse_request_line",
    "HTTPResponse",
    "ok_head",
    "NOT_FOUND_RESPONSE",
    "REQUEST_TOO_LARGE_RESPONSE",
    "get_mime_type",
    "MIME_TYPES",
    "DEFAULT_MIME_TYPE",
    "PathResolver",
    "OpenFile",
]
