"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The file server answers with only a handful of statuses:

    200 OK                               File found, body follows
    404 Not Found                        Any failure to open the target
    431 Request Header Fields Too Large  Request head over the size limit

Every failure to resolve a target collapses into 404. There is no 500:
a transport error just closes the connection.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the server.

    Inherits from IntEnum so members compare and format as integers:

        >>> HTTPStatus.OK == 200
        True
        >>> f"{HTTPStatus.NOT_FOUND}"
        '404'
    """

    OK = 200
    NOT_FOUND = 404
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line.

        Example: HTTPStatus.NOT_FOUND.phrase → "Not Found"
        """
        return _PHRASES[self]

    def __str__(self) -> str:
        return str(self.value)

    def __format__(self, format_spec: str) -> str:
        return format(self.value, format_spec)


_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE: "Request Header Fields Too Large",
}
