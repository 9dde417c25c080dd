"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps a file's extension to the Content-Type sent with it.

MIME types tell the client how to interpret the body, in the form
type/subtype:

    text/html                 → render as a web page
    image/png                 → display as an image
    application/octet-stream  → unknown binary data (usually downloaded)

=============================================================================
LOOKUP RULE
=============================================================================

The extension is everything from the LAST "." in the resolved path:

    "index.html"        → ".html"        → text/html
    "photo.JPG"         → ".JPG"         → application/octet-stream
    "archive.tar.gz"    → ".gz"          → application/octet-stream
    "Makefile"          → (no dot)       → application/octet-stream
    "v1.2/README"       → ".2/README"    → application/octet-stream

Matching is exact and case-sensitive. The table is deliberately small;
anything not in it is served as application/octet-stream.

=============================================================================
"""


MIME_TYPES = {
    ".html": "text/html",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".css": "text/css",
    ".js": "application/javascript",
}

# application/octet-stream = "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def get_extension(path: str) -> str:
    """
    Return everything from the last "." in path, or "" if there is none.

    Examples:
        >>> get_extension("css/site.css")
        '.css'
        >>> get_extension("README")
        ''
    """
    dot = path.rfind(".")
    if dot < 0:
        return ""
    return path[dot:]


def get_mime_type(path: str) -> str:
    """
    Get the MIME type for a file based on its extension.

    Args:
        path: Resolved file path or bare file name.

    Returns:
        The MIME type string.

    Examples:
        >>> get_mime_type("style.css")
        'text/css'
        >>> get_mime_type("image.PNG")
        'application/octet-stream'
    """
    return MIME_TYPES.get(get_extension(path), DEFAULT_MIME_TYPE)
