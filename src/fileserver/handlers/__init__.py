"""
Request handling: the per-connection keep-alive loop and access logging.
"""

from .file_handler import ConnectionHandler
from .access_log import AccessLogger, AccessLogEntry

__all__ = [
    "ConnectionHandler",
    "AccessLogger",
    "AccessLogEntry",
]
