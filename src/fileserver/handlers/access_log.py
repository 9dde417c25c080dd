"""
=============================================================================
ACCESS LOGGING
=============================================================================

One line per answered request on the "fileserver.access" logger:

    text:  127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET /index.html" 200 10 0.41ms
    json:  {"conn_id": "a1b2c3d4", "method": "GET", "target": "/index.html", ...}

The text form follows the Apache common log layout so the usual log
tools can read it; JSON is for log aggregators.

Connections that end without an answer (client disconnects, read errors)
produce no access line; those are reported on the module loggers.

=============================================================================
"""

import json
import time
import logging
from dataclasses import dataclass


logger = logging.getLogger("fileserver.access")


@dataclass
class AccessLogEntry:
    """
    Structured log entry for one request.

    Attributes:
        conn_id: Connection id, to correlate keep-alive requests.
        client_ip: Client's IP address.
        method: Request method as sent.
        target: Request target as sent.
        status_code: Status sent to the client.
        content_length: Body bytes sent.
        duration_ms: Time from parsed request to last byte sent.
        timestamp: When the request finished.
    """

    conn_id: str
    client_ip: str
    method: str
    target: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "conn_id": self.conn_id,
            "client_ip": self.client_ip,
            "method": self.method,
            "target": self.target,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class AccessLogger:
    """Formats and emits AccessLogEntry records."""

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        self.log_format = log_format
        self.log_level = log_level

    def log(
        self,
        conn_id: str,
        client_ip: str,
        method: str,
        target: str,
        status_code: int,
        content_length: int,
        started_at: float,
    ) -> AccessLogEntry:
        entry = AccessLogEntry(
            conn_id=conn_id,
            client_ip=client_ip,
            method=method or "-",
            target=target or "-",
            status_code=int(status_code),
            content_length=content_length,
            duration_ms=(time.time() - started_at) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

        return entry
