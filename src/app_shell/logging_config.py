"""
Logging setup.

Standard-library logging with one handler on the root logger. Records
carrying a request_id (attached by the HTTP shell through a
LoggerAdapter) show it in the output.
"""

import logging
import sys
from typing import IO

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(request_id)s%(message)s"


class RequestIdFilter(logging.Filter):
    """Make %(request_id)s always available to the formatter."""

    def filter(self, record: logging.LogRecord) -> bool:
        request_id = getattr(record, "request_id", None)
        record.request_id = f"[{request_id}] " if request_id else ""
        return True


def configure_logging(level: str | int = "INFO", stream: IO[str] | None = None) -> None:
    """Install a single stream handler on the root logger (idempotent)."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_mailing_list", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler._mailing_list = True  # type: ignore[attr-defined]
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)


def request_logger(name: str, request_id: str) -> logging.LoggerAdapter:
    """Logger that tags every record with the request id."""
    return logging.LoggerAdapter(logging.getLogger(name), {"request_id": request_id})
