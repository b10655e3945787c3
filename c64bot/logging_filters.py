"""Logging setup shared by ``python -m c64bot.main`` and ``uvicorn c64bot.asgi:app``."""

from __future__ import annotations

import logging
import sys
from typing import Any

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that log every HTTP request at INFO
NOISY_LOGGERS = ("httpx", "telegram", "botocore", "boto3", "s3transfer", "PIL")


class SuppressPathAccessLog(logging.Filter):
    """Drop Uvicorn access log records for the given request paths.

    Used for ``/health`` so container probes do not flood the log:
        INFO: 127.0.0.1:36130 - "GET /health HTTP/1.1" 200 OK
    """

    def __init__(self, paths: tuple[str, ...] = ("/health",)) -> None:
        super().__init__()
        self.paths = paths

    def _matches(self, path: str) -> bool:
        return any(path == p or path.startswith(f"{p}?") for p in self.paths)

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 (filter)
        # Uvicorn's access logger args: (client_addr, method, full_path, http_version, status_code)
        args: Any = record.args
        if isinstance(args, tuple) and len(args) >= 3 and self._matches(str(args[2])):
            return False

        message = record.getMessage()
        return not any(f'"GET {p} ' in message or f'"HEAD {p} ' in message for p in self.paths)


def configure_logging(level: int = logging.INFO) -> None:
    """Root logging to stdout, with chatty libraries raised to WARNING."""
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def install_uvicorn_access_log_filters() -> None:
    """Install filters for Uvicorn loggers.

    Safe to call multiple times.
    """
    access_logger = logging.getLogger("uvicorn.access")

    for existing in access_logger.filters:
        if isinstance(existing, SuppressPathAccessLog):
            return

    access_logger.addFilter(SuppressPathAccessLog())
