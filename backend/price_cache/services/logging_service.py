"""Process-wide logging setup.

Plain text for local runs, single-line JSON when ``logging.json`` is set so
log aggregators can parse job outcomes.
"""

import json
import logging
import sys
import time
from typing import Optional

DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

NOISY_LOGGERS = ("aiohttp.access", "apscheduler", "uvicorn.access")


class JsonFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0]:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(
    level: str = "INFO",
    fmt: Optional[str] = None,
    json_output: bool = False,
) -> None:
    """Configure the root logger with one stdout handler."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)
    # Avoid duplicate handlers when reloading
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(fmt or DEFAULT_LOG_FORMAT))
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
