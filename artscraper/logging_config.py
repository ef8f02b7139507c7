"""Logging configuration.

Two formats via LOG_FORMAT:
- "text" (default): human-readable lines
- "json": one JSON object per line, for log shippers
"""

import logging
import sys

from pythonjsonlogger.json import JsonFormatter

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(log_format: str = "text", log_level: str = "INFO") -> None:
    """Configure the root logger.

    The configured level applies to the scraper's own loggers; everything
    else stays at INFO so aiohttp and uvicorn do not flood debug output.
    """
    root = logging.getLogger()
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if log_format == "json":
        formatter = JsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
            rename_fields={
                "levelname": "level",
                "name": "logger",
                "asctime": "timestamp",
            },
        )
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(logging.INFO)

    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.getLogger("artscraper").setLevel(level)
