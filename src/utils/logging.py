from __future__ import annotations

import os
import sys
from typing import Any

from loguru import logger


def configure_logging(service_name: str, level: str | None = None) -> None:
    """Configure Loguru for the scanner worker and the web surface.

    Reads ``LOG_LEVEL`` and ``LOG_JSON`` from the environment; ``LOG_FILE``
    adds a rotating file sink next to stdout.
    """

    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    json_logging = os.getenv("LOG_JSON", "false").lower() == "true"
    log_file = os.getenv("LOG_FILE")

    log_format = (
        "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {extra[service]:<7} | "
        "{thread.name:<14} | {message}"
    )

    handlers: list[dict[str, Any]] = [
        {
            "sink": sys.stdout,
            "level": level,
            "format": log_format,
            "serialize": json_logging,
            "enqueue": True,
            "backtrace": False,
            "diagnose": False,
        }
    ]
    if log_file:
        handlers.append(
            {
                "sink": log_file,
                "level": level,
                "format": log_format,
                "serialize": json_logging,
                "enqueue": True,
                "rotation": "50 MB",
                "retention": 5,
            }
        )

    logger.remove()
    logger.configure(handlers=handlers, extra={"service": service_name})


__all__: list[Any] = ["configure_logging"]
