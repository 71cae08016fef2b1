"""
Console logging for the shipping rate service.

The root logger gets one Rich handler; the package logger carries the
configured level so library chatter stays at WARNING.
"""

from __future__ import annotations

import logging

from rich.logging import RichHandler


PACKAGE_LOGGER = "shipping_rates"
QUIET_LOGGERS = ("googleapiclient.discovery_cache", "google.auth.transport", "urllib3")


def setup_logging(level: str | int = "INFO") -> logging.Logger:
    if isinstance(level, str):
        level = level.strip().upper() or "INFO"

    # no-op when the root logger already has handlers (uvicorn reload, tests)
    logging.basicConfig(
        level=logging.WARNING,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    return logger
