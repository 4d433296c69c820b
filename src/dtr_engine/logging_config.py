"""Logging setup shared by the API app and the CLI entry point."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the package logger."""
    logger = logging.getLogger("dtr_engine")
    logger.setLevel(level)
    if not any(getattr(h, "_dtr_engine", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._dtr_engine = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
