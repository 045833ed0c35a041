"""Logging initialization."""

from __future__ import annotations

import logging

from src.config.logging import LOG_LEVEL, LOG_FORMAT


def configure_logging() -> None:
    # Per-request access lines drown out admission logs; keep uvicorn to warnings.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)


__all__ = ["configure_logging"]
