"""Logging setup shared by the API app factory and the CLI."""

from __future__ import annotations

import logging

from serpscout.config import settings

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Attach a single stream handler to the ``serpscout`` logger.

    Safe to call more than once; later calls only adjust the level.
    """
    logger = logging.getLogger("serpscout")
    logger.setLevel((level or settings.log_level).upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
