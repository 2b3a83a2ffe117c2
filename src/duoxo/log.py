"""Logging setup for the DuoXO server and command line."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_HANDLER_NAME = "duoxo"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach one stream handler to the ``duoxo`` logger; safe to call twice."""

    logger = logging.getLogger("duoxo")
    logger.setLevel(level)
    if not any(h.get_name() == _HANDLER_NAME for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
