"""Logging configuration helpers."""

import logging

_FORMAT = "%(asctime)s %(levelname)s: %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the package logger with a single stream handler.

    Safe to call more than once; later calls only adjust the level.
    """
    logger = logging.getLogger("image_remix")
    logger.setLevel(level.upper())
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
