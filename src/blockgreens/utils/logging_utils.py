# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

import logging
import sys
from typing import TextIO

_LOGGER_NAME = "blockgreens"
_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"

_handler: logging.Handler | None = None


def enable_logging(stream: TextIO | None = None, level: int = logging.DEBUG) -> None:
    """Attaches a diagnostics sink to the package logger.

    Calling this again replaces the previous sink.

    Parameters
    ----------
    stream : TextIO, optional
        The text stream to write to. By default `sys.stderr`.
    level : int, optional
        The minimum level of the records that are written, by default
        `logging.DEBUG`.

    """
    global _handler
    disable_logging()

    _handler = logging.StreamHandler(sys.stderr if stream is None else stream)
    _handler.setFormatter(logging.Formatter(_FORMAT))

    logger = logging.getLogger(_LOGGER_NAME)
    logger.addHandler(_handler)
    logger.setLevel(level)


def disable_logging() -> None:
    """Detaches the diagnostics sink from the package logger."""
    global _handler
    if _handler is None:
        return

    logger = logging.getLogger(_LOGGER_NAME)
    logger.removeHandler(_handler)
    logger.setLevel(logging.NOTSET)
    _handler.flush()
    _handler = None


def logging_enabled() -> bool:
    """Returns whether a diagnostics sink is attached."""
    return _handler is not None
