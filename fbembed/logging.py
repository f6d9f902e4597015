"""Logging utilities for fbembed commands."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "fbembed"

# Console verbosity levels accepted by the CLI (-q, default, -v).
_VERBOSITY_LEVELS = {
    "quiet": logging.WARNING,
    "normal": logging.INFO,
    "verbose": logging.DEBUG,
}


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the fbembed hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Configure the fbembed logger with console output and an optional file sink.

    ``quiet`` wins over ``verbose`` for the console; the file sink always
    records debug output so a failed build can be inspected afterwards.
    """
    if quiet:
        console_level = _VERBOSITY_LEVELS["quiet"]
    elif verbose:
        console_level = _VERBOSITY_LEVELS["verbose"]
    else:
        console_level = _VERBOSITY_LEVELS["normal"]

    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file is not None else console_level)
    logger.propagate = False

    # Drop handlers from a previous invocation in the same process.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(console_level)
    stream_handler.setFormatter(logging.Formatter("[fbembed] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger"]
