"""Logger hierarchy shared by the build, watch and serve commands.

Every module logs under ``solidgen.<component>`` (``solidgen.builder``,
``solidgen.transform``, ``solidgen.watch``). Console lines carry a
``[solidgen]`` tag so they stand apart from ``dart format`` output that
the formatter step forwards.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "solidgen"

# watchfiles reports every batch at INFO; the watch loop logs its own summary.
_NOISY_LIBRARIES = ("watchfiles",)


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger for one solidgen component, e.g. ``get_logger("watch")``."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Attach console and optional file handlers to the ``solidgen`` logger.

    ``verbose`` lowers the level to DEBUG, which also lets watchfiles'
    per-batch messages through. Calling this again replaces the handlers
    installed by the previous call.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    for library in _NOISY_LIBRARIES:
        logging.getLogger(library).setLevel(logging.DEBUG if verbose else logging.WARNING)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[solidgen] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        # a watch session can outlive the terminal; keep a full build log
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)

    return logger


__all__ = ["configure_logging", "get_logger"]
