"""Logger hierarchy for docpilot.

Every module asks for ``get_logger("<component>")`` and logs under
``docpilot.<component>``. Output is only attached once the CLI (or a test)
calls :func:`configure_logging`; until then records go nowhere.
"""

from __future__ import annotations

import logging
from pathlib import Path

ROOT_LOGGER = "docpilot"
CONSOLE_FORMAT = "[docpilot] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(component: str | None = None) -> logging.Logger:
    if not component:
        return logging.getLogger(ROOT_LOGGER)
    return logging.getLogger(f"{ROOT_LOGGER}.{component}")


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Attach console (and optionally file) output to the ``docpilot`` logger.

    Calling this again replaces the previous handlers, so a watch session or
    a test run that reconfigures never prints a line twice.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = get_logger()
    # Handlers filter; the file sink always records DEBUG.
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    logger.addHandler(_handler(logging.StreamHandler(), level, CONSOLE_FORMAT))
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.addHandler(
            _handler(logging.FileHandler(log_file, encoding="utf-8"), logging.DEBUG, FILE_FORMAT)
        )
    return logger


__all__ = ["CONSOLE_FORMAT", "FILE_FORMAT", "configure_logging", "get_logger"]
