"""Logging setup for verbose mode.

Library modules only call `logging.getLogger(__name__)`; a handler is
attached to the package logger when a caller asks for verbose output.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "netimport"


def configure_logging(verbose: bool, *, console: Console | None = None) -> logging.Logger:
    """Attach a Rich handler to the `netimport` logger (once)."""

    logger = logging.getLogger(LOGGER_NAME)
    if verbose:
        logger.setLevel(logging.INFO)
        if not any(isinstance(h, RichHandler) for h in logger.handlers):
            handler = RichHandler(
                console=console or Console(stderr=True),
                show_path=False,
                markup=False,
            )
            handler.setFormatter(logging.Formatter("%(message)s"))
            logger.addHandler(handler)
    return logger
