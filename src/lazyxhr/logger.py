"""Logging utilities for lazyxhr.

Request lifecycle logs (dispatch, settlement, browser-side failures) are
emitted under the ``lazyxhr`` namespace at DEBUG level. ``setup_logging``
routes them to a rich console.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "lazyxhr"


def setup_logging(
    level: int = logging.INFO,
    format_string: str = "%(message)s",
    date_format: str = "[%X]",
    console: Console | None = None,
    show_path: bool = False,
) -> logging.Logger:
    """Attach a RichHandler to the lazyxhr logger.

    Meant to be called by applications, never by the library at import time.
    Calling it again replaces the previous handler.

    Args:
        level: The logging level, e.g. ``logging.DEBUG`` to see every dispatch.
        format_string: The log format string. RichHandler renders time and level itself.
        date_format: The date format string.
        console: Console to write to. Defaults to rich's stderr console.
        show_path: Show the emitting module and line next to each record.

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        markup=False,
        show_time=True,
        show_level=True,
        show_path=show_path,
    )
    handler.setFormatter(logging.Formatter(fmt=format_string, datefmt=date_format))
    logger.addHandler(handler)

    # Records stop here; the root logger would print them a second time.
    logger.propagate = False
    return logger
