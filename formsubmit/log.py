"""Logging setup for the formsubmit CLI.

Library modules only create loggers; handlers are installed here, by the
command line entry point.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "WARNING", console: Console | None = None) -> None:
    """Route ``formsubmit`` loggers through a rich handler.

    Args:
        level: Level name (e.g. "DEBUG", "info").
        console: Console to write to. Defaults to stderr.

    Raises:
        ValueError: If level is not a known logging level name.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger("formsubmit")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    logger.addHandler(handler)
    logger.setLevel(numeric)
